"""Transaction — a caller-owned batch of queued set mutations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from acl_store.exceptions import InvalidStateError


class TransactionState(StrEnum):
    OPEN = "open"
    COMMITTED = "committed"
    ABORTED = "aborted"


class OpKind(StrEnum):
    ADD = "add"
    REMOVE = "remove"
    DELETE = "delete"


@dataclass(frozen=True)
class Operation:
    """One queued mutation, already encoded to storage keys.

    Attributes:
        kind:         What to do.
        storage_keys: Target keys.  ``ADD``/``REMOVE`` always carry exactly
                      one; ``DELETE`` carries one or more.
        values:       Members to add or remove (empty for ``DELETE``).
    """

    kind: OpKind
    storage_keys: tuple[str, ...]
    values: tuple[str, ...] = ()

    @property
    def storage_key(self) -> str:
        return self.storage_keys[0]


class Transaction:
    """Explicit unit of work returned by :meth:`SetStore.begin`.

    Mutations are queued here in call order and applied by
    :meth:`SetStore.end`, all together or not at all.  A transaction is
    owned by one caller and must not be shared between concurrent tasks.
    To cancel, simply drop it without ending it.
    """

    def __init__(self, owner: object) -> None:
        self._owner = owner
        self._operations: list[Operation] = []
        self._state = TransactionState.OPEN
        self._sealed = False

    @property
    def state(self) -> TransactionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is TransactionState.OPEN

    @property
    def operations(self) -> tuple[Operation, ...]:
        return tuple(self._operations)

    def __len__(self) -> int:
        return len(self._operations)

    def __repr__(self) -> str:
        return f"<Transaction state={self._state.value} operations={len(self._operations)}>"

    # ── used by SetStore ─────────────────────────────────────

    def _check_owner(self, store: object, operation: str) -> None:
        if self._owner is not store:
            raise InvalidStateError(operation, "transaction belongs to a different store")

    def _ensure_open(self, operation: str) -> None:
        if self._state is not TransactionState.OPEN:
            raise InvalidStateError(operation, f"transaction is already {self._state.value}")
        if self._sealed:
            raise InvalidStateError(operation, "transaction is being committed")

    def _seal(self) -> None:
        self._sealed = True

    def _queue(self, op: Operation) -> None:
        self._ensure_open(op.kind.value)
        self._operations.append(op)

    def _finish(self, state: TransactionState) -> None:
        self._state = state
