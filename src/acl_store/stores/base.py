"""SetStore — the storage contract behind the ACL subsystem.

Permission data (roles, resources, allowed actions, role parents) is kept
as named *sets* addressed by ``(bucket, key)`` within one prefix.  This
module holds everything that must behave identically across engines:
argument validation, key encoding, the transaction discipline and error
wrapping.  Concrete engines only implement a handful of set primitives.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterable, Sequence
from contextlib import asynccontextmanager
from typing import Any

from acl_store.exceptions import BackendError, InvalidArgumentError, StoreError
from acl_store.keys import DEFAULT_PREFIX, Key, KeyCodec
from acl_store.transaction import Operation, OpKind, Transaction, TransactionState

logger = logging.getLogger(__name__)

Value = str | int
ValueInput = Value | Sequence[Value]
KeyInput = Key | Sequence[Key]


class SetStore(ABC):
    """Abstract base for all set storage backends.

    Reads (:meth:`get`, :meth:`union`, :meth:`unions`) run directly against
    the backend.  Mutations (:meth:`add`, :meth:`remove`, :meth:`delete`) are
    queued on a :class:`Transaction` obtained from :meth:`begin` and applied
    atomically by :meth:`end`::

        txn = store.begin()
        store.add(txn, "roles", "admin", ["read", "write"])
        store.remove(txn, "roles", "guest", "write")
        await store.end(txn)

    Only reads, :meth:`end`, :meth:`clean` and :meth:`close` are coroutines.
    :meth:`add`, :meth:`remove` and :meth:`delete` are plain methods: they
    only queue onto the caller's transaction and never touch the backend.

    Values are opaque identifiers (``str`` or ``int``) and are always
    returned as ``str``.

    Parameters:
        prefix:      Namespace isolating this store's keys from every other
                     prefix sharing the same backend.
        escape_keys: Escape separator characters in bucket and key names.
                     See :class:`~acl_store.keys.KeyCodec`.
    """

    def __init__(self, prefix: str = DEFAULT_PREFIX, *, escape_keys: bool = True) -> None:
        if not isinstance(prefix, str) or not prefix:
            raise InvalidArgumentError("init", "prefix must be a non-empty string")
        self._codec = KeyCodec(prefix, escape=escape_keys)

    @property
    def prefix(self) -> str:
        return self._codec.prefix

    @property
    def codec(self) -> KeyCodec:
        return self._codec

    # ── reads ────────────────────────────────────────────────

    async def get(self, bucket: str, key: Key) -> set[str]:
        """Return the members of the set at ``(bucket, key)``; empty if absent."""
        storage_key = self._codec.encode(_check_bucket("get", bucket), _check_key("get", key))
        async with self._backend_call("get"):
            return set(await self._smembers(storage_key))

    async def union(self, bucket: str, keys: KeyInput) -> set[str]:
        """Return the union of the sets at every key of ``keys`` in ``bucket``."""
        bucket = _check_bucket("union", bucket)
        key_list = _check_keys("union", keys, allow_empty=True)
        if not key_list:
            return set()
        storage_keys = self._codec.encode_many(bucket, key_list)
        async with self._backend_call("union"):
            return set(await self._sunion(storage_keys))

    async def unions(self, buckets: Sequence[str], keys: KeyInput) -> dict[str, set[str]]:
        """Map every bucket to the union of ``keys`` inside it.

        All per-bucket unions go to the backend as a single batch.  If any
        of them fails the whole call fails; partial results are never
        returned.
        """
        bucket_list = _check_buckets("unions", buckets)
        key_list = _check_keys("unions", keys, allow_empty=True)
        if not key_list:
            return {bucket: set() for bucket in bucket_list}
        if not bucket_list:
            return {}

        batch = [self._codec.encode_many(bucket, key_list) for bucket in bucket_list]
        async with self._backend_call("unions"):
            results = await self._sunion_batch(batch)
        if len(results) != len(bucket_list):
            raise BackendError(
                "unions", f"backend returned {len(results)} results for {len(bucket_list)} buckets"
            )
        return {bucket: set(m) for bucket, m in zip(bucket_list, results, strict=True)}

    # ── transactions ─────────────────────────────────────────

    def begin(self) -> Transaction:
        """Open a new transaction owned by the caller."""
        return Transaction(self)

    def add(self, txn: Transaction, bucket: str, key: Key, values: ValueInput) -> None:
        """Queue insertion of ``values`` into the set at ``(bucket, key)``."""
        self._prepare(txn, "add")
        storage_key = self._codec.encode(_check_bucket("add", bucket), _check_key("add", key))
        txn._queue(Operation(OpKind.ADD, (storage_key,), _check_values("add", values)))

    def remove(self, txn: Transaction, bucket: str, key: Key, values: ValueInput) -> None:
        """Queue removal of ``values`` from the set at ``(bucket, key)``."""
        self._prepare(txn, "remove")
        storage_key = self._codec.encode(_check_bucket("remove", bucket), _check_key("remove", key))
        txn._queue(Operation(OpKind.REMOVE, (storage_key,), _check_values("remove", values)))

    def delete(self, txn: Transaction, bucket: str, keys: KeyInput) -> None:
        """Queue deletion of the whole set at each of ``keys`` in ``bucket``."""
        self._prepare(txn, "delete")
        bucket = _check_bucket("delete", bucket)
        key_list = _check_keys("delete", keys, allow_empty=False)
        storage_keys = tuple(dict.fromkeys(self._codec.encode_many(bucket, key_list)))
        txn._queue(Operation(OpKind.DELETE, storage_keys))

    async def end(self, txn: Transaction) -> None:
        """Commit every operation queued on ``txn``, atomically and in order.

        On failure (including cancellation) the transaction becomes
        ``ABORTED``, none of its operations are visible and the error is
        re-raised.  An engine may finish a commit it has already sent; the
        transaction is then ``COMMITTED`` and the cancellation reaches the
        caller at its next ``await``.
        """
        self._prepare(txn, "end")
        txn._seal()
        operations = txn.operations
        try:
            async with self._backend_call("end"):
                if operations:
                    await self._commit(operations)
        except BaseException as exc:
            txn._finish(TransactionState.ABORTED)
            logger.warning(
                "Transaction on prefix %r aborted (%d operations): %r",
                self.prefix,
                len(operations),
                exc,
            )
            raise
        txn._finish(TransactionState.COMMITTED)
        logger.debug("Committed %d operations on prefix %r", len(operations), self.prefix)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        """``begin`` on entry, ``end`` on normal exit.

        If the body raises, the transaction is discarded without being
        committed.
        """
        txn = self.begin()
        yield txn
        await self.end(txn)

    # ── maintenance ──────────────────────────────────────────

    async def clean(self) -> None:
        """Delete every set under this store's prefix.  Not transactional."""
        async with self._backend_call("clean"):
            removed = await self._clean(self._codec.key_prefix)
        logger.debug("Removed %d stored entries under prefix %r", removed, self.prefix)

    async def close(self) -> None:  # noqa: B027
        """Release the backend handle.  No-op unless the engine holds one."""

    async def __aenter__(self) -> SetStore:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ── backend primitives ───────────────────────────────────

    @abstractmethod
    async def _smembers(self, storage_key: str) -> Iterable[str]:
        """Return the members stored at ``storage_key`` (empty if absent)."""
        ...

    @abstractmethod
    async def _sunion(self, storage_keys: list[str]) -> Iterable[str]:
        """Return the union of the sets at ``storage_keys``."""
        ...

    @abstractmethod
    async def _sunion_batch(self, batch: list[list[str]]) -> list[Iterable[str]]:
        """Run one union per entry of ``batch`` in a single round trip.

        Results must follow the order of ``batch``.  Raise if any union fails.
        """
        ...

    @abstractmethod
    async def _commit(self, operations: Sequence[Operation]) -> None:
        """Apply ``operations`` in order as one atomic unit."""
        ...

    @abstractmethod
    async def _clean(self, key_prefix: str) -> int:
        """Delete every key starting with ``key_prefix``; return how many entries went."""
        ...

    # ── helpers ──────────────────────────────────────────────

    def _prepare(self, txn: Transaction, operation: str) -> None:
        if not isinstance(txn, Transaction):
            raise InvalidArgumentError(operation, "a Transaction from begin() is required")
        txn._check_owner(self, operation)
        txn._ensure_open(operation)

    @asynccontextmanager
    async def _backend_call(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except StoreError:
            raise
        except Exception as exc:
            raise BackendError(operation, str(exc) or type(exc).__name__) from exc


# ── argument validation ──────────────────────────────────────


def _is_scalar(value: Any) -> bool:
    return isinstance(value, str | bytes | int)


def _check_bucket(operation: str, bucket: Any) -> str:
    if not isinstance(bucket, str) or not bucket:
        raise InvalidArgumentError(operation, f"bucket must be a non-empty string, got {bucket!r}")
    return bucket


def _check_key(operation: str, key: Any) -> Key:
    if isinstance(key, bool) or not isinstance(key, str | int):
        raise InvalidArgumentError(operation, f"key must be a string or integer, got {key!r}")
    if key == "":
        raise InvalidArgumentError(operation, "key must not be empty")
    return key


def _as_list(operation: str, what: str, items: Any) -> list[Any]:
    if items is None:
        raise InvalidArgumentError(operation, f"{what} must not be None")
    if _is_scalar(items):
        return [items]
    if not isinstance(items, Sequence):
        raise InvalidArgumentError(operation, f"{what} must be a value or a sequence of values")
    return list(items)


def _check_keys(operation: str, keys: Any, *, allow_empty: bool) -> list[Key]:
    key_list = _as_list(operation, "keys", keys)
    if not key_list and not allow_empty:
        raise InvalidArgumentError(operation, "keys must not be empty")
    return [_check_key(operation, key) for key in key_list]


def _check_buckets(operation: str, buckets: Any) -> list[str]:
    if isinstance(buckets, str) or not isinstance(buckets, Sequence):
        raise InvalidArgumentError(operation, "buckets must be a sequence of bucket names")
    return list(dict.fromkeys(_check_bucket(operation, bucket) for bucket in buckets))


def _check_values(operation: str, values: Any) -> tuple[str, ...]:
    value_list = _as_list(operation, "values", values)
    if not value_list:
        raise InvalidArgumentError(operation, "values must not be empty")
    normalized: list[str] = []
    for value in value_list:
        if isinstance(value, bool) or not isinstance(value, str | int):
            raise InvalidArgumentError(
                operation, f"values must be strings or integers, got {value!r}"
            )
        if value == "":
            raise InvalidArgumentError(operation, "values must not be empty strings")
        normalized.append(str(value))
    return tuple(dict.fromkeys(normalized))
