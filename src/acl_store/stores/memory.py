"""InMemorySetStore — zero-config, dict-backed storage for development and testing."""

from __future__ import annotations

from collections.abc import Sequence

from acl_store.keys import DEFAULT_PREFIX
from acl_store.stores.base import SetStore
from acl_store.transaction import Operation, OpKind


class InMemorySetStore(SetStore):
    """In-memory store mapping storage keys to Python sets.  Data is lost on process exit.

    Several stores may share one table through ``data`` (as several ACL
    instances would share one Redis database); their prefixes keep them
    apart.
    """

    def __init__(
        self,
        prefix: str = DEFAULT_PREFIX,
        *,
        escape_keys: bool = True,
        data: dict[str, set[str]] | None = None,
    ) -> None:
        super().__init__(prefix, escape_keys=escape_keys)
        self._data: dict[str, set[str]] = {} if data is None else data

    async def _smembers(self, storage_key: str) -> set[str]:
        return set(self._data.get(storage_key, ()))

    async def _sunion(self, storage_keys: list[str]) -> set[str]:
        result: set[str] = set()
        for storage_key in storage_keys:
            result.update(self._data.get(storage_key, ()))
        return result

    async def _sunion_batch(self, batch: list[list[str]]) -> list[set[str]]:
        return [await self._sunion(storage_keys) for storage_keys in batch]

    async def _commit(self, operations: Sequence[Operation]) -> None:
        # Work on copies of the touched sets, then publish them in one step.
        staged: dict[str, set[str]] = {}
        for op in operations:
            for storage_key in op.storage_keys:
                if storage_key not in staged:
                    staged[storage_key] = set(self._data.get(storage_key, ()))
            self._apply(staged, op)

        for storage_key, members in staged.items():
            if members:
                self._data[storage_key] = members
            else:
                self._data.pop(storage_key, None)

    def _apply(self, staged: dict[str, set[str]], op: Operation) -> None:
        if op.kind is OpKind.ADD:
            staged[op.storage_key].update(op.values)
        elif op.kind is OpKind.REMOVE:
            staged[op.storage_key].difference_update(op.values)
        else:
            for storage_key in op.storage_keys:
                staged[storage_key].clear()

    async def _clean(self, key_prefix: str) -> int:
        doomed = [storage_key for storage_key in self._data if storage_key.startswith(key_prefix)]
        for storage_key in doomed:
            del self._data[storage_key]
        return len(doomed)
