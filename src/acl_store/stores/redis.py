"""RedisSetStore — set storage on a Redis server via ``redis.asyncio``."""

from __future__ import annotations

import re
from collections.abc import Sequence

try:
    import redis.asyncio as redis
except ImportError as exc:
    raise ImportError(
        "RedisSetStore requires the 'redis' package. "
        "Install it with: pip install acl-store[redis]"
    ) from exc

from acl_store._internal.settle import settle
from acl_store.keys import DEFAULT_PREFIX
from acl_store.stores.base import SetStore
from acl_store.transaction import Operation, OpKind

_GLOB_SPECIAL = re.compile(r"([\\*?\[\]^])")


def _glob_escape(text: str) -> str:
    return _GLOB_SPECIAL.sub(r"\\\1", text)


def _decode(member: bytes | str) -> str:
    return member.decode("utf-8") if isinstance(member, bytes) else member


class RedisSetStore(SetStore):
    """Store each set as a native Redis set named by the key codec.

    Reads map to ``SMEMBERS``/``SUNION``; :meth:`unions` pipelines one
    ``SUNION`` per bucket; a commit is a ``MULTI``/``EXEC`` block which,
    once sent, runs to the end even if the caller is cancelled.  Redis drops
    a set when its last member is removed.

    Parameters:
        client: An existing ``redis.asyncio.Redis`` client.  The store does
                not close a client it did not create.
        url:    Connection URL used when no client is given.
        prefix: See :class:`SetStore`.
    """

    def __init__(
        self,
        client: redis.Redis | None = None,
        prefix: str = DEFAULT_PREFIX,
        *,
        url: str = "redis://localhost:6379/0",
        escape_keys: bool = True,
    ) -> None:
        super().__init__(prefix, escape_keys=escape_keys)
        self._owns_client = client is None
        self._client: redis.Redis = client if client is not None else redis.from_url(url)

    @property
    def client(self) -> redis.Redis:
        return self._client

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ── backend primitives ───────────────────────────────────

    async def _smembers(self, storage_key: str) -> set[str]:
        return {_decode(member) for member in await self._client.smembers(storage_key)}

    async def _sunion(self, storage_keys: list[str]) -> set[str]:
        return {_decode(member) for member in await self._client.sunion(storage_keys)}

    async def _sunion_batch(self, batch: list[list[str]]) -> list[set[str]]:
        async with self._client.pipeline(transaction=False) as pipe:
            for storage_keys in batch:
                pipe.sunion(storage_keys)
            replies = await pipe.execute(raise_on_error=False)

        for reply in replies:
            if isinstance(reply, Exception):
                raise reply
        return [{_decode(member) for member in reply} for reply in replies]

    async def _commit(self, operations: Sequence[Operation]) -> None:
        async with self._client.pipeline(transaction=True) as pipe:
            for op in operations:
                if op.kind is OpKind.ADD:
                    pipe.sadd(op.storage_key, *op.values)
                elif op.kind is OpKind.REMOVE:
                    pipe.srem(op.storage_key, *op.values)
                else:
                    pipe.delete(*op.storage_keys)
            await settle(pipe.execute())

    async def _clean(self, key_prefix: str) -> int:
        pattern = _glob_escape(key_prefix) + "*"
        keys: list[bytes | str] = [key async for key in self._client.scan_iter(match=pattern)]
        if keys:
            await self._client.delete(*keys)
        return len(keys)
