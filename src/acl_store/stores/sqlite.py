"""SQLiteSetStore — durable, single-file set storage using aiosqlite."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from collections.abc import Sequence

import aiosqlite

from acl_store._internal.settle import settle
from acl_store.keys import DEFAULT_PREFIX
from acl_store.stores.base import SetStore
from acl_store.transaction import Operation, OpKind

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS acl_sets (
    storage_key TEXT NOT NULL,
    value       TEXT NOT NULL,
    PRIMARY KEY (storage_key, value)
)
"""


def _placeholders(count: int) -> str:
    return ", ".join("?" * count)


class SQLiteSetStore(SetStore):
    """Persistent store keeping one row per set member in a single SQLite file.

    An empty set has no rows, so draining a set removes it.  One connection
    is shared by all operations; a lock keeps reads from running while a
    commit is in progress.  A cancelled commit is rolled back, unless
    ``COMMIT`` was already sent, in which case it completes first and the
    cancellation is delivered afterwards.

    Parameters:
        db_path: Path to the SQLite database file.  Use ``":memory:"``
                 for an in-memory database (useful for testing).
        prefix:  See :class:`SetStore`.
    """

    def __init__(
        self,
        db_path: str = "acl_store.db",
        prefix: str = DEFAULT_PREFIX,
        *,
        escape_keys: bool = True,
    ) -> None:
        super().__init__(prefix, escape_keys=escape_keys)
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    async def _connect(self) -> aiosqlite.Connection:
        if self._db is None:
            # Autocommit mode: transactions are opened explicitly in _commit.
            self._db = await aiosqlite.connect(self._db_path, isolation_level=None)
            await self._db.execute(_CREATE_TABLE)
        return self._db

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    # ── backend primitives ───────────────────────────────────

    async def _smembers(self, storage_key: str) -> set[str]:
        async with self._lock:
            db = await self._connect()
            cursor = await db.execute(
                "SELECT value FROM acl_sets WHERE storage_key = ?",
                (storage_key,),
            )
            rows = await cursor.fetchall()
        return {row[0] for row in rows}

    async def _sunion(self, storage_keys: list[str]) -> set[str]:
        keys = list(dict.fromkeys(storage_keys))
        marks = _placeholders(len(keys))
        async with self._lock:
            db = await self._connect()
            cursor = await db.execute(
                f"SELECT DISTINCT value FROM acl_sets WHERE storage_key IN ({marks})",
                keys,
            )
            rows = await cursor.fetchall()
        return {row[0] for row in rows}

    async def _sunion_batch(self, batch: list[list[str]]) -> list[set[str]]:
        keys = list(dict.fromkeys(key for storage_keys in batch for key in storage_keys))
        marks = _placeholders(len(keys))
        async with self._lock:
            db = await self._connect()
            cursor = await db.execute(
                f"SELECT storage_key, value FROM acl_sets WHERE storage_key IN ({marks})",
                keys,
            )
            rows = await cursor.fetchall()

        members: dict[str, set[str]] = {}
        for storage_key, value in rows:
            members.setdefault(storage_key, set()).add(value)

        results: list[set[str]] = []
        for storage_keys in batch:
            union: set[str] = set()
            for storage_key in storage_keys:
                union.update(members.get(storage_key, ()))
            results.append(union)
        return results

    async def _commit(self, operations: Sequence[Operation]) -> None:
        async with self._lock:
            db = await self._connect()
            try:
                await db.execute("BEGIN IMMEDIATE")
                for op in operations:
                    await self._apply(db, op)
            except BaseException:
                await self._rollback(db)
                raise

            # Once COMMIT is queued it will run; report what actually happened.
            try:
                await settle(db.commit())
            except BaseException:
                await self._rollback(db)
                raise

    async def _rollback(self, db: aiosqlite.Connection) -> None:
        # Statements run in order on the connection thread, so this lands after
        # any statement whose await was cancelled.  sqlite3's rollback() is a
        # no-op when no transaction is open.
        try:
            await db.rollback()
        except sqlite3.Error as exc:
            logger.warning("Rollback on %r failed: %r", self._db_path, exc)

    async def _apply(self, db: aiosqlite.Connection, op: Operation) -> None:
        if op.kind is OpKind.ADD:
            await db.executemany(
                "INSERT OR IGNORE INTO acl_sets (storage_key, value) VALUES (?, ?)",
                [(op.storage_key, value) for value in op.values],
            )
        elif op.kind is OpKind.REMOVE:
            await db.executemany(
                "DELETE FROM acl_sets WHERE storage_key = ? AND value = ?",
                [(op.storage_key, value) for value in op.values],
            )
        else:
            marks = _placeholders(len(op.storage_keys))
            await db.execute(
                f"DELETE FROM acl_sets WHERE storage_key IN ({marks})",
                op.storage_keys,
            )

    async def _clean(self, key_prefix: str) -> int:
        async with self._lock:
            db = await self._connect()
            cursor = await db.execute(
                "DELETE FROM acl_sets WHERE substr(storage_key, 1, ?) = ?",
                (len(key_prefix), key_prefix),
            )
            return cursor.rowcount
