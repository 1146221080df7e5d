"""Shared test fixtures."""

import pytest

from acl_store.stores import InMemorySetStore, SQLiteSetStore


@pytest.fixture(params=["memory", "sqlite"])
async def store(request):
    """Every contract test runs once per bundled backend."""
    if request.param == "memory":
        s = InMemorySetStore()
    else:
        s = SQLiteSetStore(":memory:")
    yield s
    await s.close()


@pytest.fixture
def commit():
    """Open a transaction on *store*, let *build* queue operations, end it."""

    async def _commit(store, build):
        txn = store.begin()
        build(txn)
        await store.end(txn)
        return txn

    return _commit
