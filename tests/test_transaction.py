"""Tests for the Transaction state machine."""

import pytest

from acl_store import (
    BackendError,
    InMemorySetStore,
    InvalidStateError,
    Operation,
    OpKind,
    TransactionState,
)


@pytest.fixture
def store():
    return InMemorySetStore()


def test_new_transaction_is_open(store):
    txn = store.begin()
    assert txn.state is TransactionState.OPEN
    assert txn.is_open
    assert len(txn) == 0
    assert txn.operations == ()


def test_operations_are_queued_encoded_and_in_order(store):
    txn = store.begin()
    store.add(txn, "roles", "admin", ["read", 2, "read"])
    store.delete(txn, "roles", ["admin", "admin", "guest"])
    store.remove(txn, "roles", "admin", "read")

    assert txn.operations == (
        Operation(OpKind.ADD, ("acl_roles@admin",), ("read", "2")),
        Operation(OpKind.DELETE, ("acl_roles@admin", "acl_roles@guest")),
        Operation(OpKind.REMOVE, ("acl_roles@admin",), ("read",)),
    )


def test_operations_snapshot_is_immutable(store):
    txn = store.begin()
    store.add(txn, "roles", "admin", "read")
    ops = txn.operations
    store.add(txn, "roles", "admin", "write")
    assert len(ops) == 1
    assert len(txn) == 2


async def test_empty_transaction_commits(store):
    txn = store.begin()
    await store.end(txn)
    assert txn.state is TransactionState.COMMITTED


async def test_aborted_transaction_cannot_be_ended_again(store):
    class Broken(InMemorySetStore):
        async def _commit(self, operations):
            raise ConnectionError("gone")

    broken = Broken()
    txn = broken.begin()
    broken.add(txn, "roles", "admin", "read")
    with pytest.raises(BackendError):
        await broken.end(txn)
    assert txn.state is TransactionState.ABORTED

    with pytest.raises(InvalidStateError) as exc_info:
        await broken.end(txn)
    assert "aborted" in str(exc_info.value)
    with pytest.raises(InvalidStateError):
        broken.remove(txn, "roles", "admin", "read")


async def test_cannot_queue_while_committing(store):
    seen = []

    class Reentrant(InMemorySetStore):
        async def _commit(self, operations):
            try:
                self.add(txn, "roles", "late", "x")
            except InvalidStateError as e:
                seen.append(e)
            await super()._commit(operations)

    reentrant = Reentrant()
    txn = reentrant.begin()
    reentrant.add(txn, "roles", "admin", "read")
    await reentrant.end(txn)

    assert len(seen) == 1
    assert txn.state is TransactionState.COMMITTED
    assert await reentrant.get("roles", "late") == set()


def test_repr(store):
    txn = store.begin()
    store.add(txn, "roles", "admin", "read")
    assert repr(txn) == "<Transaction state=open operations=1>"


def test_mutations_are_plain_calls(store):
    txn = store.begin()
    assert store.add(txn, "roles", "admin", "read") is None
    assert store.remove(txn, "roles", "admin", "read") is None
    assert store.delete(txn, "roles", "admin") is None
    assert len(txn) == 3
    assert store._data == {}
