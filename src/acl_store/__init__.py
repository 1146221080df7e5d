"""acl_store — set storage for an access-control list subsystem.

Roles, resources, allowed actions and role parents are stored as sets
addressed by ``(bucket, key)`` under one prefix.  Reads go straight to the
backend; mutations are queued on an explicit transaction and committed
atomically.
"""

from acl_store.config import StoreConfigSchema, StoreFactory, create_store
from acl_store.exceptions import (
    BackendError,
    InvalidArgumentError,
    InvalidStateError,
    StoreConfigError,
    StoreError,
)
from acl_store.keys import DEFAULT_PREFIX, KeyCodec
from acl_store.stores import InMemorySetStore, SetStore, SQLiteSetStore
from acl_store.transaction import Operation, OpKind, Transaction, TransactionState

__all__ = [
    "DEFAULT_PREFIX",
    "BackendError",
    "InMemorySetStore",
    "InvalidArgumentError",
    "InvalidStateError",
    "KeyCodec",
    "OpKind",
    "Operation",
    "SQLiteSetStore",
    "SetStore",
    "StoreConfigError",
    "StoreConfigSchema",
    "StoreError",
    "StoreFactory",
    "Transaction",
    "TransactionState",
    "create_store",
]
