"""Storage backends for ACL set data.

``RedisSetStore`` lives in :mod:`acl_store.stores.redis` and needs the
``redis`` extra.
"""

from acl_store.stores.base import SetStore
from acl_store.stores.memory import InMemorySetStore
from acl_store.stores.sqlite import SQLiteSetStore

__all__ = ["InMemorySetStore", "SQLiteSetStore", "SetStore"]
