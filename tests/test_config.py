"""Tests for store configuration and the store factory."""

import pytest

from acl_store import (
    InMemorySetStore,
    SQLiteSetStore,
    StoreConfigError,
    StoreConfigSchema,
    StoreFactory,
    create_store,
)
from acl_store.stores.redis import RedisSetStore


class TestStoreConfigSchema:
    def test_defaults(self):
        config = StoreConfigSchema()
        assert config.type == "memory"
        assert config.prefix == "acl"
        assert config.escape_keys is True

    def test_empty_prefix_rejected(self):
        with pytest.raises(StoreConfigError):
            create_store({"prefix": ""})


class TestStoreFactory:
    def test_registered_types(self):
        types = StoreFactory.registered_types()
        assert "memory" in types
        assert "sqlite" in types
        assert "redis" in types

    def test_default_is_memory(self):
        store = create_store()
        assert isinstance(store, InMemorySetStore)
        assert store.prefix == "acl"

    def test_create_from_dict(self):
        store = create_store({"type": "memory", "prefix": "tenant1", "escape_keys": False})
        assert store.prefix == "tenant1"
        assert store.codec.escapes is False

    def test_create_sqlite_from_json(self, tmp_path):
        path = tmp_path / "acl.db"
        store = create_store(f'{{"type": "sqlite", "path": "{path}"}}')
        assert isinstance(store, SQLiteSetStore)

    def test_sqlite_requires_path(self):
        with pytest.raises(StoreConfigError) as exc_info:
            create_store({"type": "sqlite"})
        assert "path" in str(exc_info.value)

    def test_redis_requires_url(self):
        with pytest.raises(StoreConfigError):
            create_store({"type": "redis"})

    async def test_create_redis(self):
        store = create_store({"type": "redis", "url": "redis://localhost:6379/3", "prefix": "x"})
        assert isinstance(store, RedisSetStore)
        assert store.prefix == "x"
        await store.close()

    def test_unknown_type(self):
        with pytest.raises(StoreConfigError) as exc_info:
            create_store({"type": "cassandra"})
        assert "Unknown store type" in str(exc_info.value)
        assert "cassandra" in str(exc_info.value)

    def test_register_custom_type(self):
        StoreFactory.register("custom", lambda cfg: InMemorySetStore(cfg.prefix + "-custom"))
        try:
            store = create_store({"type": "custom", "prefix": "p"})
            assert store.prefix == "p-custom"
        finally:
            del StoreFactory._registry["custom"]
