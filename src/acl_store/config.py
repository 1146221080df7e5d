# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""Store configuration and construction.

``StoreConfigSchema`` describes which engine to use and how to reach it;
``StoreFactory`` turns a validated schema into a :class:`SetStore`.
Engine types are kept in a registry so additional backends can be plugged
in without modifying factory code.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, ClassVar

from pydantic import BaseModel, Field, ValidationError

from acl_store.exceptions import StoreConfigError
from acl_store.keys import DEFAULT_PREFIX
from acl_store.stores.base import SetStore
from acl_store.stores.memory import InMemorySetStore
from acl_store.stores.sqlite import SQLiteSetStore


class StoreConfigSchema(BaseModel):
    """Configuration for one ACL set store.

    Attributes:
        type: Store type ("memory", "sqlite" or "redis")
        prefix: Namespace for every key written by the store
        escape_keys: Escape separator characters in bucket and key names
        path: Path to SQLite database file (for sqlite type)
        url: Connection URL (for redis type)
    """

    type: str = "memory"
    prefix: str = Field(default=DEFAULT_PREFIX, min_length=1)
    escape_keys: bool = True
    path: str = ""
    url: str = ""


StoreBuilder = Callable[[StoreConfigSchema], SetStore]


def _build_memory(config: StoreConfigSchema) -> SetStore:
    return InMemorySetStore(config.prefix, escape_keys=config.escape_keys)


def _build_sqlite(config: StoreConfigSchema) -> SetStore:
    if not config.path:
        raise StoreConfigError("SQLite store requires 'path' configuration")
    return SQLiteSetStore(config.path, config.prefix, escape_keys=config.escape_keys)


def _build_redis(config: StoreConfigSchema) -> SetStore:
    if not config.url:
        raise StoreConfigError("Redis store requires 'url' configuration")
    from acl_store.stores.redis import RedisSetStore

    return RedisSetStore(prefix=config.prefix, url=config.url, escape_keys=config.escape_keys)


class StoreFactory:
    """Creates store instances from configuration.

    Example:
        store = StoreFactory.create(StoreConfigSchema(type="sqlite", path="acl.db"))

        # Plugging in another engine:
        StoreFactory.register("dynamo", lambda cfg: DynamoSetStore(cfg.url, cfg.prefix))
    """

    # Class-level registry mapping type strings to store builders
    _registry: ClassVar[dict[str, StoreBuilder]] = {
        "memory": _build_memory,
        "sqlite": _build_sqlite,
        "redis": _build_redis,
    }

    @classmethod
    def register(cls, type_name: str, builder: StoreBuilder) -> None:
        """Register a custom store type.

        Args:
            type_name: Type string to use in configuration
            builder: Callable receiving the validated config and returning a store
        """
        cls._registry[type_name] = builder

    @classmethod
    def registered_types(cls) -> list[str]:
        """Return list of registered store type names."""
        return list(cls._registry.keys())

    @classmethod
    def create(cls, config: StoreConfigSchema) -> SetStore:
        """Create a store from configuration.

        Raises:
            StoreConfigError: If the type is unknown or required settings are missing
        """
        builder = cls._registry.get(config.type)
        if builder is None:
            available = ", ".join(sorted(cls.registered_types()))
            raise StoreConfigError(
                f"Unknown store type: '{config.type}'. Available types: {available}"
            )
        return builder(config)


def create_store(config: StoreConfigSchema | dict[str, Any] | str | None = None) -> SetStore:
    """Validate ``config`` (schema, mapping or JSON text) and build the store.

    With no configuration an in-memory store with the default prefix is
    returned.
    """
    try:
        if config is None:
            schema = StoreConfigSchema()
        elif isinstance(config, StoreConfigSchema):
            schema = config
        elif isinstance(config, str):
            schema = StoreConfigSchema.model_validate_json(config)
        else:
            schema = StoreConfigSchema.model_validate(config)
    except ValidationError as e:
        raise StoreConfigError(f"Invalid store configuration: {e}") from e
    return StoreFactory.create(schema)
