"""
Backend selection for state stores.

A StoreRegistry maps each StoreKind to a factory building an unstarted
store from a StateStoreConfig. The registry is an explicit object built at
startup and passed to whoever opens stores; there is no process-wide table.

Example:
    >>> registry = default_registry()
    >>> store = await registry.open(StoreKind.FS, StateStoreConfig(fs_root="/data"))
    >>> try:
    ...     state = await store.load_state()
    ... finally:
    ...     await store.close()
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from rmstate.config import StateStoreConfig, StoreKind
from rmstate.exceptions import ConfigError, StoreInitError
from rmstate.stores.filesystem import FileSystemStateStore
from rmstate.stores.in_memory import MemoryStateStore
from rmstate.stores.interface import StateStore
from rmstate.stores.null import NullStateStore
from rmstate.stores.redis import RedisStateStore

logger = logging.getLogger(__name__)

StoreFactory = Callable[[StateStoreConfig], StateStore]


def _create_fs_store(config: StateStoreConfig) -> StateStore:
    return FileSystemStateStore(config.fs_root, enable_tracing=config.enable_tracing)


def _create_zk_store(config: StateStoreConfig) -> StateStore:
    return RedisStateStore.from_config(config)


def _create_mem_store(config: StateStoreConfig) -> StateStore:
    return MemoryStateStore(enable_tracing=config.enable_tracing)


def _create_null_store(config: StateStoreConfig) -> StateStore:
    return NullStateStore()


class StoreRegistry:
    """
    Maps store kinds to factories.

    Attributes:
        _factories: Factory per StoreKind
    """

    def __init__(self, factories: dict[StoreKind, StoreFactory] | None = None) -> None:
        self._factories: dict[StoreKind, StoreFactory] = dict(factories or {})

    def register(self, kind: StoreKind, factory: StoreFactory) -> None:
        """Register or replace the factory for a kind."""
        self._factories[kind] = factory

    @property
    def kinds(self) -> list[StoreKind]:
        return list(self._factories)

    def create(self, kind: StoreKind, config: StateStoreConfig) -> StateStore:
        """
        Build an unstarted store for kind.

        The base configuration is cloned with the kind injected before it
        reaches the factory.

        Raises:
            ConfigError: If no factory is registered for kind.
            StoreInitError: If the factory fails.
        """
        factory = self._factories.get(kind)
        if factory is None:
            raise ConfigError(f"No state store registered for '{kind.value}'")

        store_config = config.for_store(kind)
        try:
            return factory(store_config)
        except ConfigError:
            raise
        except Exception as e:
            raise StoreInitError(kind.value, str(e)) from e

    async def open(self, kind: StoreKind, config: StateStoreConfig) -> StateStore:
        """
        Build and start a store.

        A store whose start() fails is closed before StoreInitError is raised.

        Raises:
            ConfigError: If no factory is registered for kind.
            StoreInitError: If the store cannot be built or started.
        """
        store = self.create(kind, config)
        try:
            await store.start()
        except Exception as e:
            try:
                await store.close()
            except Exception as close_error:
                logger.warning(
                    "Failed to close store %s after failed start: %s", kind.value, close_error
                )
            raise StoreInitError(kind.value, str(e)) from e

        logger.info("Initialized %s store %r", kind.value, store)
        return store


def default_registry() -> StoreRegistry:
    """Build a registry with the four built-in backends."""
    return StoreRegistry(
        {
            StoreKind.FS: _create_fs_store,
            StoreKind.ZK: _create_zk_store,
            StoreKind.MEM: _create_mem_store,
            StoreKind.NULL: _create_null_store,
        }
    )


__all__ = [
    "StoreFactory",
    "StoreRegistry",
    "default_registry",
]
