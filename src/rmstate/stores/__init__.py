"""State store implementations for the rmstate library."""

from rmstate.stores.filesystem import FileSystemStateStore
from rmstate.stores.in_memory import MemoryStateStore
from rmstate.stores.interface import (
    ApplicationState,
    RMDTSecretManagerState,
    RMState,
    StateStore,
)
from rmstate.stores.null import NullStateStore
from rmstate.stores.redis import (
    REDIS_AVAILABLE,
    NoNodeError,
    RedisNotAvailableError,
    RedisStateStore,
)
from rmstate.stores.registry import StoreFactory, StoreRegistry, default_registry

__all__ = [
    # Data structures
    "ApplicationState",
    "RMDTSecretManagerState",
    "RMState",
    # Abstract base classes
    "StateStore",
    # Concrete implementations
    "FileSystemStateStore",
    "MemoryStateStore",
    "NullStateStore",
    "RedisStateStore",
    "REDIS_AVAILABLE",
    "RedisNotAvailableError",
    "NoNodeError",
    # Selection
    "StoreFactory",
    "StoreRegistry",
    "default_registry",
]
