"""
rmstate - Copy ResourceManager recovery state between state stores.

This library provides:
- Typed recovery records (applications, attempts, token secrets) as Pydantic models
- State stores for a filesystem tree, a Redis node tree, memory and a null sink
- A migration engine replaying a full snapshot into an empty destination store
- The ``rmstate-copy`` command line tool
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("rmstate-copy")
except PackageNotFoundError:
    # Package not installed (running from source without install)
    __version__ = "0.0.0.dev0"

# Configuration
from rmstate.config import StateStoreConfig, StoreKind

# Exceptions
from rmstate.exceptions import (
    CloseError,
    ConfigError,
    DestinationNotEmptyError,
    LoadError,
    StateStoreError,
    StoreInitError,
    WriteError,
)

# Migration
from rmstate.migration import (
    ApplicationFailure,
    FailurePolicy,
    MigrationPhase,
    MigrationResult,
    StateCopier,
    copy_state_stores,
)

# Records
from rmstate.records import (
    CURRENT_VERSION,
    AMRMTokenSecretManagerState,
    ApplicationAttemptId,
    ApplicationAttemptStateData,
    ApplicationId,
    ApplicationStateData,
    DelegationKey,
    DelegationTokenRecord,
    MasterKey,
    RMDelegationTokenIdentifier,
    Version,
)

# Stores
from rmstate.stores import (
    REDIS_AVAILABLE,
    ApplicationState,
    FileSystemStateStore,
    MemoryStateStore,
    NullStateStore,
    RedisNotAvailableError,
    RedisStateStore,
    RMDTSecretManagerState,
    RMState,
    StateStore,
    StoreRegistry,
    default_registry,
)

__all__ = [
    "__version__",
    # Configuration
    "StateStoreConfig",
    "StoreKind",
    # Exceptions
    "StateStoreError",
    "ConfigError",
    "DestinationNotEmptyError",
    "StoreInitError",
    "LoadError",
    "WriteError",
    "CloseError",
    # Migration
    "StateCopier",
    "copy_state_stores",
    "FailurePolicy",
    "MigrationPhase",
    "MigrationResult",
    "ApplicationFailure",
    # Records
    "CURRENT_VERSION",
    "ApplicationId",
    "ApplicationAttemptId",
    "ApplicationStateData",
    "ApplicationAttemptStateData",
    "MasterKey",
    "AMRMTokenSecretManagerState",
    "DelegationKey",
    "RMDelegationTokenIdentifier",
    "DelegationTokenRecord",
    "Version",
    # Stores
    "StateStore",
    "ApplicationState",
    "RMDTSecretManagerState",
    "RMState",
    "FileSystemStateStore",
    "MemoryStateStore",
    "NullStateStore",
    "RedisStateStore",
    "REDIS_AVAILABLE",
    "RedisNotAvailableError",
    "StoreRegistry",
    "default_registry",
]
