"""
Migration of ResourceManager recovery state between state stores.

Key Components:
    - StateCopier: Replays one snapshot from a source store into a destination
    - copy_state_stores: Opens both stores by kind and runs a StateCopier
    - MigrationResult: Counts, skipped applications and close errors

Migration Phases:
    1. PRECHECK: Destination must be empty
    2. STORE_VERSION: Version marker written to the destination
    3. LOAD_STATE: Full snapshot read from the source
    4. AMRM_TOKEN_STATE: AM-RM token secret state
    5. APPLICATIONS: Applications, each followed by its attempts
    6. DELEGATION_TOKEN_STATE: Master keys, tokens, sequence number
    7. CLOSE: Both stores released

Usage:
    >>> from rmstate.config import StateStoreConfig, StoreKind
    >>> from rmstate.migration import copy_state_stores
    >>>
    >>> result = await copy_state_stores(
    ...     StoreKind.FS,
    ...     StoreKind.ZK,
    ...     StateStoreConfig(fs_root="/var/lib/rmstore"),
    ... )
    >>> print(result.applications, result.attempts)
"""

from rmstate.migration.copier import StateCopier, copy_state_stores
from rmstate.migration.models import (
    ApplicationFailure,
    FailurePolicy,
    MigrationPhase,
    MigrationResult,
)

__all__ = [
    "StateCopier",
    "copy_state_stores",
    "ApplicationFailure",
    "FailurePolicy",
    "MigrationPhase",
    "MigrationResult",
]
