"""
Standard span attributes for rmstate.

Attribute names are shared by every store backend and the migration engine
so spans from different backends can be compared side by side.
"""

# =============================================================================
# Store Attributes
# =============================================================================

ATTR_STORE_NAME = "rmstate.store.name"
"""Nickname of the store backend (e.g. 'fs', 'zk')."""

ATTR_APPLICATION_ID = "rmstate.application.id"
"""Application identifier (string form)."""

ATTR_ATTEMPT_ID = "rmstate.attempt.id"
"""Application attempt identifier (string form)."""

ATTR_KEY_ID = "rmstate.key.id"
"""Delegation or AM-RM master key identifier (integer)."""

ATTR_SEQUENCE_NUMBER = "rmstate.sequence_number"
"""Delegation token sequence number (integer)."""

ATTR_VERSION = "rmstate.version"
"""State store schema version (string 'major.minor')."""

ATTR_IS_UPDATE = "rmstate.is_update"
"""Whether an AM-RM token state write is an update (boolean)."""

# =============================================================================
# Migration Attributes
# =============================================================================

ATTR_MIGRATION_PHASE = "rmstate.migration.phase"
"""Current migration phase (e.g. 'store_version', 'applications')."""

ATTR_MIGRATION_SOURCE_STORE = "rmstate.migration.source_store"
"""Nickname of the source store."""

ATTR_MIGRATION_TARGET_STORE = "rmstate.migration.target_store"
"""Nickname of the destination store."""

ATTR_MIGRATION_POLICY = "rmstate.migration.policy"
"""Failure policy in force for the run."""

ATTR_ENTITY_COUNT = "rmstate.entity.count"
"""Number of entities handled in a phase (integer)."""


__all__ = [
    "ATTR_STORE_NAME",
    "ATTR_APPLICATION_ID",
    "ATTR_ATTEMPT_ID",
    "ATTR_KEY_ID",
    "ATTR_SEQUENCE_NUMBER",
    "ATTR_VERSION",
    "ATTR_IS_UPDATE",
    "ATTR_MIGRATION_PHASE",
    "ATTR_MIGRATION_SOURCE_STORE",
    "ATTR_MIGRATION_TARGET_STORE",
    "ATTR_MIGRATION_POLICY",
    "ATTR_ENTITY_COUNT",
]
