"""Library exceptions for the rmstate package.

Exception Hierarchy:
    StateStoreError (base)
    +-- ConfigError
    |   +-- DestinationNotEmptyError
    +-- StoreInitError
    +-- LoadError
    +-- WriteError
    +-- CloseError

Every error carries the migration ``phase`` it was raised in and whether it
is ``fatal`` to the run. Only CloseError is non-fatal: it is reported to the
operator but never changes the outcome of a migration.
"""

from __future__ import annotations

from typing import Any


class StateStoreError(Exception):
    """Base exception for rmstate."""

    default_phase = "migrate"
    fatal = True

    def __init__(self, message: str, *, phase: str | None = None) -> None:
        self.message = message
        self.phase = phase or self.default_phase
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert the exception to a dictionary for structured logging."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "phase": self.phase,
            "fatal": self.fatal,
        }


class ConfigError(StateStoreError):
    """Raised for an unknown store name or invalid configuration."""

    default_phase = "configure"


class DestinationNotEmptyError(ConfigError):
    """Raised when the destination store already holds recovery state."""

    def __init__(self, store_name: str) -> None:
        self.store_name = store_name
        super().__init__(
            f"Destination store '{store_name}' is not empty; "
            "migration requires an empty destination"
        )


class StoreInitError(StateStoreError):
    """Raised when a store backend fails to start."""

    default_phase = "initialize"

    def __init__(self, store_name: str, message: str) -> None:
        self.store_name = store_name
        super().__init__(f"Failed to initialize store '{store_name}': {message}")


class LoadError(StateStoreError):
    """Raised when state cannot be read from a store."""

    default_phase = "load"

    def __init__(self, store_name: str, message: str) -> None:
        self.store_name = store_name
        super().__init__(f"Failed to load state from store '{store_name}': {message}")


class WriteError(StateStoreError):
    """Raised when a destination write fails for a specific entity."""

    def __init__(self, phase: str, entity: str, entity_id: str, message: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"Failed to store {entity} {entity_id}: {message}", phase=phase)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["entity"] = self.entity
        result["entity_id"] = self.entity_id
        return result


class CloseError(StateStoreError):
    """Raised when a store fails to release its resources."""

    default_phase = "close"
    fatal = False

    def __init__(self, store_name: str, message: str) -> None:
        self.store_name = store_name
        super().__init__(f"Failed to close store '{store_name}': {message}")
