"""
Data models for state store migration.

Enums:
    - MigrationPhase: Ordered phases of one migration run
    - FailurePolicy: How per-application write failures are handled

Results:
    - ApplicationFailure: One application that could not be copied
    - MigrationResult: Outcome and counts of a migration run
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from rmstate.exceptions import CloseError


class MigrationPhase(Enum):
    """
    Phases of a migration run, in execution order.

    Attributes:
        PRECHECK: Verify the destination is empty.
        STORE_VERSION: Stamp the destination with the version marker.
        LOAD_STATE: Read the full snapshot from the source.
        AMRM_TOKEN_STATE: Replay the AM-RM token secret state.
        APPLICATIONS: Replay applications and their attempts.
        DELEGATION_TOKEN_STATE: Replay master keys, tokens and the sequence number.
        CLOSE: Release both stores.
    """

    PRECHECK = "precheck"
    STORE_VERSION = "store_version"
    LOAD_STATE = "load_state"
    AMRM_TOKEN_STATE = "amrm_token_state"
    APPLICATIONS = "applications"
    DELEGATION_TOKEN_STATE = "delegation_token_state"
    CLOSE = "close"


class FailurePolicy(Enum):
    """
    Handling of write failures while replaying applications.

    The policy is applied uniformly for a whole run. Failures in every
    other phase are always fatal.

    Attributes:
        FAIL_FAST: The first failed application aborts the run.
        BEST_EFFORT: A failed application is logged and skipped; the
            remaining applications are still copied and the run reports
            failure at the end.
    """

    FAIL_FAST = "fail_fast"
    BEST_EFFORT = "best_effort"


@dataclass(frozen=True)
class ApplicationFailure:
    """
    An application that could not be copied under BEST_EFFORT.

    Attributes:
        application_id: String form of the application id, usable to retry
            just this application.
        entity: "application" or "attempt".
        entity_id: Id of the entity whose write failed.
        error_message: Error reported by the destination store.
    """

    application_id: str
    entity: str
    entity_id: str
    error_message: str


@dataclass
class MigrationResult:
    """
    Outcome of a migration run.

    Attributes:
        source_store: Nickname of the source store.
        destination_store: Nickname of the destination store.
        policy: Failure policy in force for the run.
        applications: Applications copied (with all of their attempts).
        attempts: Attempts copied.
        delegation_keys: Master signing keys copied.
        delegation_tokens: Delegation tokens copied.
        amrm_token_state_copied: Whether an AM-RM token secret state was copied.
        dt_sequence_number: Sequence number stamped into the destination.
        failed_applications: Applications skipped under BEST_EFFORT.
        close_errors: Store close failures (never fatal).
        duration_seconds: Wall-clock duration of the run.
    """

    source_store: str
    destination_store: str
    policy: FailurePolicy = FailurePolicy.FAIL_FAST
    applications: int = 0
    attempts: int = 0
    delegation_keys: int = 0
    delegation_tokens: int = 0
    amrm_token_state_copied: bool = False
    dt_sequence_number: int = 0
    failed_applications: list[ApplicationFailure] = field(default_factory=list)
    close_errors: list[CloseError] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        """True when every application was copied."""
        return not self.failed_applications

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary for logging and reporting."""
        return {
            "source_store": self.source_store,
            "destination_store": self.destination_store,
            "policy": self.policy.value,
            "success": self.success,
            "applications": self.applications,
            "attempts": self.attempts,
            "delegation_keys": self.delegation_keys,
            "delegation_tokens": self.delegation_tokens,
            "amrm_token_state_copied": self.amrm_token_state_copied,
            "dt_sequence_number": self.dt_sequence_number,
            "failed_applications": [f.application_id for f in self.failed_applications],
            "close_errors": [str(e) for e in self.close_errors],
            "duration_seconds": self.duration_seconds,
        }


__all__ = [
    "MigrationPhase",
    "FailurePolicy",
    "ApplicationFailure",
    "MigrationResult",
]
