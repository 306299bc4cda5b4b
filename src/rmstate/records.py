"""
Recovery records persisted by resource manager state stores.

Records are immutable pydantic models. Backends persist them with
``model_dump_json()`` and read them back with ``model_validate_json()``;
binary secret material travels as base64 inside the JSON document.

Identifiers keep the resource manager's string forms so they can be used
directly as file names and node names:

    >>> app_id = ApplicationId(cluster_timestamp=1700000000000, id=7)
    >>> str(app_id)
    'application_1700000000000_0007'
    >>> str(ApplicationAttemptId(application_id=app_id, attempt_id=2))
    'appattempt_1700000000000_0007_000002'
"""

from __future__ import annotations

from typing import Any, ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field

_RECORD_CONFIG = ConfigDict(
    frozen=True,
    ser_json_bytes="base64",
    val_json_bytes="base64",
)


class ApplicationId(BaseModel):
    """Globally unique identifier of a submitted application."""

    model_config = _RECORD_CONFIG

    cluster_timestamp: int = Field(..., ge=0, description="RM start time in epoch millis")
    id: int = Field(..., ge=0, description="Sequential application number")

    PREFIX: ClassVar[str] = "application"

    @classmethod
    def from_string(cls, value: str) -> Self:
        """Parse ``application_<cluster_timestamp>_<id>``."""
        parts = value.split("_")
        if len(parts) != 3 or parts[0] != cls.PREFIX:
            raise ValueError(f"Invalid application id: {value!r}")
        return cls(cluster_timestamp=int(parts[1]), id=int(parts[2]))

    def __str__(self) -> str:
        return f"{self.PREFIX}_{self.cluster_timestamp}_{self.id:04d}"


class ApplicationAttemptId(BaseModel):
    """Composite key of one execution attempt: application plus attempt number."""

    model_config = _RECORD_CONFIG

    application_id: ApplicationId
    attempt_id: int = Field(..., ge=1, description="1-based attempt number")

    PREFIX: ClassVar[str] = "appattempt"

    @classmethod
    def from_string(cls, value: str) -> Self:
        """Parse ``appattempt_<cluster_timestamp>_<id>_<attempt>``."""
        parts = value.split("_")
        if len(parts) != 4 or parts[0] != cls.PREFIX:
            raise ValueError(f"Invalid application attempt id: {value!r}")
        return cls(
            application_id=ApplicationId(cluster_timestamp=int(parts[1]), id=int(parts[2])),
            attempt_id=int(parts[3]),
        )

    def __str__(self) -> str:
        app = self.application_id
        return f"{self.PREFIX}_{app.cluster_timestamp}_{app.id:04d}_{self.attempt_id:06d}"


class ApplicationStateData(BaseModel):
    """
    Recoverable state of one submitted application.

    Attributes:
        application_id: Identifier of the application
        submit_time: Submission time in epoch millis
        start_time: Start time in epoch millis
        user: Submitting user
        name: Application name
        queue: Scheduler queue the application was submitted to
        application_type: Framework type (e.g. "MAPREDUCE", "SPARK")
        state: Final RM application state, None while the app is still live
        diagnostics: Final diagnostics message
        finish_time: Finish time in epoch millis, 0 while running
        submission_context: Opaque remainder of the submission context
    """

    model_config = _RECORD_CONFIG

    application_id: ApplicationId
    submit_time: int = 0
    start_time: int = 0
    user: str = ""
    name: str = ""
    queue: str = "default"
    application_type: str = "YARN"
    state: str | None = None
    diagnostics: str = ""
    finish_time: int = 0
    submission_context: dict[str, Any] = Field(default_factory=dict)


class ApplicationAttemptStateData(BaseModel):
    """Recoverable state of one application attempt."""

    model_config = _RECORD_CONFIG

    attempt_id: ApplicationAttemptId
    master_container: dict[str, Any] | None = None
    app_attempt_tokens: bytes | None = None
    state: str | None = None
    final_tracking_url: str = ""
    diagnostics: str = ""
    final_application_status: str | None = None
    am_container_exit_status: int = -1000
    start_time: int = 0
    finish_time: int = 0
    memory_seconds: int = 0
    vcore_seconds: int = 0


class MasterKey(BaseModel):
    """Key used to sign AM-RM tokens."""

    model_config = _RECORD_CONFIG

    key_id: int
    key: bytes


class AMRMTokenSecretManagerState(BaseModel):
    """Security context validating tokens issued to application masters."""

    model_config = _RECORD_CONFIG

    current_master_key: MasterKey
    next_master_key: MasterKey | None = None


class DelegationKey(BaseModel):
    """Master signing key for delegation tokens."""

    model_config = _RECORD_CONFIG

    key_id: int
    expiry_date: int
    key: bytes


class RMDelegationTokenIdentifier(BaseModel):
    """Identifier of an issued RM delegation token."""

    model_config = _RECORD_CONFIG

    owner: str
    renewer: str = ""
    real_user: str = ""
    issue_date: int = 0
    max_date: int = 0
    sequence_number: int = Field(..., ge=0)
    master_key_id: int = 0


class DelegationTokenRecord(BaseModel):
    """An issued delegation token with its renew date, as persisted by backends."""

    model_config = _RECORD_CONFIG

    identifier: RMDelegationTokenIdentifier
    renew_date: int


class Version(BaseModel):
    """Schema version marker stamped into a state store."""

    model_config = _RECORD_CONFIG

    major: int = Field(..., ge=0)
    minor: int = Field(..., ge=0)

    def is_compatible_to(self, other: Version) -> bool:
        """Versions with the same major number can read each other's state."""
        return self.major == other.major

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


CURRENT_VERSION = Version(major=1, minor=3)
"""Version stamped by every backend in this package."""


__all__ = [
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
    "CURRENT_VERSION",
]
