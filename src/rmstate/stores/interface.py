"""
State store interface and the snapshot data structures.

Every backend (filesystem tree, coordination-service node tree, in-memory
map, no-op) implements StateStore. The migration engine talks to stores
only through this interface, so the physical layout of each backend stays
opaque to it.

This module provides:
- ApplicationState: One application record plus its attempt records
- RMDTSecretManagerState: Delegation-token secret state
- RMState: Snapshot of everything a store holds, read in one pass
- StateStore: Abstract base class for state store backends
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import TracebackType
from typing import Self

from rmstate.records import (
    CURRENT_VERSION,
    AMRMTokenSecretManagerState,
    ApplicationAttemptId,
    ApplicationAttemptStateData,
    ApplicationId,
    ApplicationStateData,
    DelegationKey,
    RMDelegationTokenIdentifier,
    Version,
)

logger = logging.getLogger(__name__)


@dataclass
class ApplicationState:
    """
    An application record together with its attempt records.

    Attributes:
        data: The application record
        attempts: Attempt records keyed by attempt id
    """

    data: ApplicationStateData
    attempts: dict[ApplicationAttemptId, ApplicationAttemptStateData] = field(
        default_factory=dict
    )

    @property
    def application_id(self) -> ApplicationId:
        return self.data.application_id

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)

    @property
    def attempt_ids(self) -> list[ApplicationAttemptId]:
        """Attempt ids in increasing attempt-number order."""
        return sorted(self.attempts, key=lambda attempt_id: attempt_id.attempt_id)

    def get_attempt(self, attempt_id: ApplicationAttemptId) -> ApplicationAttemptStateData | None:
        return self.attempts.get(attempt_id)

    def missing_attempt_numbers(self) -> list[int]:
        """Attempt numbers absent from the contiguous range starting at 1."""
        numbers = {attempt_id.attempt_id for attempt_id in self.attempts}
        if not numbers:
            return []
        return [n for n in range(1, max(numbers) + 1) if n not in numbers]


@dataclass
class RMDTSecretManagerState:
    """
    Delegation-token secret state.

    Attributes:
        master_key_state: Master signing keys keyed by key id
        token_state: Renew date (epoch millis) of every issued token
        dt_sequence_number: Running sequence number used to mint new tokens
    """

    master_key_state: dict[int, DelegationKey] = field(default_factory=dict)
    token_state: dict[RMDelegationTokenIdentifier, int] = field(default_factory=dict)
    dt_sequence_number: int = 0

    @property
    def max_token_sequence_number(self) -> int:
        """Highest sequence number among issued tokens, 0 if none."""
        return max((token.sequence_number for token in self.token_state), default=0)

    @property
    def is_empty(self) -> bool:
        return not self.master_key_state and not self.token_state and self.dt_sequence_number == 0


@dataclass
class RMState:
    """
    Snapshot of all recovery state held by one store.

    Built once per migration by a full read of the source store and
    discarded after replay. Not modified after construction.

    Attributes:
        application_state: Applications keyed by application id
        amrm_token_secret_manager_state: AM-RM token secret state, if any
        rm_dt_secret_manager_state: Delegation-token secret state
    """

    application_state: dict[ApplicationId, ApplicationState] = field(default_factory=dict)
    amrm_token_secret_manager_state: AMRMTokenSecretManagerState | None = None
    rm_dt_secret_manager_state: RMDTSecretManagerState = field(
        default_factory=RMDTSecretManagerState
    )

    @property
    def attempt_count(self) -> int:
        return sum(app.attempt_count for app in self.application_state.values())

    @property
    def is_empty(self) -> bool:
        return (
            not self.application_state
            and self.amrm_token_secret_manager_state is None
            and self.rm_dt_secret_manager_state.is_empty
        )

    def __repr__(self) -> str:
        dt_state = self.rm_dt_secret_manager_state
        return (
            f"RMState(applications={len(self.application_state)}, "
            f"attempts={self.attempt_count}, "
            f"amrm_token_state={self.amrm_token_secret_manager_state is not None}, "
            f"delegation_keys={len(dt_state.master_key_state)}, "
            f"delegation_tokens={len(dt_state.token_state)}, "
            f"dt_sequence_number={dt_state.dt_sequence_number})"
        )


class StateStore(ABC):
    """
    Abstract base class for resource manager state stores.

    Implementations must provide:
    - start / close: Acquire and release backend resources
    - store_version / load_version: Schema version marker
    - load_state: Full read into an RMState snapshot
    - store_* methods: Write individual entities

    Design principles:
    - Writes of an entity that already exists overwrite it
    - An attempt can only be stored after its application
    - close() is idempotent
    - Usable as an async context manager for scoped acquisition

    Example:
        >>> async with MemoryStateStore() as store:
        ...     await store.store_version()
        ...     state = await store.load_state()
    """

    name: str = "store"
    """Backend nickname used in logs and error messages."""

    @property
    def current_version(self) -> Version:
        """Version stamped by store_version()."""
        return CURRENT_VERSION

    async def start(self) -> None:  # noqa: B027
        """
        Acquire backend resources.

        Default implementation does nothing. Backends holding connections
        or directories override it.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release backend resources. Calling it more than once is a no-op."""
        pass

    @abstractmethod
    async def store_version(self) -> None:
        """Stamp the store with current_version."""
        pass

    @abstractmethod
    async def load_version(self) -> Version | None:
        """
        Read the stored version marker.

        Returns:
            The stored version, or None if the store was never stamped.
        """
        pass

    @abstractmethod
    async def load_state(self) -> RMState:
        """
        Read everything held by this store.

        Raises:
            LoadError: If stored data is corrupt or unreadable.
        """
        pass

    @abstractmethod
    async def store_application_state(
        self,
        app_id: ApplicationId,
        data: ApplicationStateData,
    ) -> None:
        """Store or overwrite an application record."""
        pass

    @abstractmethod
    async def store_application_attempt_state(
        self,
        attempt_id: ApplicationAttemptId,
        data: ApplicationAttemptStateData,
    ) -> None:
        """
        Store or overwrite an attempt record.

        Raises:
            Exception: Backend-specific error if the parent application
                has not been stored.
        """
        pass

    @abstractmethod
    async def store_or_update_amrm_token_secret_manager_state(
        self,
        state: AMRMTokenSecretManagerState,
        is_update: bool,
    ) -> None:
        """Replace the single AM-RM token secret state of this store."""
        pass

    @abstractmethod
    async def store_rm_dt_master_key(self, key: DelegationKey) -> None:
        """Store a delegation-token master signing key."""
        pass

    @abstractmethod
    async def store_rm_delegation_token(
        self,
        identifier: RMDelegationTokenIdentifier,
        renew_date: int,
        sequence_number: int,
    ) -> None:
        """
        Store an issued delegation token with its renew date.

        Also records ``sequence_number`` as the store's running sequence
        number, as the resource manager does when it issues a token.
        """
        pass

    @abstractmethod
    async def store_rm_dt_sequence_number(self, sequence_number: int) -> None:
        """Set the store's running delegation-token sequence number."""
        pass

    async def is_empty(self) -> bool:
        """
        Check whether the store holds any recovery state.

        Default implementation loads the full state. The version marker
        alone does not make a store non-empty.
        """
        state = await self.load_state()
        return state.is_empty

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


__all__ = [
    "ApplicationState",
    "RMDTSecretManagerState",
    "RMState",
    "StateStore",
]
