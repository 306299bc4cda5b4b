"""
In-memory state store implementation.

Provides a simple, lock-protected state store for testing and for backups
that only need to live as long as the process. All data is lost when the
process ends.
"""

from __future__ import annotations

import asyncio
import logging

from rmstate.observability import Tracer, create_tracer
from rmstate.observability.attributes import (
    ATTR_APPLICATION_ID,
    ATTR_ATTEMPT_ID,
    ATTR_IS_UPDATE,
    ATTR_KEY_ID,
    ATTR_SEQUENCE_NUMBER,
    ATTR_STORE_NAME,
    ATTR_VERSION,
)
from rmstate.records import (
    AMRMTokenSecretManagerState,
    ApplicationAttemptId,
    ApplicationAttemptStateData,
    ApplicationId,
    ApplicationStateData,
    DelegationKey,
    RMDelegationTokenIdentifier,
    Version,
)
from rmstate.stores.interface import (
    ApplicationState,
    RMDTSecretManagerState,
    RMState,
    StateStore,
)

logger = logging.getLogger(__name__)


class MemoryStateStore(StateStore):
    """
    In-memory implementation of StateStore.

    Keeps applications in a dictionary keyed by ApplicationId, each with its
    own attempt dictionary. Uses asyncio.Lock for safe concurrent access.

    Storing an attempt whose application is missing raises ValueError,
    matching the parent-before-child rule of persistent backends.

    Example:
        >>> store = MemoryStateStore()
        >>> await store.store_application_state(app_id, app_data)
        >>> state = await store.load_state()
        >>> assert app_id in state.application_state
    """

    name = "mem"

    def __init__(
        self,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the in-memory state store.

        Args:
            tracer: Optional custom Tracer instance. If not provided, one is
                   created based on enable_tracing setting.
            enable_tracing: Whether to enable OpenTelemetry tracing (default True).
                          Ignored if tracer is explicitly provided.
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._version: Version | None = None
        self._applications: dict[ApplicationId, ApplicationState] = {}
        self._amrm_token_state: AMRMTokenSecretManagerState | None = None
        self._dt_state = RMDTSecretManagerState()
        self._lock = asyncio.Lock()
        self._closed = False
        logger.debug("MemoryStateStore initialized")

    async def close(self) -> None:
        if not self._closed:
            self._closed = True
            logger.debug("MemoryStateStore closed")

    async def store_version(self) -> None:
        version = self.current_version
        with self._tracer.span(
            "rmstate.store.store_version",
            {ATTR_STORE_NAME: self.name, ATTR_VERSION: str(version)},
        ):
            async with self._lock:
                self._version = version

    async def load_version(self) -> Version | None:
        return self._version

    async def load_state(self) -> RMState:
        with self._tracer.span("rmstate.store.load_state", {ATTR_STORE_NAME: self.name}):
            async with self._lock:
                applications = {
                    app_id: ApplicationState(data=app.data, attempts=dict(app.attempts))
                    for app_id, app in self._applications.items()
                }
                dt_state = RMDTSecretManagerState(
                    master_key_state=dict(self._dt_state.master_key_state),
                    token_state=dict(self._dt_state.token_state),
                    dt_sequence_number=self._dt_state.dt_sequence_number,
                )
                state = RMState(
                    application_state=applications,
                    amrm_token_secret_manager_state=self._amrm_token_state,
                    rm_dt_secret_manager_state=dt_state,
                )
            logger.debug("Loaded %r from MemoryStateStore", state)
            return state

    async def store_application_state(
        self,
        app_id: ApplicationId,
        data: ApplicationStateData,
    ) -> None:
        with self._tracer.span(
            "rmstate.store.store_application",
            {ATTR_STORE_NAME: self.name, ATTR_APPLICATION_ID: str(app_id)},
        ):
            async with self._lock:
                existing = self._applications.get(app_id)
                if existing is None:
                    self._applications[app_id] = ApplicationState(data=data)
                else:
                    existing.data = data
                logger.debug("Stored application %s", app_id)

    async def store_application_attempt_state(
        self,
        attempt_id: ApplicationAttemptId,
        data: ApplicationAttemptStateData,
    ) -> None:
        with self._tracer.span(
            "rmstate.store.store_attempt",
            {ATTR_STORE_NAME: self.name, ATTR_ATTEMPT_ID: str(attempt_id)},
        ):
            async with self._lock:
                app = self._applications.get(attempt_id.application_id)
                if app is None:
                    raise ValueError(f"Application {attempt_id.application_id} doesn't exist")
                app.attempts[attempt_id] = data
                logger.debug("Stored attempt %s", attempt_id)

    async def store_or_update_amrm_token_secret_manager_state(
        self,
        state: AMRMTokenSecretManagerState,
        is_update: bool,
    ) -> None:
        with self._tracer.span(
            "rmstate.store.store_amrm_token_state",
            {ATTR_STORE_NAME: self.name, ATTR_IS_UPDATE: is_update},
        ):
            async with self._lock:
                self._amrm_token_state = state

    async def store_rm_dt_master_key(self, key: DelegationKey) -> None:
        with self._tracer.span(
            "rmstate.store.store_master_key",
            {ATTR_STORE_NAME: self.name, ATTR_KEY_ID: key.key_id},
        ):
            async with self._lock:
                self._dt_state.master_key_state[key.key_id] = key

    async def store_rm_delegation_token(
        self,
        identifier: RMDelegationTokenIdentifier,
        renew_date: int,
        sequence_number: int,
    ) -> None:
        with self._tracer.span(
            "rmstate.store.store_delegation_token",
            {ATTR_STORE_NAME: self.name, ATTR_SEQUENCE_NUMBER: sequence_number},
        ):
            async with self._lock:
                self._dt_state.token_state[identifier] = renew_date
                self._dt_state.dt_sequence_number = sequence_number

    async def store_rm_dt_sequence_number(self, sequence_number: int) -> None:
        with self._tracer.span(
            "rmstate.store.store_sequence_number",
            {ATTR_STORE_NAME: self.name, ATTR_SEQUENCE_NUMBER: sequence_number},
        ):
            async with self._lock:
                self._dt_state.dt_sequence_number = sequence_number

    async def is_empty(self) -> bool:
        async with self._lock:
            return (
                not self._applications
                and self._amrm_token_state is None
                and self._dt_state.is_empty
            )

    async def clear(self) -> None:
        """
        Remove all state, including the version marker.

        Useful for test cleanup between test cases.
        """
        async with self._lock:
            self._version = None
            self._applications.clear()
            self._amrm_token_state = None
            self._dt_state = RMDTSecretManagerState()

    @property
    def application_count(self) -> int:
        """Number of stored applications. For diagnostics and tests."""
        return len(self._applications)

    def __repr__(self) -> str:
        return f"MemoryStateStore(applications={len(self._applications)})"


__all__ = ["MemoryStateStore"]
