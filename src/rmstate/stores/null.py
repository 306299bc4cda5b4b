"""
No-op state store.

Accepts every write and keeps nothing. Loading always yields an empty
state with no version marker. Useful as a destination for dry runs, where
the source is fully read and every replay step is exercised without
persisting anything.
"""

from __future__ import annotations

import logging

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
from rmstate.stores.interface import RMState, StateStore

logger = logging.getLogger(__name__)


class NullStateStore(StateStore):
    """StateStore that discards all writes."""

    name = "null"

    async def close(self) -> None:
        pass

    async def store_version(self) -> None:
        pass

    async def load_version(self) -> Version | None:
        return None

    async def load_state(self) -> RMState:
        return RMState()

    async def store_application_state(
        self,
        app_id: ApplicationId,
        data: ApplicationStateData,
    ) -> None:
        logger.debug("Discarding application %s", app_id)

    async def store_application_attempt_state(
        self,
        attempt_id: ApplicationAttemptId,
        data: ApplicationAttemptStateData,
    ) -> None:
        logger.debug("Discarding attempt %s", attempt_id)

    async def store_or_update_amrm_token_secret_manager_state(
        self,
        state: AMRMTokenSecretManagerState,
        is_update: bool,
    ) -> None:
        pass

    async def store_rm_dt_master_key(self, key: DelegationKey) -> None:
        pass

    async def store_rm_delegation_token(
        self,
        identifier: RMDelegationTokenIdentifier,
        renew_date: int,
        sequence_number: int,
    ) -> None:
        pass

    async def store_rm_dt_sequence_number(self, sequence_number: int) -> None:
        pass

    async def is_empty(self) -> bool:
        return True


__all__ = ["NullStateStore"]
