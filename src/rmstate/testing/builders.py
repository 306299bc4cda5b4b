"""
Builders for recovery records and snapshots used in tests.

All builders produce deterministic values derived from their arguments, so
two calls with the same arguments return equal records.

Example:
    >>> app = application_state(application_id(1), attempts=2)
    >>> state = snapshot(app, delegation_tokens=3)
    >>> await populate(store, state)
"""

from __future__ import annotations

from rmstate.records import (
    AMRMTokenSecretManagerState,
    ApplicationAttemptId,
    ApplicationAttemptStateData,
    ApplicationId,
    ApplicationStateData,
    DelegationKey,
    MasterKey,
    RMDelegationTokenIdentifier,
)
from rmstate.stores.interface import (
    ApplicationState,
    RMDTSecretManagerState,
    RMState,
    StateStore,
)

CLUSTER_TIMESTAMP = 1_700_000_000_000


def application_id(app_number: int, cluster_timestamp: int = CLUSTER_TIMESTAMP) -> ApplicationId:
    return ApplicationId(cluster_timestamp=cluster_timestamp, id=app_number)


def attempt_id(app_id: ApplicationId, attempt_number: int) -> ApplicationAttemptId:
    return ApplicationAttemptId(application_id=app_id, attempt_id=attempt_number)


def application_data(app_id: ApplicationId, **overrides: object) -> ApplicationStateData:
    values: dict[str, object] = {
        "application_id": app_id,
        "submit_time": app_id.cluster_timestamp + app_id.id * 1000,
        "start_time": app_id.cluster_timestamp + app_id.id * 1000 + 50,
        "user": "alice",
        "name": f"job-{app_id.id}",
        "queue": "default",
        "application_type": "MAPREDUCE",
        "submission_context": {"priority": 0, "am_resource": {"memory": 1024, "vcores": 1}},
    }
    values.update(overrides)
    return ApplicationStateData(**values)  # type: ignore[arg-type]


def attempt_data(attempt: ApplicationAttemptId, **overrides: object) -> ApplicationAttemptStateData:
    values: dict[str, object] = {
        "attempt_id": attempt,
        "master_container": {"id": f"container_{attempt.attempt_id:02d}_000001", "host": "nm-1"},
        "app_attempt_tokens": f"tokens-{attempt}".encode() + b"\x00\xff",
        "state": "FINISHED",
        "final_tracking_url": f"http://proxy/{attempt}",
        "final_application_status": "SUCCEEDED",
        "am_container_exit_status": 0,
        "start_time": 1000 * attempt.attempt_id,
        "finish_time": 1000 * attempt.attempt_id + 500,
        "memory_seconds": 2048,
        "vcore_seconds": 2,
    }
    values.update(overrides)
    return ApplicationAttemptStateData(**values)  # type: ignore[arg-type]


def application_state(
    app_id: ApplicationId,
    attempts: int | list[int] = 1,
) -> ApplicationState:
    """
    Build an application with attempt records.

    Args:
        app_id: Application id.
        attempts: Number of attempts numbered from 1, or explicit attempt
            numbers (which may leave gaps).
    """
    numbers = list(range(1, attempts + 1)) if isinstance(attempts, int) else attempts
    app = ApplicationState(data=application_data(app_id))
    for number in numbers:
        attempt = attempt_id(app_id, number)
        app.attempts[attempt] = attempt_data(attempt)
    return app


def amrm_token_state(key_id: int = 1, with_next_key: bool = True) -> AMRMTokenSecretManagerState:
    return AMRMTokenSecretManagerState(
        current_master_key=MasterKey(key_id=key_id, key=bytes([key_id]) * 16),
        next_master_key=(
            MasterKey(key_id=key_id + 1, key=bytes([key_id + 1]) * 16) if with_next_key else None
        ),
    )


def delegation_key(key_id: int) -> DelegationKey:
    return DelegationKey(
        key_id=key_id,
        expiry_date=CLUSTER_TIMESTAMP + key_id * 86_400_000,
        key=b"\x01\x02" + key_id.to_bytes(4, "big"),
    )


def delegation_token(sequence_number: int, master_key_id: int = 1) -> RMDelegationTokenIdentifier:
    return RMDelegationTokenIdentifier(
        owner="alice",
        renewer="yarn",
        real_user="oozie",
        issue_date=CLUSTER_TIMESTAMP + sequence_number,
        max_date=CLUSTER_TIMESTAMP + sequence_number + 7 * 86_400_000,
        sequence_number=sequence_number,
        master_key_id=master_key_id,
    )


def snapshot(
    *applications: ApplicationState,
    amrm: AMRMTokenSecretManagerState | None = None,
    delegation_keys: int = 0,
    delegation_tokens: int = 0,
    dt_sequence_number: int | None = None,
) -> RMState:
    """
    Build an RMState.

    Tokens get sequence numbers 1..delegation_tokens. The running sequence
    number defaults to the highest token sequence number.
    """
    dt_state = RMDTSecretManagerState()
    for key_id in range(1, delegation_keys + 1):
        dt_state.master_key_state[key_id] = delegation_key(key_id)
    for sequence_number in range(1, delegation_tokens + 1):
        token = delegation_token(sequence_number)
        dt_state.token_state[token] = token.max_date - 86_400_000
    dt_state.dt_sequence_number = (
        delegation_tokens if dt_sequence_number is None else dt_sequence_number
    )
    return RMState(
        application_state={app.application_id: app for app in applications},
        amrm_token_secret_manager_state=amrm,
        rm_dt_secret_manager_state=dt_state,
    )


async def populate(store: StateStore, state: RMState, *, stamp_version: bool = True) -> None:
    """Write a snapshot into a started store through the public interface."""
    if stamp_version:
        await store.store_version()
    if state.amrm_token_secret_manager_state is not None:
        await store.store_or_update_amrm_token_secret_manager_state(
            state.amrm_token_secret_manager_state, is_update=False
        )
    for app_id, app in state.application_state.items():
        await store.store_application_state(app_id, app.data)
        for attempt in app.attempt_ids:
            await store.store_application_attempt_state(attempt, app.attempts[attempt])
    dt_state = state.rm_dt_secret_manager_state
    for key in dt_state.master_key_state.values():
        await store.store_rm_dt_master_key(key)
    for token, renew_date in dt_state.token_state.items():
        await store.store_rm_delegation_token(token, renew_date, token.sequence_number)
    if dt_state.dt_sequence_number:
        await store.store_rm_dt_sequence_number(dt_state.dt_sequence_number)


__all__ = [
    "CLUSTER_TIMESTAMP",
    "application_id",
    "attempt_id",
    "application_data",
    "attempt_data",
    "application_state",
    "amrm_token_state",
    "delegation_key",
    "delegation_token",
    "snapshot",
    "populate",
]
