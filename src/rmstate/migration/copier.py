"""
StateCopier - Replays the full recovery state of one store into another.

The copier reads one snapshot from the source store and writes it into a
destination store that starts empty. Phases run strictly in this order:

    1. Stamp the destination with the version marker
    2. Load the full snapshot from the source
    3. AM-RM token secret state
    4. Applications, each followed by its attempts in attempt-number order
    5. Delegation-token master keys, tokens, then the sequence number
    6. Close both stores (always, also after a failure)

The version marker goes first so a destination left behind by a crashed run
is recognisable as versioned but incomplete. Applications go before their
attempts because backends refuse children without a parent.

Usage:
    >>> copier = StateCopier(policy=FailurePolicy.BEST_EFFORT)
    >>> result = await copier.migrate(source_store, destination_store)
    >>> print(f"Copied {result.applications} applications")
"""

from __future__ import annotations

import logging
import time
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING

from rmstate.config import StateStoreConfig, StoreKind
from rmstate.exceptions import (
    CloseError,
    ConfigError,
    DestinationNotEmptyError,
    LoadError,
    StateStoreError,
    WriteError,
)
from rmstate.migration.models import (
    ApplicationFailure,
    FailurePolicy,
    MigrationPhase,
    MigrationResult,
)
from rmstate.observability import Tracer, create_tracer
from rmstate.observability.attributes import (
    ATTR_ENTITY_COUNT,
    ATTR_MIGRATION_PHASE,
    ATTR_MIGRATION_POLICY,
    ATTR_MIGRATION_SOURCE_STORE,
    ATTR_MIGRATION_TARGET_STORE,
)
from rmstate.records import ApplicationId
from rmstate.stores.interface import ApplicationState, RMState, StateStore
from rmstate.stores.registry import StoreRegistry, default_registry

if TYPE_CHECKING:
    from opentelemetry.trace import Span

logger = logging.getLogger(__name__)


class StateCopier:
    """
    Migration engine copying recovery state between two started stores.

    The caller owns the check that source and destination are different
    backends. The copier takes ownership of both handles and closes them
    when migrate() returns or raises.

    Attributes:
        _policy: FailurePolicy for per-application write failures.
        _require_empty_destination: Refuse destinations holding state.
    """

    def __init__(
        self,
        *,
        policy: FailurePolicy = FailurePolicy.FAIL_FAST,
        require_empty_destination: bool = True,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the copier.

        Args:
            policy: How to handle a failed application write.
            require_empty_destination: When True (default) a destination that
                already holds recovery state is rejected before anything is
                written. When False, existing entities are overwritten.
            tracer: Optional custom Tracer instance. If not provided, one is
                   created based on enable_tracing setting.
            enable_tracing: Whether to enable OpenTelemetry tracing.
                          Ignored if tracer is explicitly provided.
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._policy = policy
        self._require_empty_destination = require_empty_destination

    @property
    def policy(self) -> FailurePolicy:
        return self._policy

    async def migrate(self, source: StateStore, destination: StateStore) -> MigrationResult:
        """
        Copy everything from source into destination.

        Args:
            source: Started store to read from.
            destination: Started store to write to.

        Returns:
            MigrationResult with counts, skipped applications (BEST_EFFORT
            only) and close errors.

        Raises:
            DestinationNotEmptyError: If the destination holds state and an
                empty destination is required.
            LoadError: If the source cannot be read.
            WriteError: If a destination write fails (for applications, only
                under FAIL_FAST).
        """
        result = MigrationResult(
            source_store=source.name,
            destination_store=destination.name,
            policy=self._policy,
        )
        start_time = time.monotonic()

        try:
            with self._tracer.span(
                "rmstate.copier.migrate",
                {
                    ATTR_MIGRATION_SOURCE_STORE: source.name,
                    ATTR_MIGRATION_TARGET_STORE: destination.name,
                    ATTR_MIGRATION_POLICY: self._policy.value,
                },
            ):
                if self._require_empty_destination:
                    await self._check_destination_empty(destination)

                await self._store_version(destination)
                logger.info("Stored version info in destination store")

                state = await self._load_state(source)
                logger.info("Loaded state from source store: %r", state)

                await self._copy_amrm_token_state(state, destination, result)
                logger.info("Copied AM-RM token secret manager state to destination store")

                await self._copy_app_state(state, destination, result)
                logger.info("Copied application state to destination store")

                await self._copy_rm_dt_state(state, destination, result)
                logger.info("Copied RM delegation token manager state to destination store")
        finally:
            with self._phase(MigrationPhase.CLOSE):
                await self._close_store(source, "source", result)
                await self._close_store(destination, "destination", result)
            result.duration_seconds = time.monotonic() - start_time

        logger.info(
            "Migration from %s to %s finished in %.2fs: %d applications, %d attempts, "
            "%d delegation keys, %d delegation tokens, %d failed applications",
            source.name,
            destination.name,
            result.duration_seconds,
            result.applications,
            result.attempts,
            result.delegation_keys,
            result.delegation_tokens,
            len(result.failed_applications),
        )
        return result

    async def _check_destination_empty(self, destination: StateStore) -> None:
        with self._phase(MigrationPhase.PRECHECK):
            try:
                empty = await destination.is_empty()
            except StateStoreError:
                raise
            except Exception as e:
                raise LoadError(destination.name, str(e)) from e
            if not empty:
                raise DestinationNotEmptyError(destination.name)

    async def _store_version(self, destination: StateStore) -> None:
        with self._phase(MigrationPhase.STORE_VERSION):
            try:
                await destination.store_version()
            except Exception as e:
                raise WriteError(
                    MigrationPhase.STORE_VERSION.value,
                    "version",
                    str(destination.current_version),
                    str(e),
                ) from e

    async def _load_state(self, source: StateStore) -> RMState:
        with self._phase(MigrationPhase.LOAD_STATE):
            try:
                version = await source.load_version()
                if version is not None and not version.is_compatible_to(source.current_version):
                    raise LoadError(
                        source.name,
                        f"incompatible state version {version}, "
                        f"expected {source.current_version.major}.x",
                    )
                return await source.load_state()
            except LoadError:
                raise
            except Exception as e:
                raise LoadError(source.name, str(e)) from e

    async def _copy_amrm_token_state(
        self,
        state: RMState,
        destination: StateStore,
        result: MigrationResult,
    ) -> None:
        token_state = state.amrm_token_secret_manager_state
        if token_state is None:
            logger.info("Source store has no AM-RM token secret manager state")
            return

        with self._phase(MigrationPhase.AMRM_TOKEN_STATE):
            try:
                await destination.store_or_update_amrm_token_secret_manager_state(
                    token_state, is_update=False
                )
            except Exception as e:
                raise WriteError(
                    MigrationPhase.AMRM_TOKEN_STATE.value,
                    "AM-RM token secret manager state",
                    str(token_state.current_master_key.key_id),
                    str(e),
                ) from e
            result.amrm_token_state_copied = True

    async def _copy_app_state(
        self,
        state: RMState,
        destination: StateStore,
        result: MigrationResult,
    ) -> None:
        applications = sorted(
            state.application_state.items(),
            key=lambda item: (item[0].cluster_timestamp, item[0].id),
        )
        logger.info("Copying %d applications", len(applications))

        with self._phase(MigrationPhase.APPLICATIONS, len(applications)):
            for app_id, app_state in applications:
                try:
                    attempts = await self._copy_application(app_id, app_state, destination)
                except WriteError as e:
                    if self._policy is FailurePolicy.FAIL_FAST:
                        raise
                    logger.error("Skipping application %s: %s", app_id, e)
                    result.failed_applications.append(
                        ApplicationFailure(
                            application_id=str(app_id),
                            entity=e.entity,
                            entity_id=e.entity_id,
                            error_message=str(e.__cause__ or e),
                        )
                    )
                    continue

                result.applications += 1
                result.attempts += attempts

    async def _copy_application(
        self,
        app_id: ApplicationId,
        app_state: ApplicationState,
        destination: StateStore,
    ) -> int:
        phase = MigrationPhase.APPLICATIONS.value
        logger.info("Copying application %s", app_id)
        try:
            await destination.store_application_state(app_id, app_state.data)
        except Exception as e:
            raise WriteError(phase, "application", str(app_id), str(e)) from e

        missing = app_state.missing_attempt_numbers()
        if missing:
            logger.warning(
                "Application %s has no attempt record for attempt numbers %s",
                app_id,
                missing,
            )

        for attempt_id in app_state.attempt_ids:
            logger.debug("Copying attempt %s", attempt_id)
            try:
                await destination.store_application_attempt_state(
                    attempt_id, app_state.attempts[attempt_id]
                )
            except Exception as e:
                raise WriteError(phase, "attempt", str(attempt_id), str(e)) from e

        return app_state.attempt_count

    async def _copy_rm_dt_state(
        self,
        state: RMState,
        destination: StateStore,
        result: MigrationResult,
    ) -> None:
        phase = MigrationPhase.DELEGATION_TOKEN_STATE
        dt_state = state.rm_dt_secret_manager_state
        logger.info(
            "Copying %d RM delegation token master keys and %d RM delegation tokens",
            len(dt_state.master_key_state),
            len(dt_state.token_state),
        )

        with self._phase(phase, len(dt_state.master_key_state) + len(dt_state.token_state)):
            for key_id in sorted(dt_state.master_key_state):
                try:
                    await destination.store_rm_dt_master_key(dt_state.master_key_state[key_id])
                except Exception as e:
                    raise WriteError(phase.value, "delegation key", str(key_id), str(e)) from e
                result.delegation_keys += 1

            tokens = sorted(dt_state.token_state.items(), key=lambda item: item[0].sequence_number)
            for identifier, renew_date in tokens:
                try:
                    await destination.store_rm_delegation_token(
                        identifier, renew_date, identifier.sequence_number
                    )
                except Exception as e:
                    raise WriteError(
                        phase.value, "delegation token", str(identifier.sequence_number), str(e)
                    ) from e
                result.delegation_tokens += 1

            sequence_number = max(dt_state.dt_sequence_number, dt_state.max_token_sequence_number)
            try:
                await destination.store_rm_dt_sequence_number(sequence_number)
            except Exception as e:
                raise WriteError(
                    phase.value, "delegation token sequence number", str(sequence_number), str(e)
                ) from e
            result.dt_sequence_number = sequence_number

    async def _close_store(self, store: StateStore, role: str, result: MigrationResult) -> None:
        try:
            await store.close()
        except Exception as e:
            error = CloseError(store.name, str(e))
            logger.error("Failed to close %s store: %s", role, error)
            result.close_errors.append(error)
        else:
            logger.info("Closed %s store", role)

    def _phase(
        self, phase: MigrationPhase, count: int | None = None
    ) -> AbstractContextManager[Span | None]:
        attributes: dict[str, str | int] = {ATTR_MIGRATION_PHASE: phase.value}
        if count is not None:
            attributes[ATTR_ENTITY_COUNT] = count
        return self._tracer.span(f"rmstate.copier.{phase.value}", attributes)


async def copy_state_stores(
    source_kind: StoreKind,
    destination_kind: StoreKind,
    config: StateStoreConfig,
    *,
    registry: StoreRegistry | None = None,
    copier: StateCopier | None = None,
) -> MigrationResult:
    """
    Open both stores and copy the source into the destination.

    Args:
        source_kind: Backend to read from.
        destination_kind: Backend to write to. Must differ from source_kind.
        config: Base configuration, cloned per store.
        registry: Backend registry (defaults to the built-in backends).
        copier: Copier to run (defaults to a FAIL_FAST StateCopier).

    Raises:
        ConfigError: If both kinds are the same. No store is created.
        StoreInitError: If either store cannot be started.
        StateStoreError: Any error raised by StateCopier.migrate().
    """
    if source_kind == destination_kind:
        raise ConfigError(f"Source and destination stores are same: {source_kind.value}")

    registry = registry or default_registry()
    copier = copier or StateCopier(enable_tracing=config.enable_tracing)

    source = await registry.open(source_kind, config)
    logger.info("Initialized source store %r", source)
    try:
        destination = await registry.open(destination_kind, config)
    except BaseException:
        try:
            await source.close()
        except Exception as close_error:
            logger.error("Failed to close source store: %s", CloseError(source.name, str(close_error)))
        raise
    logger.info("Initialized destination store %r", destination)

    return await copier.migrate(source, destination)


__all__ = [
    "StateCopier",
    "copy_state_stores",
]
