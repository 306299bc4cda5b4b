"""
Filesystem state store implementation.

Persists recovery state as a directory tree of JSON documents:

    <fs_root>/FSRMStateRoot/
        RMVersionNode
        RMAppRoot/
            application_<ts>_<id>/
                application_<ts>_<id>              application record
                appattempt_<ts>_<id>_<attempt>     attempt records
        RMDTSecretManagerRoot/
            DelegationKey_<key id>
            RMDelegationToken_<sequence number>
            RMDTSequentialNumber_<sequence number> (empty marker file)
        AMRMTokenSecretManagerRoot/
            AMRMTokenSecretManagerNode

Every write goes to a ``.tmp`` sibling first and is then renamed over the
target, so a crash never leaves a half-written document behind. Blocking
filesystem calls run in worker threads via asyncio.to_thread.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from rmstate.exceptions import LoadError
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
    DelegationTokenRecord,
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

ROOT_DIR_NAME = "FSRMStateRoot"
VERSION_NODE = "RMVersionNode"
RM_APP_ROOT = "RMAppRoot"
RM_DT_SECRET_MANAGER_ROOT = "RMDTSecretManagerRoot"
AMRM_TOKEN_SECRET_MANAGER_ROOT = "AMRMTokenSecretManagerRoot"
AMRM_TOKEN_SECRET_MANAGER_NODE = "AMRMTokenSecretManagerNode"
DELEGATION_KEY_PREFIX = "DelegationKey_"
DELEGATION_TOKEN_PREFIX = "RMDelegationToken_"
DT_SEQUENCE_NUMBER_PREFIX = "RMDTSequentialNumber_"
TMP_SUFFIX = ".tmp"

ModelT = TypeVar("ModelT", bound=BaseModel)


class FileSystemStateStore(StateStore):
    """
    Filesystem implementation of StateStore.

    Features:
    - One JSON document per entity, laid out as a directory tree
    - Write-then-rename for every document
    - Parent-before-child: attempts require the application document

    Example:
        >>> store = FileSystemStateStore("/var/lib/yarn/rmstore")
        >>> async with store:
        ...     state = await store.load_state()
    """

    name = "fs"

    def __init__(
        self,
        root: str | Path,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the filesystem state store.

        Args:
            root: Directory under which FSRMStateRoot is kept.
            tracer: Optional custom Tracer instance.
            enable_tracing: Whether to enable OpenTelemetry tracing (default True).
                          Ignored if tracer is explicitly provided.
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._root = Path(root) / ROOT_DIR_NAME
        self._app_root = self._root / RM_APP_ROOT
        self._dt_root = self._root / RM_DT_SECRET_MANAGER_ROOT
        self._amrm_root = self._root / AMRM_TOKEN_SECRET_MANAGER_ROOT
        self._closed = False
        logger.debug("FileSystemStateStore initialized with %s", self._root)

    @property
    def root(self) -> Path:
        """The FSRMStateRoot directory."""
        return self._root

    async def start(self) -> None:
        with self._tracer.span("rmstate.store.start", {ATTR_STORE_NAME: self.name}):
            await asyncio.to_thread(self._make_dirs)
            logger.info("Using filesystem state store at %s", self._root)

    async def close(self) -> None:
        if not self._closed:
            self._closed = True
            logger.debug("FileSystemStateStore at %s closed", self._root)

    async def store_version(self) -> None:
        version = self.current_version
        with self._tracer.span(
            "rmstate.store.store_version",
            {ATTR_STORE_NAME: self.name, ATTR_VERSION: str(version)},
        ):
            await asyncio.to_thread(
                self._write_document, self._root / VERSION_NODE, version.model_dump_json()
            )

    async def load_version(self) -> Version | None:
        path = self._root / VERSION_NODE
        text = await asyncio.to_thread(self._read_document, path, missing_ok=True)
        if text is None:
            return None
        return self._parse(Version, path, text)

    async def load_state(self) -> RMState:
        with self._tracer.span("rmstate.store.load_state", {ATTR_STORE_NAME: self.name}):
            state = await asyncio.to_thread(self._load_state_sync)
            logger.debug("Loaded %r from %s", state, self._root)
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
            await asyncio.to_thread(self._store_application_sync, app_id, data)
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
            await asyncio.to_thread(self._store_attempt_sync, attempt_id, data)
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
            await asyncio.to_thread(
                self._write_document,
                self._amrm_root / AMRM_TOKEN_SECRET_MANAGER_NODE,
                state.model_dump_json(),
            )

    async def store_rm_dt_master_key(self, key: DelegationKey) -> None:
        with self._tracer.span(
            "rmstate.store.store_master_key",
            {ATTR_STORE_NAME: self.name, ATTR_KEY_ID: key.key_id},
        ):
            await asyncio.to_thread(
                self._write_document,
                self._dt_root / f"{DELEGATION_KEY_PREFIX}{key.key_id}",
                key.model_dump_json(),
            )

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
            record = DelegationTokenRecord(identifier=identifier, renew_date=renew_date)
            await asyncio.to_thread(
                self._write_document,
                self._dt_root / f"{DELEGATION_TOKEN_PREFIX}{identifier.sequence_number}",
                record.model_dump_json(),
            )
            await asyncio.to_thread(self._write_sequence_number, sequence_number)

    async def store_rm_dt_sequence_number(self, sequence_number: int) -> None:
        with self._tracer.span(
            "rmstate.store.store_sequence_number",
            {ATTR_STORE_NAME: self.name, ATTR_SEQUENCE_NUMBER: sequence_number},
        ):
            await asyncio.to_thread(self._write_sequence_number, sequence_number)

    # -------------------------------------------------------------------------
    # Blocking helpers (run in worker threads)
    # -------------------------------------------------------------------------

    def _make_dirs(self) -> None:
        for directory in (self._app_root, self._dt_root, self._amrm_root):
            directory.mkdir(parents=True, exist_ok=True)

    def _write_document(self, path: Path, text: str) -> None:
        tmp_path = path.with_name(path.name + TMP_SUFFIX)
        tmp_path.write_text(text, encoding="utf-8")
        os.replace(tmp_path, path)

    def _read_document(self, path: Path, *, missing_ok: bool = False) -> str | None:
        """Read a document, reporting unreadable files as LoadError naming the path."""
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            if missing_ok:
                return None
            raise LoadError(self.name, f"{path}: {e}") from e
        except (OSError, UnicodeDecodeError) as e:
            raise LoadError(self.name, f"{path}: {e}") from e

    def _store_application_sync(self, app_id: ApplicationId, data: ApplicationStateData) -> None:
        app_dir = self._app_root / str(app_id)
        app_dir.mkdir(parents=True, exist_ok=True)
        self._write_document(app_dir / str(app_id), data.model_dump_json())

    def _store_attempt_sync(
        self,
        attempt_id: ApplicationAttemptId,
        data: ApplicationAttemptStateData,
    ) -> None:
        app_id = str(attempt_id.application_id)
        app_file = self._app_root / app_id / app_id
        if not app_file.is_file():
            raise FileNotFoundError(f"Application {app_id} doesn't exist at {app_file}")
        self._write_document(app_file.parent / str(attempt_id), data.model_dump_json())

    def _write_sequence_number(self, sequence_number: int) -> None:
        new_marker = self._dt_root / f"{DT_SEQUENCE_NUMBER_PREFIX}{sequence_number}"
        new_marker.touch()
        for marker in self._dt_root.glob(f"{DT_SEQUENCE_NUMBER_PREFIX}*"):
            if marker != new_marker:
                marker.unlink(missing_ok=True)

    def _load_state_sync(self) -> RMState:
        state = RMState()
        self._load_applications(state)
        self._load_dt_state(state.rm_dt_secret_manager_state)

        amrm_path = self._amrm_root / AMRM_TOKEN_SECRET_MANAGER_NODE
        text = self._read_document(amrm_path, missing_ok=True)
        if text is not None:
            state.amrm_token_secret_manager_state = self._parse(
                AMRMTokenSecretManagerState, amrm_path, text
            )
        return state

    def _load_applications(self, state: RMState) -> None:
        if not self._app_root.is_dir():
            return
        for app_dir in sorted(self._app_root.iterdir()):
            if not app_dir.is_dir():
                continue
            app_file = app_dir / app_dir.name
            text = self._read_document(app_file, missing_ok=True)
            if text is None:
                logger.warning("Skipping %s: application document is missing", app_dir)
                continue
            data = self._parse(ApplicationStateData, app_file, text)
            app = ApplicationState(data=data)

            for path in sorted(app_dir.iterdir()):
                if path.name.endswith(TMP_SUFFIX) or path == app_file:
                    continue
                if not path.name.startswith(ApplicationAttemptId.PREFIX):
                    logger.warning("Unknown file %s in application directory", path)
                    continue
                attempt = self._parse(ApplicationAttemptStateData, path, self._read_document(path))
                app.attempts[attempt.attempt_id] = attempt

            state.application_state[data.application_id] = app

    def _load_dt_state(self, dt_state: RMDTSecretManagerState) -> None:
        if not self._dt_root.is_dir():
            return
        for path in sorted(self._dt_root.iterdir()):
            name = path.name
            if name.endswith(TMP_SUFFIX):
                continue
            if name.startswith(DELEGATION_KEY_PREFIX):
                key = self._parse(DelegationKey, path, self._read_document(path))
                dt_state.master_key_state[key.key_id] = key
            elif name.startswith(DELEGATION_TOKEN_PREFIX):
                record = self._parse(DelegationTokenRecord, path, self._read_document(path))
                dt_state.token_state[record.identifier] = record.renew_date
            elif name.startswith(DT_SEQUENCE_NUMBER_PREFIX):
                suffix = name[len(DT_SEQUENCE_NUMBER_PREFIX) :]
                try:
                    number = int(suffix)
                except ValueError as e:
                    raise LoadError(self.name, f"{path}: bad sequence number marker") from e
                dt_state.dt_sequence_number = max(dt_state.dt_sequence_number, number)
            else:
                logger.warning("Unknown file %s in secret manager directory", path)

    def _parse(self, model: type[ModelT], path: Path, text: str) -> ModelT:
        try:
            return model.model_validate_json(text)
        except ValidationError as e:
            raise LoadError(self.name, f"{path}: {e}") from e

    def __repr__(self) -> str:
        return f"FileSystemStateStore(root={str(self._root)!r})"


__all__ = ["FileSystemStateStore"]
