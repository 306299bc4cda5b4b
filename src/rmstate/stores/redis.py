"""
Coordination-service state store backed by Redis.

Keeps recovery state as a tree of nodes, the way a coordination service
does. Each node is a Redis string holding the node's data, and the names of
its children are kept in a companion Redis set:

    rmstate:<path>             node data
    rmstate:<path>:children    set of child node names

The tree mirrors the classic coordination-service layout:

    <zk_root_path>/ZKRMStateRoot
        RMVersionNode
        RMAppRoot/<application id>/<attempt id>
        RMDTSecretManagerRoot/
            RMDTMasterKeysRoot/DelegationKey_<key id>
            RMDelegationTokensRoot/RMDelegationToken_<sequence number>
            RMDTSequentialNumber
        AMRMTokenSecretManagerRoot

Creating a node requires its parent node, so an attempt can never be
written before its application. Node data and the parent's child set are
updated together in a MULTI/EXEC pipeline.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypeVar

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

if TYPE_CHECKING:
    from rmstate.config import StateStoreConfig

# Optional Redis import - fail gracefully if not installed
try:
    import redis.asyncio as aioredis
    from redis.asyncio import Redis

    REDIS_AVAILABLE = True
except ImportError:
    REDIS_AVAILABLE = False
    aioredis = None  # type: ignore[assignment]
    Redis = None  # type: ignore[assignment, misc]

logger = logging.getLogger(__name__)

KEY_NAMESPACE = "rmstate"
ROOT_NODE_NAME = "ZKRMStateRoot"
VERSION_NODE = "RMVersionNode"
RM_APP_ROOT = "RMAppRoot"
RM_DT_SECRET_MANAGER_ROOT = "RMDTSecretManagerRoot"
RM_DT_MASTER_KEYS_ROOT = "RMDTMasterKeysRoot"
RM_DELEGATION_TOKENS_ROOT = "RMDelegationTokensRoot"
RM_DT_SEQUENCE_NUMBER_NODE = "RMDTSequentialNumber"
AMRM_TOKEN_SECRET_MANAGER_ROOT = "AMRMTokenSecretManagerRoot"
DELEGATION_KEY_PREFIX = "DelegationKey_"
DELEGATION_TOKEN_PREFIX = "RMDelegationToken_"

ModelT = TypeVar("ModelT", bound=BaseModel)


class RedisNotAvailableError(ImportError):
    """Raised when redis package is not installed."""

    def __init__(self) -> None:
        super().__init__(
            "Redis package is not installed. Install it with: pip install rmstate-copy[redis]"
        )


class NoNodeError(LookupError):
    """Raised when a node's parent does not exist."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Node does not exist: {path}")


class RedisStateStore(StateStore):
    """
    Coordination-service implementation of StateStore on Redis.

    Example:
        >>> store = RedisStateStore(
        ...     redis_url="redis://localhost:6379/0",
        ...     root_path="/rmstore",
        ... )
        >>> async with store:
        ...     state = await store.load_state()
    """

    name = "zk"

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        root_path: str = "/rmstore",
        *,
        socket_timeout: float = 10.0,
        client: Any | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the Redis node-tree state store.

        Args:
            redis_url: Redis connection URL.
            root_path: Parent path of the ZKRMStateRoot node.
            socket_timeout: Socket and connect timeout in seconds.
            client: Pre-built redis.asyncio client, owned by the caller and
                   left open by close(). Connection settings are
                   ignored when provided.
            tracer: Optional custom Tracer instance.
            enable_tracing: Whether to enable OpenTelemetry tracing (default True).

        Raises:
            RedisNotAvailableError: If redis package is not installed
        """
        if not REDIS_AVAILABLE:
            raise RedisNotAvailableError()

        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._redis_url = redis_url
        self._socket_timeout = socket_timeout
        self._redis: Redis | None = client
        self._owns_client = client is None
        self._closed = False

        self._parent_path = root_path.rstrip("/")
        self._root = f"{self._parent_path}/{ROOT_NODE_NAME}"
        self._version_node = f"{self._root}/{VERSION_NODE}"
        self._app_root = f"{self._root}/{RM_APP_ROOT}"
        self._dt_root = f"{self._root}/{RM_DT_SECRET_MANAGER_ROOT}"
        self._dt_keys_root = f"{self._dt_root}/{RM_DT_MASTER_KEYS_ROOT}"
        self._dt_tokens_root = f"{self._dt_root}/{RM_DELEGATION_TOKENS_ROOT}"
        self._dt_sequence_node = f"{self._dt_root}/{RM_DT_SEQUENCE_NUMBER_NODE}"
        self._amrm_node = f"{self._root}/{AMRM_TOKEN_SECRET_MANAGER_ROOT}"

    @classmethod
    def from_config(
        cls,
        config: StateStoreConfig,
        *,
        tracer: Tracer | None = None,
    ) -> RedisStateStore:
        """Create a store from the shared configuration."""
        return cls(
            redis_url=config.redis_url,
            root_path=config.zk_root_path,
            socket_timeout=config.socket_timeout,
            tracer=tracer,
            enable_tracing=config.enable_tracing,
        )

    @property
    def root_path(self) -> str:
        """Path of the ZKRMStateRoot node."""
        return self._root

    async def start(self) -> None:
        with self._tracer.span("rmstate.store.start", {ATTR_STORE_NAME: self.name}):
            if self._redis is None:
                self._redis = await aioredis.from_url(  # type: ignore[no-untyped-call]
                    self._redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                    socket_timeout=self._socket_timeout,
                    socket_connect_timeout=self._socket_timeout,
                )
            await self._redis.ping()

            for path in (
                self._app_root,
                self._dt_keys_root,
                self._dt_tokens_root,
                self._amrm_node,
            ):
                await self._ensure_path(path)
            logger.info("Using coordination-service state store at %s", self._root)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._redis is not None and self._owns_client:
            await self._redis.aclose()
            self._redis = None
        logger.debug("RedisStateStore at %s closed", self._root)

    async def store_version(self) -> None:
        version = self.current_version
        with self._tracer.span(
            "rmstate.store.store_version",
            {ATTR_STORE_NAME: self.name, ATTR_VERSION: str(version)},
        ):
            await self._set_node(self._version_node, version.model_dump_json())

    async def load_version(self) -> Version | None:
        data = await self._get_data(self._version_node)
        if not data:
            return None
        return self._parse(Version, self._version_node, data)

    async def load_state(self) -> RMState:
        with self._tracer.span("rmstate.store.load_state", {ATTR_STORE_NAME: self.name}):
            state = RMState()
            await self._load_applications(state)
            await self._load_dt_state(state.rm_dt_secret_manager_state)

            data = await self._get_data(self._amrm_node)
            if data:
                state.amrm_token_secret_manager_state = self._parse(
                    AMRMTokenSecretManagerState, self._amrm_node, data
                )
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
            await self._set_node(f"{self._app_root}/{app_id}", data.model_dump_json())
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
            path = f"{self._app_root}/{attempt_id.application_id}/{attempt_id}"
            await self._set_node(path, data.model_dump_json())
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
            await self._set_node(self._amrm_node, state.model_dump_json())

    async def store_rm_dt_master_key(self, key: DelegationKey) -> None:
        with self._tracer.span(
            "rmstate.store.store_master_key",
            {ATTR_STORE_NAME: self.name, ATTR_KEY_ID: key.key_id},
        ):
            path = f"{self._dt_keys_root}/{DELEGATION_KEY_PREFIX}{key.key_id}"
            await self._set_node(path, key.model_dump_json())

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
            path = f"{self._dt_tokens_root}/{DELEGATION_TOKEN_PREFIX}{identifier.sequence_number}"
            await self._set_node(path, record.model_dump_json())
            await self._set_node(self._dt_sequence_node, str(sequence_number))

    async def store_rm_dt_sequence_number(self, sequence_number: int) -> None:
        with self._tracer.span(
            "rmstate.store.store_sequence_number",
            {ATTR_STORE_NAME: self.name, ATTR_SEQUENCE_NUMBER: sequence_number},
        ):
            await self._set_node(self._dt_sequence_node, str(sequence_number))

    # -------------------------------------------------------------------------
    # Node tree primitives
    # -------------------------------------------------------------------------

    @property
    def _client(self) -> Redis:
        if self._redis is None:
            raise RuntimeError("RedisStateStore is not started")
        return self._redis

    @staticmethod
    def _data_key(path: str) -> str:
        return f"{KEY_NAMESPACE}:{path}"

    @staticmethod
    def _children_key(path: str) -> str:
        return f"{KEY_NAMESPACE}:{path}:children"

    @staticmethod
    def _split(path: str) -> tuple[str, str]:
        parent, _, name = path.rpartition("/")
        return parent, name

    async def _exists(self, path: str) -> bool:
        return bool(await self._client.exists(self._data_key(path)))

    async def _set_node(self, path: str, data: str) -> None:
        """Create or overwrite a node; its parent must exist."""
        parent, name = self._split(path)
        if parent and not await self._exists(parent):
            raise NoNodeError(parent)
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.set(self._data_key(path), data)
            if parent:
                pipe.sadd(self._children_key(parent), name)
            await pipe.execute()

    async def _ensure_path(self, path: str) -> None:
        """Create every missing node along path with empty data."""
        current = ""
        for part in path.strip("/").split("/"):
            current = f"{current}/{part}"
            if not await self._exists(current):
                await self._set_node(current, "")

    async def _get_data(self, path: str) -> str | None:
        try:
            return await self._client.get(self._data_key(path))
        except UnicodeDecodeError as e:
            raise LoadError(self.name, f"{path}: {e}") from e

    async def _get_children(self, path: str) -> list[str]:
        return sorted(await self._client.smembers(self._children_key(path)))

    async def _load_applications(self, state: RMState) -> None:
        for app_name in await self._get_children(self._app_root):
            app_path = f"{self._app_root}/{app_name}"
            data = await self._get_data(app_path)
            if not data:
                logger.warning("Skipping node %s: no application data", app_path)
                continue
            app = ApplicationState(data=self._parse(ApplicationStateData, app_path, data))

            for attempt_name in await self._get_children(app_path):
                attempt_path = f"{app_path}/{attempt_name}"
                attempt_data = await self._get_data(attempt_path)
                if not attempt_data:
                    logger.warning("Skipping node %s: no attempt data", attempt_path)
                    continue
                attempt = self._parse(ApplicationAttemptStateData, attempt_path, attempt_data)
                app.attempts[attempt.attempt_id] = attempt

            state.application_state[app.application_id] = app

    async def _load_dt_state(self, dt_state: RMDTSecretManagerState) -> None:
        for key_name in await self._get_children(self._dt_keys_root):
            path = f"{self._dt_keys_root}/{key_name}"
            data = await self._get_data(path)
            if data:
                key = self._parse(DelegationKey, path, data)
                dt_state.master_key_state[key.key_id] = key

        for token_name in await self._get_children(self._dt_tokens_root):
            path = f"{self._dt_tokens_root}/{token_name}"
            data = await self._get_data(path)
            if data:
                record = self._parse(DelegationTokenRecord, path, data)
                dt_state.token_state[record.identifier] = record.renew_date

        data = await self._get_data(self._dt_sequence_node)
        if data:
            try:
                dt_state.dt_sequence_number = int(data)
            except ValueError as e:
                raise LoadError(
                    self.name, f"{self._dt_sequence_node}: bad sequence number {data!r}"
                ) from e

    def _parse(self, model: type[ModelT], path: str, data: str) -> ModelT:
        try:
            return model.model_validate_json(data)
        except ValidationError as e:
            raise LoadError(self.name, f"{path}: {e}") from e

    def __repr__(self) -> str:
        return f"RedisStateStore(url={self._redis_url!r}, root={self._root!r})"


__all__ = [
    "REDIS_AVAILABLE",
    "RedisStateStore",
    "RedisNotAvailableError",
    "NoNodeError",
]
