"""
Configuration for state store handles.

One base StateStoreConfig is loaded per process and cloned for every store
handle with ``for_store()``, which injects the backend kind. Source and
destination therefore share everything except the kind.

Loading order used by the CLI: defaults, then an optional TOML file
(``[rmstate]`` table), then ``RMSTATE_*`` environment variables, then
explicit command-line options.

Example:
    >>> base = StateStoreConfig.from_env()
    >>> source_config = base.for_store(StoreKind.FS)
    >>> source_config.store_kind
    <StoreKind.FS: 'fs'>
"""

from __future__ import annotations

import dataclasses
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Self

from rmstate.exceptions import ConfigError

ENV_PREFIX = "RMSTATE_"

DEFAULT_FS_ROOT = "/tmp/hadoop-yarn/yarn/system/rmstore"
DEFAULT_REDIS_URL = "redis://localhost:6379/0"
DEFAULT_ZK_ROOT_PATH = "/rmstore"


class StoreKind(Enum):
    """
    Closed set of state store backends, selected by nickname.

    Attributes:
        FS: Hierarchical filesystem layout
        ZK: Coordination-service node tree
        MEM: In-memory map (process lifetime only)
        NULL: Discards writes, loads nothing
    """

    FS = "fs"
    ZK = "zk"
    MEM = "mem"
    NULL = "null"

    @classmethod
    def nicknames(cls) -> list[str]:
        """Allowed nicknames in declaration order."""
        return [kind.value for kind in cls]

    @classmethod
    def from_nickname(cls, nickname: str | None) -> StoreKind:
        """
        Resolve a nickname to a StoreKind.

        Raises:
            ConfigError: If the nickname is empty or unknown.
        """
        if nickname:
            for kind in cls:
                if kind.value == nickname:
                    return kind
        raise ConfigError(
            f"Invalid store nick name: '{nickname or ''}' Allowed values are {cls.nicknames()}"
        )


@dataclass(frozen=True)
class StateStoreConfig:
    """
    Settings shared by all store handles of one run.

    Attributes:
        store_kind: Backend this handle is bound to (None on the base config)
        fs_root: Root directory of the filesystem store
        redis_url: Connection URL of the coordination-service (Redis) store
        zk_root_path: Root node path of the coordination-service store
        socket_timeout: Client socket timeout in seconds for networked stores
        enable_tracing: Whether stores and the copier emit OpenTelemetry spans
    """

    store_kind: StoreKind | None = None
    fs_root: str = DEFAULT_FS_ROOT
    redis_url: str = DEFAULT_REDIS_URL
    zk_root_path: str = DEFAULT_ZK_ROOT_PATH
    socket_timeout: float = 10.0
    enable_tracing: bool = True

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not self.fs_root:
            raise ConfigError("fs_root must not be empty")
        if not self.redis_url:
            raise ConfigError("redis_url must not be empty")
        if not self.zk_root_path.startswith("/") or (
            len(self.zk_root_path) > 1 and self.zk_root_path.endswith("/")
        ):
            raise ConfigError(
                f"zk_root_path must be an absolute node path without a trailing slash, "
                f"got {self.zk_root_path!r}"
            )
        if self.socket_timeout <= 0:
            raise ConfigError(f"socket_timeout must be positive, got {self.socket_timeout}")

    def for_store(self, kind: StoreKind) -> StateStoreConfig:
        """Clone this configuration with the backend kind injected."""
        return dataclasses.replace(self, store_kind=kind)

    def with_overrides(self, **overrides: Any) -> StateStoreConfig:
        """Clone with the given fields replaced; None values are ignored."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        try:
            return dataclasses.replace(self, **changes)
        except TypeError as e:
            raise ConfigError(str(e)) from e

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        base: StateStoreConfig | None = None,
    ) -> Self:
        """
        Build a configuration from ``RMSTATE_*`` environment variables.

        Recognised variables: RMSTATE_FS_ROOT, RMSTATE_REDIS_URL,
        RMSTATE_ZK_ROOT_PATH, RMSTATE_SOCKET_TIMEOUT, RMSTATE_ENABLE_TRACING.

        Args:
            environ: Mapping to read from (defaults to os.environ)
            base: Configuration to layer the variables over
        """
        environ = os.environ if environ is None else environ
        values = _config_values(base or cls())

        for field in dataclasses.fields(cls):
            if field.name == "store_kind":
                continue
            raw = environ.get(f"{ENV_PREFIX}{field.name.upper()}")
            if raw is not None:
                values[field.name] = _coerce(field.name, raw)

        return cls(**values)

    @classmethod
    def from_toml(cls, path: str | Path) -> Self:
        """
        Load a configuration from the ``[rmstate]`` table of a TOML file.

        Raises:
            ConfigError: If the file cannot be read, is not valid TOML, or
                names an unknown setting.
        """
        try:
            with open(path, "rb") as f:
                document = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Cannot read configuration file {path}: {e}") from e

        table = document.get("rmstate", {})
        known = {field.name for field in dataclasses.fields(cls)} - {"store_kind"}
        unknown = sorted(set(table) - known)
        if unknown:
            raise ConfigError(f"Unknown settings in {path}: {', '.join(unknown)}")

        values = {name: _coerce(name, value) for name, value in table.items()}
        return cls(**values)


def _config_values(config: StateStoreConfig) -> dict[str, Any]:
    return {field.name: getattr(config, field.name) for field in dataclasses.fields(config)}


def _coerce(name: str, value: Any) -> Any:
    if name == "socket_timeout":
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"socket_timeout must be a number, got {value!r}") from e
    if name == "enable_tracing":
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in ("1", "true", "yes", "on")
    return str(value)


__all__ = [
    "StoreKind",
    "StateStoreConfig",
    "ENV_PREFIX",
    "DEFAULT_FS_ROOT",
    "DEFAULT_REDIS_URL",
    "DEFAULT_ZK_ROOT_PATH",
]
