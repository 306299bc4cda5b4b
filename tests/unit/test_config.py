"""Unit tests for StoreKind and StateStoreConfig."""

from __future__ import annotations

import pytest

from rmstate.config import DEFAULT_FS_ROOT, StateStoreConfig, StoreKind
from rmstate.exceptions import ConfigError


class TestStoreKind:
    def test_nicknames(self):
        assert StoreKind.nicknames() == ["fs", "zk", "mem", "null"]

    @pytest.mark.parametrize("nickname", ["fs", "zk", "mem", "null"])
    def test_from_nickname(self, nickname):
        assert StoreKind.from_nickname(nickname).value == nickname

    @pytest.mark.parametrize("nickname", ["leveldb", "FS", "", None])
    def test_from_nickname_rejects_unknown(self, nickname):
        with pytest.raises(ConfigError) as exc_info:
            StoreKind.from_nickname(nickname)

        message = str(exc_info.value)
        assert message.startswith("Invalid store nick name:")
        assert "['fs', 'zk', 'mem', 'null']" in message


class TestStateStoreConfig:
    def test_defaults(self):
        config = StateStoreConfig()

        assert config.store_kind is None
        assert config.fs_root == DEFAULT_FS_ROOT
        assert config.redis_url == "redis://localhost:6379/0"
        assert config.zk_root_path == "/rmstore"
        assert config.socket_timeout == 10.0
        assert config.enable_tracing is True

    def test_for_store_clones_with_kind(self):
        base = StateStoreConfig(fs_root="/data")

        source = base.for_store(StoreKind.FS)
        destination = base.for_store(StoreKind.ZK)

        assert source.store_kind is StoreKind.FS
        assert destination.store_kind is StoreKind.ZK
        assert source.fs_root == destination.fs_root == "/data"
        assert base.store_kind is None

    def test_with_overrides_ignores_none(self):
        config = StateStoreConfig().with_overrides(fs_root="/srv/rmstore", redis_url=None)

        assert config.fs_root == "/srv/rmstore"
        assert config.redis_url == "redis://localhost:6379/0"

    def test_with_overrides_unknown_field(self):
        with pytest.raises(ConfigError):
            StateStoreConfig().with_overrides(zk_quorum="zk1:2181")

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"fs_root": ""},
            {"redis_url": ""},
            {"zk_root_path": "rmstore"},
            {"zk_root_path": "/rmstore/"},
            {"socket_timeout": 0},
        ],
    )
    def test_validation(self, kwargs):
        with pytest.raises(ConfigError):
            StateStoreConfig(**kwargs)

    def test_root_zk_path_allowed(self):
        assert StateStoreConfig(zk_root_path="/").zk_root_path == "/"


class TestConfigFromEnv:
    def test_reads_prefixed_variables(self):
        config = StateStoreConfig.from_env(
            {
                "RMSTATE_FS_ROOT": "/mnt/rmstore",
                "RMSTATE_REDIS_URL": "redis://meta:6379/1",
                "RMSTATE_ZK_ROOT_PATH": "/yarn",
                "RMSTATE_SOCKET_TIMEOUT": "2.5",
                "RMSTATE_ENABLE_TRACING": "false",
                "UNRELATED": "x",
            }
        )

        assert config.fs_root == "/mnt/rmstore"
        assert config.redis_url == "redis://meta:6379/1"
        assert config.zk_root_path == "/yarn"
        assert config.socket_timeout == 2.5
        assert config.enable_tracing is False

    def test_layers_over_base(self):
        base = StateStoreConfig(fs_root="/from/file", redis_url="redis://file:6379/0")

        config = StateStoreConfig.from_env({"RMSTATE_REDIS_URL": "redis://env:6379/0"}, base=base)

        assert config.fs_root == "/from/file"
        assert config.redis_url == "redis://env:6379/0"

    def test_bad_timeout(self):
        with pytest.raises(ConfigError, match="socket_timeout must be a number"):
            StateStoreConfig.from_env({"RMSTATE_SOCKET_TIMEOUT": "soon"})

    def test_store_kind_not_read_from_env(self):
        config = StateStoreConfig.from_env({"RMSTATE_STORE_KIND": "fs"})

        assert config.store_kind is None


class TestConfigFromToml:
    def test_reads_rmstate_table(self, tmp_path):
        path = tmp_path / "rmstate.toml"
        path.write_text(
            "[rmstate]\n"
            'fs_root = "/var/lib/rmstore"\n'
            'redis_url = "redis://meta:6379/3"\n'
            "socket_timeout = 5\n"
            "enable_tracing = false\n"
        )

        config = StateStoreConfig.from_toml(path)

        assert config.fs_root == "/var/lib/rmstore"
        assert config.redis_url == "redis://meta:6379/3"
        assert config.socket_timeout == 5.0
        assert config.enable_tracing is False

    def test_missing_table_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.toml"
        path.write_text("[other]\nkey = 1\n")

        assert StateStoreConfig.from_toml(path) == StateStoreConfig()

    def test_unknown_setting_rejected(self, tmp_path):
        path = tmp_path / "rmstate.toml"
        path.write_text('[rmstate]\nzk_quorum = "zk1:2181"\n')

        with pytest.raises(ConfigError, match="Unknown settings .*zk_quorum"):
            StateStoreConfig.from_toml(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Cannot read configuration file"):
            StateStoreConfig.from_toml(tmp_path / "absent.toml")

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("[rmstate\n")

        with pytest.raises(ConfigError):
            StateStoreConfig.from_toml(path)
