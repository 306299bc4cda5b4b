"""
Unit tests for exceptions module.

Tests the exception hierarchy, messages, phases and structured output.
"""

import pytest

from rmstate.exceptions import (
    CloseError,
    ConfigError,
    DestinationNotEmptyError,
    LoadError,
    StateStoreError,
    StoreInitError,
    WriteError,
)


class TestStateStoreError:
    def test_base_exception(self):
        with pytest.raises(StateStoreError) as exc_info:
            raise StateStoreError("Test error")

        assert str(exc_info.value) == "Test error"
        assert exc_info.value.phase == "migrate"
        assert exc_info.value.fatal is True

    def test_explicit_phase(self):
        assert StateStoreError("x", phase="applications").phase == "applications"

    @pytest.mark.parametrize(
        "error_type",
        [ConfigError, DestinationNotEmptyError, StoreInitError, LoadError, WriteError, CloseError],
    )
    def test_all_errors_subclass_base(self, error_type):
        assert issubclass(error_type, StateStoreError)


class TestConfigErrors:
    def test_config_error_phase(self):
        assert ConfigError("bad name").phase == "configure"

    def test_destination_not_empty(self):
        error = DestinationNotEmptyError("zk")

        assert isinstance(error, ConfigError)
        assert error.store_name == "zk"
        assert "Destination store 'zk' is not empty" in str(error)


class TestStoreErrors:
    def test_store_init_error(self):
        error = StoreInitError("zk", "connection refused")

        assert error.phase == "initialize"
        assert str(error) == "Failed to initialize store 'zk': connection refused"

    def test_load_error(self):
        error = LoadError("fs", "bad document")

        assert error.phase == "load"
        assert error.store_name == "fs"
        assert "bad document" in str(error)

    def test_write_error(self):
        error = WriteError("applications", "attempt", "appattempt_1_0001_000002", "disk full")

        assert error.phase == "applications"
        assert str(error) == "Failed to store attempt appattempt_1_0001_000002: disk full"
        assert error.to_dict() == {
            "error": "WriteError",
            "message": str(error),
            "phase": "applications",
            "fatal": True,
            "entity": "attempt",
            "entity_id": "appattempt_1_0001_000002",
        }

    def test_close_error_not_fatal(self):
        error = CloseError("zk", "connection reset")

        assert error.fatal is False
        assert error.phase == "close"
        assert error.to_dict()["fatal"] is False
