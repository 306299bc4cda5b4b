"""Unit tests for NullStateStore."""

from __future__ import annotations

from rmstate.records import CURRENT_VERSION
from rmstate.stores import NullStateStore
from rmstate.testing import builders


class TestNullStateStore:
    async def test_name_is_null(self, null_store):
        assert null_store.name == "null"

    async def test_accepts_every_write_and_keeps_nothing(self, null_store, full_state):
        await null_store.start()

        await builders.populate(null_store, full_state)

        assert await null_store.load_version() is None
        assert (await null_store.load_state()).is_empty
        assert await null_store.is_empty()

    async def test_attempt_without_application_is_accepted(self, null_store):
        attempt = builders.attempt_id(builders.application_id(1), 2)

        await null_store.store_application_attempt_state(attempt, builders.attempt_data(attempt))

    async def test_close_is_idempotent(self, null_store):
        await null_store.close()
        await null_store.close()

    def test_current_version(self):
        assert NullStateStore().current_version == CURRENT_VERSION
