"""Unit tests for the rmstate.testing helpers."""

from __future__ import annotations

import pytest

from rmstate.stores import MemoryStateStore
from rmstate.testing import RecordedCall, RecordingStateStore, builders


class TestBuilders:
    def test_builders_are_deterministic(self):
        app_id = builders.application_id(4)

        assert builders.application_state(app_id, 2) == builders.application_state(app_id, 2)

    def test_explicit_attempt_numbers(self):
        app = builders.application_state(builders.application_id(1), attempts=[1, 3])

        assert [a.attempt_id for a in app.attempt_ids] == [1, 3]
        assert app.missing_attempt_numbers() == [2]

    def test_snapshot_sequence_number_defaults_to_token_count(self):
        state = builders.snapshot(delegation_tokens=3)

        assert state.rm_dt_secret_manager_state.dt_sequence_number == 3
        assert state.rm_dt_secret_manager_state.max_token_sequence_number == 3

    async def test_populate(self, memory_store, full_state):
        await builders.populate(memory_store, full_state)

        assert await memory_store.load_state() == full_state


class TestRecordingStateStore:
    async def test_records_and_delegates(self):
        inner = MemoryStateStore(enable_tracing=False)
        store = RecordingStateStore(inner)
        app_id = builders.application_id(1)

        await store.store_application_state(app_id, builders.application_data(app_id))

        assert store.calls == [RecordedCall("store_application_state", (app_id,))]
        assert inner.application_count == 1
        assert store.name == "mem"

    async def test_fail_on_with_match_and_times(self):
        store = RecordingStateStore(MemoryStateStore(enable_tracing=False))
        store.fail_on(
            "store_rm_dt_sequence_number", OSError("boom"), match=lambda n: n > 5, times=1
        )

        await store.store_rm_dt_sequence_number(3)
        with pytest.raises(OSError):
            await store.store_rm_dt_sequence_number(6)
        await store.store_rm_dt_sequence_number(7)

        assert [call.args for call in store.calls] == [(3,), (6,), (7,)]
        dt_state = (await store.load_state()).rm_dt_secret_manager_state
        assert dt_state.dt_sequence_number == 7
