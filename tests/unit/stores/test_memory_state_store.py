"""Unit tests for MemoryStateStore beyond the shared conformance suite."""

from __future__ import annotations

import pytest

from rmstate.observability import MockTracer
from rmstate.observability.attributes import ATTR_APPLICATION_ID, ATTR_STORE_NAME
from rmstate.stores import MemoryStateStore
from rmstate.testing import builders


class TestMemoryStateStore:
    async def test_name_is_mem(self, memory_store):
        assert memory_store.name == "mem"

    async def test_attempt_without_application_raises_value_error(self, memory_store):
        attempt = builders.attempt_id(builders.application_id(1), 1)

        with pytest.raises(ValueError, match="doesn't exist"):
            await memory_store.store_application_attempt_state(
                attempt, builders.attempt_data(attempt)
            )

    async def test_load_state_returns_copy(self, memory_store, two_app_state):
        await builders.populate(memory_store, two_app_state)

        loaded = await memory_store.load_state()
        loaded.application_state.clear()

        assert memory_store.application_count == 2
        assert len((await memory_store.load_state()).application_state) == 2

    async def test_clear_removes_everything(self, memory_store, full_state):
        await builders.populate(memory_store, full_state)

        await memory_store.clear()

        assert await memory_store.is_empty()
        assert await memory_store.load_version() is None

    async def test_async_context_manager(self):
        async with MemoryStateStore(enable_tracing=False) as store:
            await store.store_version()
            assert await store.load_version() == store.current_version

    async def test_repr_shows_application_count(self, memory_store, two_app_state):
        await builders.populate(memory_store, two_app_state)

        assert repr(memory_store) == "MemoryStateStore(applications=2)"


class TestMemoryStateStoreTracing:
    async def test_writes_open_spans_with_store_attributes(self):
        tracer = MockTracer()
        store = MemoryStateStore(tracer=tracer)
        app_id = builders.application_id(1)

        await store.store_application_state(app_id, builders.application_data(app_id))

        assert tracer.spans == [
            (
                "rmstate.store.store_application",
                {ATTR_STORE_NAME: "mem", ATTR_APPLICATION_ID: str(app_id)},
            )
        ]

    async def test_load_state_span(self):
        tracer = MockTracer()
        store = MemoryStateStore(tracer=tracer)

        await store.load_state()

        assert tracer.span_names == ["rmstate.store.load_state"]

    def test_tracing_disabled(self):
        store = MemoryStateStore(enable_tracing=False)

        assert store._tracer.enabled is False
