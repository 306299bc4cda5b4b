"""
Shared pytest fixtures for the rmstate library tests.

This module provides:
- Store fixtures (memory_store, fs_store, redis_store, null_store)
- A FakeRedis client standing in for a Redis server
- Snapshot fixtures (two_app_state, full_state)
- A MockTracer for span assertions

Stores returned by fixtures are not started; tests start them or pass them
to code that does.
"""

from __future__ import annotations

import pytest

from rmstate.config import StateStoreConfig
from rmstate.observability import MockTracer
from rmstate.stores import (
    FileSystemStateStore,
    MemoryStateStore,
    NullStateStore,
    RedisStateStore,
    RMState,
)
from rmstate.testing import builders
from tests.fixtures import FakeRedis

# ============================================================================
# Tracing
# ============================================================================


@pytest.fixture
def mock_tracer() -> MockTracer:
    """Tracer recording span names and attributes."""
    return MockTracer()


# ============================================================================
# Stores
# ============================================================================


@pytest.fixture
def memory_store() -> MemoryStateStore:
    return MemoryStateStore(enable_tracing=False)


@pytest.fixture
def null_store() -> NullStateStore:
    return NullStateStore()


@pytest.fixture
def fs_store(tmp_path) -> FileSystemStateStore:
    return FileSystemStateStore(tmp_path / "rmstore", enable_tracing=False)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def redis_store(fake_redis: FakeRedis) -> RedisStateStore:
    return RedisStateStore(root_path="/rmstore", client=fake_redis, enable_tracing=False)


@pytest.fixture
def config(tmp_path) -> StateStoreConfig:
    """Base configuration pointing the filesystem store at a temp directory."""
    return StateStoreConfig(fs_root=str(tmp_path / "rmstore"), enable_tracing=False)


# ============================================================================
# Snapshots
# ============================================================================


@pytest.fixture
def two_app_state() -> RMState:
    """
    Two applications: app 1 with one attempt, app 2 with two attempts.

    No token state, so the snapshot contains exactly the applications.
    """
    return builders.snapshot(
        builders.application_state(builders.application_id(1), attempts=1),
        builders.application_state(builders.application_id(2), attempts=2),
    )


@pytest.fixture
def full_state() -> RMState:
    """Applications plus AM-RM token state, master keys and delegation tokens."""
    return builders.snapshot(
        builders.application_state(builders.application_id(1), attempts=1),
        builders.application_state(builders.application_id(2), attempts=2),
        builders.application_state(builders.application_id(3), attempts=3),
        amrm=builders.amrm_token_state(),
        delegation_keys=2,
        delegation_tokens=4,
        dt_sequence_number=9,
    )
