"""
Conformance tests for the persistent StateStore backends.

Each backend runs the shared StateStoreConformanceSuite. The null store
discards writes by design and is covered in test_null_state_store.py.
"""

from __future__ import annotations

import pytest

from rmstate.stores import FileSystemStateStore, MemoryStateStore, RedisStateStore, StateStore
from rmstate.testing import StateStoreConformanceSuite
from tests.fixtures import FakeRedis


class TestMemoryStateStoreConformance(StateStoreConformanceSuite):
    def create_store(self) -> StateStore:
        return MemoryStateStore(enable_tracing=False)


class TestFileSystemStateStoreConformance(StateStoreConformanceSuite):
    @pytest.fixture(autouse=True)
    def _root(self, tmp_path):
        self.root = tmp_path / "rmstore"

    def create_store(self) -> StateStore:
        return FileSystemStateStore(self.root, enable_tracing=False)


class TestRedisStateStoreConformance(StateStoreConformanceSuite):
    @pytest.fixture(autouse=True)
    def _client(self):
        self.client = FakeRedis()

    def create_store(self) -> StateStore:
        return RedisStateStore(root_path="/rmstore", client=self.client, enable_tracing=False)
