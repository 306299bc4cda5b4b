"""
Shared test fixtures for the rmstate library.

This module provides:
- FakeRedis: In-process stand-in for a redis.asyncio client, covering the
  commands the node-tree store uses (strings, sets, MULTI pipelines)

Usage:
    from tests.fixtures import FakeRedis
"""

from tests.fixtures.fake_redis import FakePipeline, FakeRedis

__all__ = [
    "FakePipeline",
    "FakeRedis",
]
