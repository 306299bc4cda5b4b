"""
Test utilities for rmstate.

Components:
    StateStoreConformanceSuite: Contract tests every StateStore backend must pass
    RecordingStateStore: Wrapper recording call order with failure injection
    builders: Deterministic recovery records and snapshots

Example:
    >>> from rmstate.testing import RecordingStateStore, builders
    >>>
    >>> state = builders.snapshot(builders.application_state(builders.application_id(1)))
    >>> source = MemoryStateStore(enable_tracing=False)
    >>> await builders.populate(source, state)
    >>> destination = RecordingStateStore(MemoryStateStore(enable_tracing=False))

Note:
    This module is intended for test code only. It imports pytest and
    should not be imported in production code paths.
"""

from rmstate.testing import builders
from rmstate.testing.conformance import StateStoreConformanceSuite
from rmstate.testing.recording import RecordedCall, RecordingStateStore

__all__ = [
    "builders",
    "StateStoreConformanceSuite",
    "RecordedCall",
    "RecordingStateStore",
]
