"""
Tracers handed to state stores and the state copier.

Every store operation opens an ``rmstate.store.<operation>`` span and every
copier phase an ``rmstate.copier.<phase>`` span. Components never import
OpenTelemetry themselves: they are given a Tracer, or build one with
create_tracer() from their ``enable_tracing`` flag.

Example:
    >>> store = MemoryStateStore(tracer=MockTracer())
    >>> await store.load_state()
    >>> store._tracer.span_names
    ['rmstate.store.load_state']
"""

from __future__ import annotations

import contextlib
from collections.abc import Generator
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from opentelemetry.trace import Span

from rmstate.observability.tracing import OTEL_AVAILABLE


@runtime_checkable
class Tracer(Protocol):
    """
    What stores and the copier need from a tracer.

    ``span`` wraps one store operation or copier phase; attributes use the
    names in rmstate.observability.attributes. ``enabled`` tells whether
    spans are exported anywhere.
    """

    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> AbstractContextManager[Span | None]: ...

    @property
    def enabled(self) -> bool: ...


class NullTracer:
    """Tracer used when tracing is off or OpenTelemetry is not installed."""

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> Generator[None, None, None]:
        yield None

    @property
    def enabled(self) -> bool:
        return False


class OpenTelemetryTracer:
    """
    Exports store and copier spans through the global OpenTelemetry provider.

    The tracer is named after the module that created it, so spans from the
    filesystem store and the copier can be told apart in a trace view.

    Raises:
        ImportError: If opentelemetry-api is not installed
    """

    def __init__(self, tracer_name: str) -> None:
        from opentelemetry import trace

        self._tracer = trace.get_tracer(tracer_name)

    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> AbstractContextManager[Span | None]:
        return self._tracer.start_as_current_span(name, attributes=attributes or {})

    @property
    def enabled(self) -> bool:
        return True


class MockTracer:
    """
    Tracer that remembers the spans it was asked to open.

    Tests pass it to a store or copier and assert on the span sequence, e.g.
    that a migration opened its phases in copy order.

    Attributes:
        spans: (name, attributes) pairs in the order the spans were opened.
    """

    def __init__(self) -> None:
        self.spans: list[tuple[str, dict[str, Any] | None]] = []

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> Generator[None, None, None]:
        self.spans.append((name, attributes))
        yield None

    @property
    def enabled(self) -> bool:
        return True

    @property
    def span_names(self) -> list[str]:
        return [name for name, _ in self.spans]

    def clear(self) -> None:
        self.spans.clear()


def create_tracer(name: str, enable_tracing: bool = True) -> Tracer:
    """
    Build the tracer a component uses when none is injected.

    Returns an OpenTelemetryTracer only when ``enable_tracing`` is set and
    opentelemetry-api is importable; otherwise a NullTracer.
    """
    if enable_tracing and OTEL_AVAILABLE:
        return OpenTelemetryTracer(name)
    return NullTracer()


__all__ = [
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "create_tracer",
]
