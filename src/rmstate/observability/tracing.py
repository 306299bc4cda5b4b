"""
OpenTelemetry availability detection for rmstate.

OpenTelemetry is an optional dependency. This module is the single place
that probes for it, so every other module can check ``OTEL_AVAILABLE``.
"""

try:
    import opentelemetry.trace  # noqa: F401

    OTEL_AVAILABLE = True
except ImportError:
    OTEL_AVAILABLE = False


__all__ = ["OTEL_AVAILABLE"]
