"""
Observability utilities for rmstate.

Provides the composition-based Tracer used by stores and the migration
engine, plus the standard span attribute names.

Note:
    OpenTelemetry is an optional dependency. All utilities in this module
    gracefully handle the case where OpenTelemetry is not installed.
"""

from rmstate.observability.attributes import (
    ATTR_APPLICATION_ID,
    ATTR_ATTEMPT_ID,
    ATTR_ENTITY_COUNT,
    ATTR_IS_UPDATE,
    ATTR_KEY_ID,
    ATTR_MIGRATION_PHASE,
    ATTR_MIGRATION_POLICY,
    ATTR_MIGRATION_SOURCE_STORE,
    ATTR_MIGRATION_TARGET_STORE,
    ATTR_SEQUENCE_NUMBER,
    ATTR_STORE_NAME,
    ATTR_VERSION,
)
from rmstate.observability.tracer import (
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    Tracer,
    create_tracer,
)
from rmstate.observability.tracing import OTEL_AVAILABLE

__all__ = [
    # Availability
    "OTEL_AVAILABLE",
    # Tracer
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "create_tracer",
    # Attributes
    "ATTR_STORE_NAME",
    "ATTR_APPLICATION_ID",
    "ATTR_ATTEMPT_ID",
    "ATTR_KEY_ID",
    "ATTR_SEQUENCE_NUMBER",
    "ATTR_VERSION",
    "ATTR_IS_UPDATE",
    "ATTR_MIGRATION_PHASE",
    "ATTR_MIGRATION_SOURCE_STORE",
    "ATTR_MIGRATION_TARGET_STORE",
    "ATTR_MIGRATION_POLICY",
    "ATTR_ENTITY_COUNT",
]
