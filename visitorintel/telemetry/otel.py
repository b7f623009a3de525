"""OpenTelemetry helpers for the enrichment pipeline.

Only ``opentelemetry-api`` is required; without a configured SDK the
tracer is a no-op.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from opentelemetry import trace
from opentelemetry.trace import Span, Status, StatusCode

TRACER_NAME = "visitorintel"


def _span_set_attributes(span: Span, attributes: Optional[Dict[str, Any]]) -> None:
    if attributes is None:
        return
    for key, value in attributes.items():
        if value is not None:
            span.set_attribute(key, value)


@contextmanager
def start_span(name: str, attributes: Optional[Dict[str, Any]] = None) -> Iterator[Span]:
    """Start a span on the package tracer, recording exceptions that escape it."""
    tracer = trace.get_tracer(TRACER_NAME)
    with tracer.start_as_current_span(name, record_exception=False, set_status_on_exception=False) as span:
        _span_set_attributes(span, attributes)
        try:
            yield span
        except Exception as exc:
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            raise
