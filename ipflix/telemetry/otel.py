"""OpenTelemetry integration helpers.

Spans are emitted through the OpenTelemetry API; without a configured SDK the
global tracer provider is a no-op and the helpers cost next to nothing.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

_TRACER_NAME = "ipflix"


def _span_set_attributes(span: Any, attributes: Optional[Dict[str, Any]]) -> None:
    if attributes is None:
        return
    for key, value in attributes.items():
        if value is not None:
            span.set_attribute(key, value)


@contextmanager
def start_span(name: str, attributes: Optional[Dict[str, Any]] = None) -> Iterator[Any]:
    """Start an OpenTelemetry span around a provider lookup or scoring pass."""
    tracer = trace.get_tracer(_TRACER_NAME)
    with tracer.start_as_current_span(name, record_exception=False, set_status_on_exception=False) as span:
        _span_set_attributes(span, attributes)
        try:
            yield span
        except Exception as exc:
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            raise
