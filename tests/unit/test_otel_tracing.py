"""Tests for the OpenTelemetry span helper."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from ipflix.telemetry import otel


def test_start_span_sets_attributes() -> None:
    """Attributes other than None are copied onto the span."""
    span = MagicMock()
    tracer = MagicMock()
    tracer.start_as_current_span.return_value.__enter__.return_value = span

    with patch.object(otel.trace, "get_tracer", return_value=tracer):
        with otel.start_span("lookup", {"ip.version": "IPv4", "skipped": None}) as active:
            assert active is span

    tracer.start_as_current_span.assert_called_once_with(
        "lookup", record_exception=False, set_status_on_exception=False
    )
    span.set_attribute.assert_called_once_with("ip.version", "IPv4")


def test_start_span_records_and_reraises() -> None:
    """Errors inside the context are recorded and propagate."""
    span = MagicMock()
    tracer = MagicMock()
    tracer.start_as_current_span.return_value.__enter__.return_value = span

    class CustomError(Exception):
        pass

    with patch.object(otel.trace, "get_tracer", return_value=tracer):
        with pytest.raises(CustomError):
            with otel.start_span("error-span"):
                raise CustomError("boom")

    span.record_exception.assert_called_once()
    span.set_status.assert_called_once()


def test_start_span_without_sdk() -> None:
    """The default no-op tracer yields a usable span."""
    with otel.start_span("noop", {"key": "value"}) as span:
        span.set_attribute("other", 1)
