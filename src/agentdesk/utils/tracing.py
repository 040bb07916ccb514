"""Tracing helper utilities."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, TypedDict, cast
from uuid import uuid4

from opentelemetry import trace
from opentelemetry.trace import INVALID_SPAN, Span, get_current_span

_TRACER_NAME = "agentdesk"
SPAN_ATTRIBUTE_PREFIX = "agentdesk."


class TraceContext(TypedDict, total=False):
    trace_id: str
    span_id: str


def generate_trace_id() -> str:
    """Return the active OTEL trace id, or a random UUID-based identifier."""

    current = get_current_trace_ids().get("trace_id")
    return current or uuid4().hex


def _format_span_ids(span: Span) -> TraceContext:
    span_context = span.get_span_context()
    if span_context == INVALID_SPAN.get_span_context() or not span_context.is_valid:
        return cast(TraceContext, {})

    return TraceContext(
        trace_id=f"{span_context.trace_id:032x}",
        span_id=f"{span_context.span_id:016x}",
    )


def get_current_trace_ids() -> TraceContext:
    """Return the active trace/span identifiers if present."""

    return _format_span_ids(get_current_span())


def get_current_span_attributes() -> dict[str, Any]:
    """Return the service attributes of the active span, without their prefix.

    Non-recording spans expose no attributes and yield an empty mapping.
    """

    attributes = getattr(get_current_span(), "attributes", None) or {}
    return {
        key[len(SPAN_ATTRIBUTE_PREFIX) :]: value
        for key, value in attributes.items()
        if key.startswith(SPAN_ATTRIBUTE_PREFIX)
    }


def annotate_current_span(**attributes: Any) -> None:
    """Set ``agentdesk.``-prefixed attributes on the active span."""

    span = get_current_span()
    for key, value in attributes.items():
        if value is not None:
            span.set_attribute(f"{SPAN_ATTRIBUTE_PREFIX}{key}", value)


@contextmanager
def start_span(name: str, **attributes: Any) -> Iterator[Span]:
    """Open a child span on the service tracer, dropping ``None`` attributes."""

    tracer = trace.get_tracer(_TRACER_NAME)
    with tracer.start_as_current_span(name) as span:
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(key, value)
        yield span
