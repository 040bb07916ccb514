"""Utility helpers shared across services."""

from .retry import RetryConfig, RetryDeadlineExceeded, RetryState, retry
from .tracing import (
    annotate_current_span,
    generate_trace_id,
    get_current_span_attributes,
    get_current_trace_ids,
    start_span,
)

__all__ = [
    "annotate_current_span",
    "get_current_span_attributes",
    "generate_trace_id",
    "get_current_trace_ids",
    "start_span",
    "retry",
    "RetryConfig",
    "RetryDeadlineExceeded",
    "RetryState",
]
