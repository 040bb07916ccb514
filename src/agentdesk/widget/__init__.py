"""Embeddable widget support: domain allow-lists and request budgets."""

from .domains import (
    find_conflicts,
    find_duplicates,
    host_from_origin,
    is_origin_allowed,
    is_valid_pattern,
    normalize_pattern,
)
from .rate_limit import WidgetRateLimiter

__all__ = [
    "find_conflicts",
    "find_duplicates",
    "host_from_origin",
    "is_origin_allowed",
    "is_valid_pattern",
    "normalize_pattern",
    "WidgetRateLimiter",
]
