"""Allow-list checks for the embeddable widget.

Patterns are exact hosts (``example.com``) or wildcards (``*.example.com``).
A wildcard covers its apex and every subdomain below it, at any depth, and all
comparisons are case-insensitive. Allow-lists hold at most a few dozen
entries, so conflicts are found with a plain pairwise scan.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from urllib.parse import urlsplit

WILDCARD_PREFIX = "*."

_PATTERN_RE = re.compile(
    r"^(\*\.)?[a-z0-9]([a-z0-9-]*[a-z0-9])?(\.[a-z0-9]([a-z0-9-]*[a-z0-9])?)*$"
)


def normalize_pattern(pattern: str) -> str:
    return pattern.strip().lower()


def is_valid_pattern(pattern: str, *, max_length: int = 100) -> bool:
    normalized = normalize_pattern(pattern)
    return 0 < len(normalized) <= max_length and bool(_PATTERN_RE.match(normalized))


def _base(pattern: str) -> str | None:
    """Return ``X`` for a wildcard ``*.X``; ``None`` for exact hosts."""

    if pattern.startswith(WILDCARD_PREFIX):
        return pattern[len(WILDCARD_PREFIX) :]
    return None


def _unique(patterns: Iterable[str]) -> list[str]:
    seen: dict[str, None] = {}
    for pattern in patterns:
        seen.setdefault(normalize_pattern(pattern), None)
    return list(seen)


def find_duplicates(patterns: Sequence[str]) -> list[str]:
    """Return normalised entries that occur more than once, in first-seen order."""

    counts: dict[str, int] = {}
    for pattern in patterns:
        key = normalize_pattern(pattern)
        counts[key] = counts.get(key, 0) + 1
    return [pattern for pattern, count in counts.items() if count > 1]


def find_conflicts(patterns: Sequence[str]) -> list[str]:
    """Describe entries made redundant by a wildcard elsewhere in the list.

    Duplicates are not conflicts; they are collapsed here and reported by
    :func:`find_duplicates`. An empty result means the set is clean.
    """

    unique = _unique(patterns)
    conflicts: list[str] = []
    for index, first in enumerate(unique):
        for second in unique[index + 1 :]:
            message = _pair_conflict(first, second) or _pair_conflict(second, first)
            if message:
                conflicts.append(message)
    return conflicts


def _pair_conflict(wildcard: str, other: str) -> str | None:
    base = _base(wildcard)
    if base is None:
        return None
    if other == base:
        return f'"{wildcard}" and "{other}" are redundant'
    if other.endswith(f".{base}"):
        return f'"{other}" is already covered by "{wildcard}"'
    return None


def host_from_origin(origin: str) -> str:
    """Extract a lower-cased host from an ``Origin`` header or bare domain."""

    value = origin.strip().lower()
    if "://" in value:
        host = urlsplit(value).hostname or ""
    else:
        host = value.split("/", 1)[0].rsplit(":", 1)[0]
    return host.rstrip(".")


def is_origin_allowed(origin: str, patterns: Sequence[str]) -> bool:
    """Return whether ``origin`` may embed a widget restricted to ``patterns``.

    An empty allow-list places no restriction. Exact entries also admit their
    subdomains.
    """

    if not patterns:
        return True

    host = host_from_origin(origin)
    if not host:
        return False
    for pattern in _unique(patterns):
        domain = _base(pattern) or pattern
        if host == domain or host.endswith(f".{domain}"):
            return True
    return False
