"""Multi-tenant customer-support chat service with prompt guardrails."""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
