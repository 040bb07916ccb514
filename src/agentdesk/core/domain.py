"""Domain data structures shared across services."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

COMPANY_NAME_PLACEHOLDER = "[COMPANY_NAME]"


class Intensity(str, Enum):
    """Anti-hallucination strictness levels, weakest first."""

    DISABLED = "disabled"
    LIGHT = "light"
    STRICT = "strict"
    ULTRA_STRICT = "ultra_strict"


@dataclass(slots=True, frozen=True)
class ContextLimitations:
    """Safeguards a tenant can switch on or off for its agent."""

    strict_boundaries: bool = True
    reject_out_of_scope: bool = True
    invention_prevention: bool = True
    competitor_mention: bool = False


@dataclass(slots=True, frozen=True)
class ResponsePatterns:
    """Canned replies; each may contain ``COMPANY_NAME_PLACEHOLDER``."""

    refusal_message: str = ""
    escalation_message: str = ""
    uncertainty_message: str = ""


@dataclass(slots=True, frozen=True)
class AntiHallucinationTemplate:
    """Declarative guardrail configuration compiled into the system prompt."""

    enabled: bool = True
    intensity: Intensity = Intensity.STRICT
    domain: str = "customer service"
    company_name: str = ""
    context_limitations: ContextLimitations = field(default_factory=ContextLimitations)
    response_patterns: ResponsePatterns = field(default_factory=ResponsePatterns)

    @property
    def is_active(self) -> bool:
        return self.enabled and self.intensity is not Intensity.DISABLED


@dataclass(slots=True, frozen=True)
class ProviderReply:
    """Text and usage returned by an LLM provider."""

    text: str
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass(slots=True, frozen=True)
class ProviderRequest:
    """Everything the provider client needs for a single generation call."""

    model: str
    temperature: float
    max_tokens: int
    top_p: float
    system_prompt: str
    user_text: str
    file_refs: Sequence[str] = ()


@dataclass(slots=True)
class ChatReply:
    """Result of handling one inbound visitor message."""

    text: str
    conversation_id: UUID
    tokens_used: int
    files_used: int = 0
    trace_id: str | None = None
