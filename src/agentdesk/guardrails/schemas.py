"""Pydantic schemas for the persisted guardrail template document.

Agents store their template as a JSON document with camelCase keys. These
models validate that document at the boundary and convert it to the frozen
domain value objects used by the compiler.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, StrictBool, StrictStr, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from agentdesk.core.domain import (
    AntiHallucinationTemplate,
    ContextLimitations,
    Intensity,
    ResponsePatterns,
)
from agentdesk.core.errors import TemplateValidationError
from agentdesk.core.logging import get_logger

logger = get_logger("guardrails.schemas")


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class ContextLimitationsDocument(_CamelModel):
    strict_boundaries: StrictBool = True
    reject_out_of_scope: StrictBool = True
    invention_prevention: StrictBool = True
    competitor_mention: StrictBool = False


class ResponsePatternsDocument(_CamelModel):
    refusal_message: StrictStr = ""
    escalation_message: StrictStr = ""
    uncertainty_message: StrictStr = ""


class TemplateDocument(_CamelModel):
    enabled: StrictBool = True
    intensity: Intensity = Intensity.STRICT
    domain: StrictStr = "customer service"
    company_name: StrictStr = ""
    context_limitations: ContextLimitationsDocument = ContextLimitationsDocument()
    response_patterns: ResponsePatternsDocument = ResponsePatternsDocument()

    @field_validator("intensity", mode="before")
    @classmethod
    def _unknown_intensity_is_disabled(cls, value: Any) -> Any:
        if isinstance(value, Intensity):
            return value
        if not isinstance(value, str):
            raise ValueError("intensity must be a string")
        try:
            return Intensity(value)
        except ValueError:
            logger.warning("guardrails.intensity.unknown", intensity=value)
            return Intensity.DISABLED

    def to_domain(self) -> AntiHallucinationTemplate:
        limits = self.context_limitations
        patterns = self.response_patterns
        return AntiHallucinationTemplate(
            enabled=self.enabled,
            intensity=self.intensity,
            domain=self.domain,
            company_name=self.company_name,
            context_limitations=ContextLimitations(
                strict_boundaries=limits.strict_boundaries,
                reject_out_of_scope=limits.reject_out_of_scope,
                invention_prevention=limits.invention_prevention,
                competitor_mention=limits.competitor_mention,
            ),
            response_patterns=ResponsePatterns(
                refusal_message=patterns.refusal_message,
                escalation_message=patterns.escalation_message,
                uncertainty_message=patterns.uncertainty_message,
            ),
        )

    @classmethod
    def from_domain(cls, template: AntiHallucinationTemplate) -> TemplateDocument:
        limits = template.context_limitations
        patterns = template.response_patterns
        return cls(
            enabled=template.enabled,
            intensity=template.intensity,
            domain=template.domain,
            company_name=template.company_name,
            context_limitations=ContextLimitationsDocument(
                strict_boundaries=limits.strict_boundaries,
                reject_out_of_scope=limits.reject_out_of_scope,
                invention_prevention=limits.invention_prevention,
                competitor_mention=limits.competitor_mention,
            ),
            response_patterns=ResponsePatternsDocument(
                refusal_message=patterns.refusal_message,
                escalation_message=patterns.escalation_message,
                uncertainty_message=patterns.uncertainty_message,
            ),
        )


def parse_template(document: Mapping[str, Any] | str) -> AntiHallucinationTemplate:
    """Validate a stored template document (mapping or JSON text).

    Raises :class:`TemplateValidationError` with field-level messages when the
    document is structurally invalid.
    """

    try:
        if isinstance(document, str):
            parsed = TemplateDocument.model_validate_json(document)
        elif isinstance(document, Mapping):
            parsed = TemplateDocument.model_validate(dict(document))
        else:
            raise TemplateValidationError(
                "template document must be a JSON object",
                details={"errors": [{"field": "", "message": "expected an object"}]},
            )
    except PydanticValidationError as exc:
        errors = [
            {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
            for error in exc.errors()
        ]
        raise TemplateValidationError(
            "invalid anti-hallucination template", details={"errors": errors}
        ) from exc
    return parsed.to_domain()


def dump_template(template: AntiHallucinationTemplate) -> dict[str, Any]:
    """Serialise a template to its persisted camelCase JSON shape."""

    return TemplateDocument.from_domain(template).model_dump(mode="json", by_alias=True)
