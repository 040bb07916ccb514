"""Anti-hallucination guardrails compiled into agent system prompts."""

from .compiler import (
    compile_prompt,
    default_template,
    model_advisories,
    risk_level,
    risk_score,
    substitute_company,
)
from .schemas import TemplateDocument, dump_template, parse_template

__all__ = [
    "compile_prompt",
    "default_template",
    "risk_score",
    "risk_level",
    "model_advisories",
    "substitute_company",
    "parse_template",
    "dump_template",
    "TemplateDocument",
]
