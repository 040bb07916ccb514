"""Anti-hallucination prompt compiler.

Turns an agent's declarative :class:`AntiHallucinationTemplate` into the
system prompt sent to the model, and scores how exposed a configuration is to
hallucinated answers. Everything here is pure: the same inputs always yield
the same text, so a tenant's historical behaviour can be reproduced exactly.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from agentdesk.core.domain import (
    COMPANY_NAME_PLACEHOLDER,
    AntiHallucinationTemplate,
    ContextLimitations,
    Intensity,
    ResponsePatterns,
)

# Penalties for each disabled safeguard and bonuses per intensity.
RISK_WEIGHTS = {
    "strict_boundaries": 30,
    "reject_out_of_scope": 25,
    "invention_prevention": 25,
    "competitor_mention": 20,
}
INTENSITY_BONUS = {
    Intensity.ULTRA_STRICT: 40,
    Intensity.STRICT: 20,
    Intensity.LIGHT: 5,
}

LOW_RISK_THRESHOLD = 30
MEDIUM_RISK_THRESHOLD = 60


def substitute_company(text: str, company_name: str) -> str:
    return text.replace(COMPANY_NAME_PLACEHOLDER, company_name)


def _light_block(domain: str, company: str, _patterns: ResponsePatterns) -> str:
    return (
        "PROFESSIONAL CONTEXT:\n"
        f"You are an assistant representing {company}. Area of expertise: {domain}.\n"
        "\n"
        "BEHAVIOURAL GUIDELINES:\n"
        f"- Prefer {company} information whenever it is available\n"
        f"- Say so when an answer goes beyond the {company} context\n"
        "- Avoid stating information you cannot verify"
    )


def _strict_block(domain: str, company: str, patterns: ResponsePatterns) -> str:
    return (
        "STRICT CONTEXT:\n"
        f"You are an assistant dedicated EXCLUSIVELY to {company}. "
        f"Area of expertise: {domain}.\n"
        "\n"
        "MANDATORY CONTEXT LIMITS:\n"
        f'- If a question is not about {company}, reply exactly: "{patterns.refusal_message}"\n'
        f"- NEVER invent information that is not present in the {company} context\n"
        "- NEVER answer questions about other companies or competitors\n"
        f'- When you are uncertain, reply: "{patterns.uncertainty_message}"\n'
        f'- To hand the conversation over to a human, reply: "{patterns.escalation_message}"'
    )


def _ultra_strict_block(domain: str, company: str, patterns: ResponsePatterns) -> str:
    return (
        "ULTRA-STRICT CONTEXT - COMPLIANCE IS MANDATORY:\n"
        f"You are an assistant dedicated SOLELY AND EXCLUSIVELY to {company}. "
        f"Area of expertise: {domain}.\n"
        "\n"
        "ABSOLUTE RULES - NO EXCEPTIONS:\n"
        f"- You MUST NOT answer any question that does not concern {company}\n"
        "- You MUST NOT invent, assume or extrapolate any information\n"
        "- You MUST NOT mention or compare with any other company or competitor\n"
        f'- MANDATORY REPLY to any off-topic question: "{patterns.refusal_message}"\n'
        f'- MANDATORY REPLY whenever you are uncertain: "{patterns.uncertainty_message}"\n'
        f'- MANDATORY ESCALATION for requests you cannot serve: "{patterns.escalation_message}"\n'
        "\n"
        "Any violation of these rules is a critical failure."
    )


# Every builder takes the same arguments; the light block quotes no fixed replies.
_INSTRUCTION_BLOCKS: dict[Intensity, Callable[[str, str, ResponsePatterns], str]] = {
    Intensity.LIGHT: _light_block,
    Intensity.STRICT: _strict_block,
    Intensity.ULTRA_STRICT: _ultra_strict_block,
}


def compile_prompt(
    template: AntiHallucinationTemplate,
    company_name: str,
    base_prompt: str,
) -> str:
    """Return the final system prompt for ``template``.

    Disabled templates, and any intensity without an instruction block, pass
    ``base_prompt`` through untouched.
    """

    if not template.enabled:
        return base_prompt
    build_block = _INSTRUCTION_BLOCKS.get(template.intensity)
    if build_block is None:
        return base_prompt

    domain = substitute_company(template.domain, company_name)
    patterns = ResponsePatterns(
        refusal_message=substitute_company(
            template.response_patterns.refusal_message, company_name
        ),
        escalation_message=substitute_company(
            template.response_patterns.escalation_message, company_name
        ),
        uncertainty_message=substitute_company(
            template.response_patterns.uncertainty_message, company_name
        ),
    )

    return (
        f"{build_block(domain, company_name, patterns)}\n"
        "\n"
        "OPERATOR INSTRUCTIONS:\n"
        f"{base_prompt}\n"
        "\n"
        "FINAL REMINDER: always stay professional and remain in your role as "
        f"the {company_name} expert."
    )


def default_template(intensity: Intensity | str) -> AntiHallucinationTemplate:
    """Return a fresh canonical template for ``intensity``.

    Placeholders are left intact; unknown levels yield the disabled template.
    """

    try:
        level = Intensity(intensity)
    except ValueError:
        level = Intensity.DISABLED

    if level is Intensity.DISABLED:
        return AntiHallucinationTemplate(
            enabled=False,
            intensity=Intensity.DISABLED,
            context_limitations=ContextLimitations(
                strict_boundaries=False,
                reject_out_of_scope=False,
                invention_prevention=False,
                competitor_mention=True,
            ),
            response_patterns=ResponsePatterns(),
        )

    if level is Intensity.LIGHT:
        return AntiHallucinationTemplate(
            enabled=True,
            intensity=Intensity.LIGHT,
            context_limitations=ContextLimitations(
                strict_boundaries=True,
                reject_out_of_scope=False,
                invention_prevention=True,
                competitor_mention=True,
            ),
            response_patterns=ResponsePatterns(
                refusal_message=(
                    "I specialise in [COMPANY_NAME] services, but I can share some "
                    "general information."
                ),
                escalation_message=(
                    "For specific details, please get in touch with the [COMPANY_NAME] team."
                ),
                uncertainty_message=(
                    "I don't have that exact information, but here is what I can tell you."
                ),
            ),
        )

    if level is Intensity.STRICT:
        return AntiHallucinationTemplate(
            enabled=True,
            intensity=Intensity.STRICT,
            context_limitations=ContextLimitations(),
            response_patterns=ResponsePatterns(
                refusal_message=(
                    "I can only help with [COMPANY_NAME] services. This question is "
                    "outside my area of expertise."
                ),
                escalation_message=(
                    "For this specific request, please contact our customer service directly."
                ),
                uncertainty_message=(
                    "I don't have that information in the [COMPANY_NAME] knowledge base."
                ),
            ),
        )

    return AntiHallucinationTemplate(
        enabled=True,
        intensity=Intensity.ULTRA_STRICT,
        domain="[COMPANY_NAME] services only",
        context_limitations=ContextLimitations(),
        response_patterns=ResponsePatterns(
            refusal_message=(
                "I am EXCLUSIVELY a [COMPANY_NAME] assistant. I cannot handle requests "
                "unrelated to [COMPANY_NAME]."
            ),
            escalation_message=(
                "This request needs to be handled by the [COMPANY_NAME] team. "
                "Please contact us directly."
            ),
            uncertainty_message=(
                "This information is not available in the [COMPANY_NAME] knowledge base. "
                "I need to redirect you to an expert."
            ),
        ),
    )


def risk_score(template: AntiHallucinationTemplate) -> int:
    """Score from 0 (well protected) to 100 (no protection)."""

    if not template.enabled:
        return 100

    limits = template.context_limitations
    risk = 0
    if not limits.strict_boundaries:
        risk += RISK_WEIGHTS["strict_boundaries"]
    if not limits.reject_out_of_scope:
        risk += RISK_WEIGHTS["reject_out_of_scope"]
    if not limits.invention_prevention:
        risk += RISK_WEIGHTS["invention_prevention"]
    if limits.competitor_mention:
        risk += RISK_WEIGHTS["competitor_mention"]

    risk -= INTENSITY_BONUS.get(template.intensity, 0)
    return max(0, min(100, risk))


def risk_level(score: int) -> str:
    if score <= LOW_RISK_THRESHOLD:
        return "low"
    if score <= MEDIUM_RISK_THRESHOLD:
        return "medium"
    return "high"


def model_advisories(model: str, recommended_models: Sequence[str]) -> list[str]:
    """Operator warnings about the chosen model. Never used to gate chat."""

    if not recommended_models or model in recommended_models:
        return []
    return [
        f"model {model!r} is not one of the recommended models "
        f"({', '.join(recommended_models)}); guardrail adherence is unverified"
    ]
