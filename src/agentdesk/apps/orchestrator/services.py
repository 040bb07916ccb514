"""Use-case services for the chat orchestrator application."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from uuid import UUID

from prometheus_client import Counter

from agentdesk.core.config import GuardrailSettings, WidgetSettings
from agentdesk.core.db import models as db_models
from agentdesk.core.domain import (
    AntiHallucinationTemplate,
    ChatReply,
    Intensity,
    ProviderRequest,
)
from agentdesk.core.errors import (
    AgentAccessError,
    AgentInactiveError,
    AgentNotFoundError,
    CoreError,
    ForbiddenError,
    InvalidConversationError,
    NotFoundError,
    ProviderError,
    ValidationError,
)
from agentdesk.core.logging import get_logger
from agentdesk.guardrails import (
    compile_prompt,
    default_template,
    model_advisories,
    parse_template,
    risk_level,
    risk_score,
)
from agentdesk.llm import ProviderClient
from agentdesk.utils.tracing import annotate_current_span, generate_trace_id, start_span
from agentdesk.widget import (
    WidgetRateLimiter,
    find_conflicts,
    find_duplicates,
    is_origin_allowed,
    is_valid_pattern,
    normalize_pattern,
)

from .stores import AgentStore, ConversationAlreadyOpen, ConversationStore, MessageStore

logger = get_logger("orchestrator.services")

CHAT_TURNS = Counter(
    "agentdesk_chat_turns_total",
    "Chat turns handled by the orchestrator, by outcome.",
    ["result"],
)

DOMAIN_REJECTIONS = Counter(
    "agentdesk_allowed_domain_rejections_total",
    "Allow-list updates or widget requests rejected, by reason.",
    ["reason"],
)


def load_agent(
    agents: AgentStore,
    agent_id: UUID,
    *,
    tenant_id: UUID | None = None,
) -> db_models.Agent:
    """Fetch an agent and apply the ownership hook when a tenant is given."""

    agent = agents.get_agent(agent_id)
    if agent is None:
        raise AgentNotFoundError(agent_id)
    if tenant_id is not None and not agents.is_owned_by(agent_id, tenant_id):
        raise AgentAccessError(agent_id)
    return agent


def agent_template(
    agent: db_models.Agent,
    *,
    fallback: Intensity = Intensity.STRICT,
) -> AntiHallucinationTemplate:
    if agent.anti_hallucination_template is None:
        return default_template(fallback)
    return parse_template(agent.anti_hallucination_template)


def _parse_conversation_id(value: UUID | str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(value)
    except (TypeError, ValueError) as exc:
        raise InvalidConversationError(value) from exc


class ConversationResolver:
    """Maps an inbound message to exactly one conversation."""

    def __init__(self, conversations: ConversationStore) -> None:
        self._conversations = conversations

    def resolve(
        self,
        agent_id: UUID,
        visitor_id: str,
        conversation_id: UUID | str | None = None,
    ) -> db_models.Conversation:
        """Return the supplied conversation, the visitor's latest one, or a new one.

        A supplied id that is malformed, unknown or bound to another agent is
        rejected, never redirected.
        """

        if conversation_id is not None:
            parsed = _parse_conversation_id(conversation_id)
            conversation = self._conversations.get_by_id(parsed)
            if conversation is None or conversation.agent_id != agent_id:
                raise InvalidConversationError(conversation_id)
            return conversation

        existing = self._conversations.find_latest_by_agent_and_visitor(agent_id, visitor_id)
        if existing is not None:
            logger.debug(
                "conversation.reused",
                agent_id=str(agent_id),
                conversation_id=str(existing.id),
            )
            return existing

        try:
            created = self._conversations.create(agent_id, visitor_id)
        except ConversationAlreadyOpen:
            winner = self._conversations.find_latest_by_agent_and_visitor(agent_id, visitor_id)
            if winner is None:
                raise
            logger.info(
                "conversation.race_recovered",
                agent_id=str(agent_id),
                conversation_id=str(winner.id),
            )
            return winner

        logger.info(
            "conversation.created",
            agent_id=str(agent_id),
            conversation_id=str(created.id),
        )
        return created


class ChatOrchestrator:
    """Turns one inbound visitor message into one persisted turn and one reply.

    The turn moves through resolve, persist user message, compile prompt,
    call provider and finally persist the reply. Provider failures propagate
    after the user message is stored; nothing is retried here.
    """

    def __init__(
        self,
        agents: AgentStore,
        conversations: ConversationStore,
        messages: MessageStore,
        provider: ProviderClient,
        *,
        fallback_company_name: str = "this company",
        timeout_seconds: float = 60.0,
        resolver: ConversationResolver | None = None,
    ) -> None:
        self._agents = agents
        self._conversations = conversations
        self._messages = messages
        self._provider = provider
        self._fallback_company_name = fallback_company_name
        self._timeout_seconds = timeout_seconds
        self._resolver = resolver or ConversationResolver(conversations)

    def handle_message(
        self,
        agent_id: UUID,
        visitor_id: str,
        text: str,
        conversation_id: UUID | str | None = None,
        *,
        tenant_id: UUID | None = None,
        timeout: float | None = None,
        fallback_intensity: Intensity = Intensity.STRICT,
    ) -> ChatReply:
        trace_id = generate_trace_id()
        with start_span(
            "chat.turn",
            **{
                "agentdesk.agent_id": str(agent_id),
                "agentdesk.conversation_id": str(conversation_id) if conversation_id else None,
            },
        ) as span:
            try:
                reply = self._handle(
                    agent_id,
                    visitor_id,
                    text,
                    conversation_id,
                    tenant_id=tenant_id,
                    timeout=timeout if timeout is not None else self._timeout_seconds,
                    fallback_intensity=fallback_intensity,
                    trace_id=trace_id,
                )
            except ProviderError:
                CHAT_TURNS.labels("provider_error").inc()
                raise
            except CoreError as exc:
                CHAT_TURNS.labels("rejected").inc()
                span.set_attribute("agentdesk.error_code", exc.code)
                raise
            span.set_attribute("agentdesk.tokens_used", reply.tokens_used)
            CHAT_TURNS.labels("ok").inc()
            return reply

    def _handle(
        self,
        agent_id: UUID,
        visitor_id: str,
        text: str,
        conversation_id: UUID | str | None,
        *,
        tenant_id: UUID | None,
        timeout: float,
        fallback_intensity: Intensity,
        trace_id: str,
    ) -> ChatReply:
        agent = load_agent(self._agents, agent_id, tenant_id=tenant_id)
        if not agent.is_active:
            raise AgentInactiveError(agent_id)
        template = agent_template(agent, fallback=fallback_intensity)

        conversation = self._resolver.resolve(agent_id, visitor_id, conversation_id)
        resolved_id = conversation.id
        annotate_current_span(conversation_id=str(resolved_id))

        self._messages.append(resolved_id, text, False)
        self._conversations.touch(conversation)
        logger.info(
            "chat.user_turn.persisted",
            agent_id=str(agent_id),
            conversation_id=str(resolved_id),
            trace_id=trace_id,
        )

        company_name = template.company_name or self._fallback_company_name
        file_refs = tuple(agent.file_refs or ())
        request = ProviderRequest(
            model=agent.model,
            temperature=agent.temperature,
            max_tokens=agent.max_tokens,
            top_p=agent.top_p,
            system_prompt=compile_prompt(template, company_name, agent.system_prompt),
            user_text=text,
            file_refs=file_refs,
        )

        try:
            provider_reply = self._provider.generate(request, timeout=timeout)
        except ProviderError as exc:
            logger.warning(
                "chat.provider.failed",
                agent_id=str(agent_id),
                conversation_id=str(resolved_id),
                error_kind=exc.code,
                reason=exc.message,
                retryable=exc.retryable,
                trace_id=trace_id,
            )
            raise

        self._messages.append(resolved_id, provider_reply.text, True)
        self._conversations.touch(conversation)
        logger.info(
            "chat.turn.completed",
            agent_id=str(agent_id),
            conversation_id=str(resolved_id),
            tokens_used=provider_reply.total_tokens,
            trace_id=trace_id,
        )
        return ChatReply(
            text=provider_reply.text,
            conversation_id=resolved_id,
            tokens_used=provider_reply.total_tokens,
            files_used=len(file_refs),
            trace_id=trace_id,
        )


class ConversationHistoryService:
    def __init__(self, conversations: ConversationStore, messages: MessageStore) -> None:
        self._conversations = conversations
        self._messages = messages

    def history(
        self, conversation_id: UUID
    ) -> tuple[db_models.Conversation, list[db_models.Message]]:
        conversation = self._conversations.get_by_id(conversation_id)
        if conversation is None:
            raise NotFoundError(
                "conversation not found",
                code="conversation_not_found",
                details={"conversation_id": str(conversation_id)},
            )
        return conversation, self._messages.list_for_conversation(conversation_id)


class AllowedDomainsService:
    """Reads and replaces an agent's widget allow-list.

    Conflicts reported by :func:`find_conflicts` are treated as hard errors
    here, so a stored allow-list is always free of redundant entries.
    """

    def __init__(self, agents: AgentStore, settings: WidgetSettings) -> None:
        self._agents = agents
        self._settings = settings

    def get(self, agent_id: UUID, *, tenant_id: UUID | None = None) -> list[str]:
        agent = load_agent(self._agents, agent_id, tenant_id=tenant_id)
        return list(agent.allowed_domains or [])

    def replace(
        self,
        agent_id: UUID,
        patterns: Sequence[str],
        *,
        tenant_id: UUID | None = None,
    ) -> list[str]:
        load_agent(self._agents, agent_id, tenant_id=tenant_id)
        normalized = self.validate(patterns)
        agent = self._agents.update_allowed_domains(agent_id, normalized)
        logger.info(
            "widget.allowed_domains.updated",
            agent_id=str(agent_id),
            count=len(normalized),
        )
        return list(agent.allowed_domains)

    def validate(self, patterns: Sequence[str]) -> list[str]:
        """Return the normalised allow-list or raise a structured ``ValidationError``."""

        if len(patterns) > self._settings.max_allowed_domains:
            self._reject("too_many")
            raise ValidationError(
                f"at most {self._settings.max_allowed_domains} domains are allowed",
                code="too_many_domains",
                details={"max_allowed_domains": self._settings.max_allowed_domains},
            )

        errors = [
            {
                "field": f"allowed_domains[{index}]",
                "message": f"invalid domain pattern: {pattern!r}",
            }
            for index, pattern in enumerate(patterns)
            if not is_valid_pattern(pattern, max_length=self._settings.max_domain_length)
        ]
        if errors:
            self._reject("invalid")
            raise ValidationError(
                "invalid domain patterns", code="invalid_domains", details={"errors": errors}
            )

        duplicates = find_duplicates(patterns)
        if duplicates:
            self._reject("duplicate")
            raise ValidationError(
                "duplicate domain patterns",
                code="duplicate_domains",
                details={"duplicates": duplicates},
            )

        conflicts = find_conflicts(patterns)
        if conflicts:
            self._reject("conflict")
            raise ValidationError(
                "conflicting domain patterns",
                code="domain_conflicts",
                details={"conflicts": conflicts},
            )

        return [normalize_pattern(pattern) for pattern in patterns]

    @staticmethod
    def _reject(reason: str) -> None:
        DOMAIN_REJECTIONS.labels(reason).inc()
        logger.info("widget.allowed_domains.rejected", reason=reason)


class WidgetGate:
    """Admission checks for the public widget endpoint."""

    def __init__(
        self,
        agents: AgentStore,
        rate_limiter: WidgetRateLimiter,
        settings: WidgetSettings,
    ) -> None:
        self._agents = agents
        self._rate_limiter = rate_limiter
        self._settings = settings

    def admit(self, agent_id: UUID, *, origin: str | None, client: str, text: str) -> None:
        agent = load_agent(self._agents, agent_id)
        patterns = list(agent.allowed_domains or [])
        if patterns and not (origin and is_origin_allowed(origin, patterns)):
            DOMAIN_REJECTIONS.labels("origin").inc()
            logger.info(
                "widget.origin.rejected",
                agent_id=str(agent_id),
                origin=origin,
            )
            raise ForbiddenError(
                "this site is not allowed to use the agent",
                code="origin_not_allowed",
                details={"origin": origin},
            )

        self._rate_limiter.check(agent_id, client)

        if len(text) > self._settings.max_message_length:
            raise ValidationError(
                f"message exceeds {self._settings.max_message_length} characters",
                code="message_too_long",
                details={"max_message_length": self._settings.max_message_length},
            )


@dataclass(slots=True)
class GuardrailPreview:
    intensity: Intensity
    enabled: bool
    company_name: str
    compiled_prompt: str
    risk_score: int
    risk_level: str
    advisories: list[str] = field(default_factory=list)


class GuardrailPreviewService:
    """Operator-facing view of what an agent's guardrails compile to."""

    def __init__(self, agents: AgentStore, settings: GuardrailSettings) -> None:
        self._agents = agents
        self._settings = settings

    def preview(self, agent_id: UUID, *, tenant_id: UUID | None = None) -> GuardrailPreview:
        agent = load_agent(self._agents, agent_id, tenant_id=tenant_id)
        template = agent_template(agent)
        company_name = template.company_name or self._settings.fallback_company_name
        score = risk_score(template)
        return GuardrailPreview(
            intensity=template.intensity,
            enabled=template.enabled,
            company_name=company_name,
            compiled_prompt=compile_prompt(template, company_name, agent.system_prompt),
            risk_score=score,
            risk_level=risk_level(score),
            advisories=model_advisories(agent.model, self._settings.recommended_models),
        )
