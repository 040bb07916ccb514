from __future__ import annotations

from collections.abc import Callable
from uuid import UUID, uuid4

import pytest
from sqlalchemy import func
from sqlmodel import Session, select

from agentdesk.apps.orchestrator.services import ChatOrchestrator
from agentdesk.apps.orchestrator.stores import (
    SQLAgentStore,
    SQLConversationStore,
    SQLMessageStore,
)
from agentdesk.core.db import models as db_models
from agentdesk.core.domain import Intensity, ProviderReply
from agentdesk.core.errors import (
    AgentAccessError,
    AgentInactiveError,
    AgentNotFoundError,
    InvalidConversationError,
    ProviderError,
    ProviderTimeoutError,
    TemplateValidationError,
)
from agentdesk.guardrails import dump_template, default_template

from .fakes import FailingProvider, StubProvider

pytestmark = pytest.mark.unit


def _orchestrator(session: Session, provider: StubProvider) -> ChatOrchestrator:
    return ChatOrchestrator(
        SQLAgentStore(session),
        SQLConversationStore(session),
        SQLMessageStore(session),
        provider,
        fallback_company_name="this company",
        timeout_seconds=30.0,
    )


def _messages(session: Session, conversation_id: UUID) -> list[db_models.Message]:
    return SQLMessageStore(session).list_for_conversation(conversation_id)


def _count(session: Session, model: type) -> int:
    return session.exec(select(func.count()).select_from(model)).one()


def test_turn_persists_user_then_assistant_message(
    session: Session, make_agent: Callable[..., db_models.Agent]
) -> None:
    agent = make_agent()
    provider = StubProvider(ProviderReply("Your parcel ships today.", 40, 12))

    reply = _orchestrator(session, provider).handle_message(agent.id, "V", "Where is my parcel?")

    assert reply.text == "Your parcel ships today."
    assert reply.tokens_used == 52
    assert reply.files_used == 0
    assert reply.trace_id
    history = _messages(session, reply.conversation_id)
    assert [(m.content, m.is_from_assistant) for m in history] == [
        ("Where is my parcel?", False),
        ("Your parcel ships today.", True),
    ]
    assert history[0].sequence < history[1].sequence
    assert history[0].created_at <= history[1].created_at


def test_follow_up_turns_reuse_the_conversation(
    session: Session, make_agent: Callable[..., db_models.Agent]
) -> None:
    agent = make_agent()
    orchestrator = _orchestrator(session, StubProvider())

    first = orchestrator.handle_message(agent.id, "V", "Hi")
    second = orchestrator.handle_message(agent.id, "V", "Still there?")

    assert first.conversation_id == second.conversation_id
    assert len(_messages(session, first.conversation_id)) == 4


def test_provider_request_carries_agent_configuration(
    session: Session, make_agent: Callable[..., db_models.Agent]
) -> None:
    template = dump_template(default_template(Intensity.STRICT))
    template["companyName"] = "Acme"
    agent = make_agent(anti_hallucination_template=template, file_refs=["file-1", "file-2"])
    provider = StubProvider()

    reply = _orchestrator(session, provider).handle_message(agent.id, "V", "Hello")

    request = provider.requests[0]
    assert request.model == "claude-3-5-sonnet-20241022"
    assert request.temperature == 0.2
    assert request.max_tokens == 300
    assert request.top_p == 0.95
    assert request.user_text == "Hello"
    assert request.file_refs == ("file-1", "file-2")
    assert "STRICT CONTEXT" in request.system_prompt
    assert "Acme" in request.system_prompt
    assert "Answer questions about Acme deliveries." in request.system_prompt
    assert provider.timeouts == [30.0]
    assert reply.files_used == 2


def test_missing_template_uses_fallback_intensity_and_company(
    session: Session, make_agent: Callable[..., db_models.Agent]
) -> None:
    agent = make_agent()
    provider = StubProvider()
    orchestrator = _orchestrator(session, provider)

    orchestrator.handle_message(agent.id, "V", "Hello")
    orchestrator.handle_message(
        agent.id, "V2", "Hello", fallback_intensity=Intensity.ULTRA_STRICT, timeout=5.0
    )

    assert provider.requests[0].system_prompt.startswith("STRICT CONTEXT")
    assert "this company" in provider.requests[0].system_prompt
    assert provider.requests[1].system_prompt.startswith("ULTRA-STRICT CONTEXT")
    assert provider.timeouts[1] == 5.0


def test_disabled_template_sends_base_prompt_unchanged(
    session: Session, make_agent: Callable[..., db_models.Agent]
) -> None:
    agent = make_agent(anti_hallucination_template={"enabled": False})
    provider = StubProvider()

    _orchestrator(session, provider).handle_message(agent.id, "V", "Hello")

    assert provider.requests[0].system_prompt == "Answer questions about Acme deliveries."


def test_provider_failure_keeps_user_turn_only(
    session: Session, make_agent: Callable[..., db_models.Agent]
) -> None:
    agent = make_agent()

    with pytest.raises(ProviderError):
        _orchestrator(session, FailingProvider()).handle_message(agent.id, "V", "Hello?")

    conversation = SQLConversationStore(session).find_latest_by_agent_and_visitor(agent.id, "V")
    assert conversation is not None
    history = _messages(session, conversation.id)
    assert [(m.content, m.is_from_assistant) for m in history] == [("Hello?", False)]


def test_provider_timeout_is_a_provider_error(
    session: Session, make_agent: Callable[..., db_models.Agent]
) -> None:
    agent = make_agent()
    provider = StubProvider(ProviderTimeoutError("provider call timed out"))

    with pytest.raises(ProviderError):
        _orchestrator(session, provider).handle_message(agent.id, "V", "Hello?")

    assert _count(session, db_models.Message) == 1


def test_retrying_after_failure_continues_same_conversation(
    session: Session, make_agent: Callable[..., db_models.Agent]
) -> None:
    agent = make_agent()
    provider = StubProvider(ProviderError("boom"), ProviderReply("Back online.", 5, 5))
    orchestrator = _orchestrator(session, provider)

    with pytest.raises(ProviderError):
        orchestrator.handle_message(agent.id, "V", "Hello?")
    reply = orchestrator.handle_message(agent.id, "V", "Hello?")

    contents = [m.content for m in _messages(session, reply.conversation_id)]
    assert contents == ["Hello?", "Hello?", "Back online."]


def test_unknown_agent_is_rejected(session: Session) -> None:
    with pytest.raises(AgentNotFoundError):
        _orchestrator(session, StubProvider()).handle_message(uuid4(), "V", "Hello")


def test_inactive_agent_is_rejected_before_anything_is_written(
    session: Session, make_agent: Callable[..., db_models.Agent]
) -> None:
    agent = make_agent(is_active=False)
    provider = StubProvider()

    with pytest.raises(AgentInactiveError) as exc_info:
        _orchestrator(session, provider).handle_message(agent.id, "V", "Hello")

    assert exc_info.value.status_code == 409
    assert provider.requests == []
    assert _count(session, db_models.Conversation) == 0


def test_ownership_hook_rejects_other_tenants(
    session: Session, make_agent: Callable[..., db_models.Agent], tenant_id: UUID
) -> None:
    agent = make_agent()
    orchestrator = _orchestrator(session, StubProvider())

    with pytest.raises(AgentAccessError):
        orchestrator.handle_message(agent.id, "V", "Hello", tenant_id=uuid4())

    reply = orchestrator.handle_message(agent.id, "V", "Hello", tenant_id=tenant_id)
    assert reply.text


def test_invalid_conversation_creates_nothing(
    session: Session, make_agent: Callable[..., db_models.Agent]
) -> None:
    agent = make_agent()
    other = make_agent()
    foreign = SQLConversationStore(session).create(other.id, "V")

    with pytest.raises(InvalidConversationError):
        _orchestrator(session, StubProvider()).handle_message(agent.id, "V", "Hi", foreign.id)

    assert _count(session, db_models.Conversation) == 1
    assert _count(session, db_models.Message) == 0


def test_invalid_stored_template_is_rejected(
    session: Session, make_agent: Callable[..., db_models.Agent]
) -> None:
    agent = make_agent(anti_hallucination_template={"intensity": 7})

    with pytest.raises(TemplateValidationError):
        _orchestrator(session, StubProvider()).handle_message(agent.id, "V", "Hello")

    assert _count(session, db_models.Message) == 0
