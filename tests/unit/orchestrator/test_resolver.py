from __future__ import annotations

from collections.abc import Callable
from uuid import UUID, uuid4

import pytest
from sqlalchemy import func
from sqlmodel import Session, select

from agentdesk.apps.orchestrator.services import ConversationResolver
from agentdesk.apps.orchestrator.stores import ConversationAlreadyOpen, SQLConversationStore
from agentdesk.core.db import models as db_models
from agentdesk.core.errors import InvalidConversationError

pytestmark = pytest.mark.unit


class RacingConversationStore:
    """Simulates another request opening the conversation between lookup and insert."""

    def __init__(self) -> None:
        self.winner: db_models.Conversation | None = None
        self.lookups = 0

    def find_latest_by_agent_and_visitor(
        self, agent_id: UUID, visitor_id: str
    ) -> db_models.Conversation | None:
        self.lookups += 1
        return self.winner

    def get_by_id(self, conversation_id: UUID) -> db_models.Conversation | None:
        return None

    def create(self, agent_id: UUID, visitor_id: str) -> db_models.Conversation:
        self.winner = db_models.Conversation(agent_id=agent_id, visitor_id=visitor_id)
        raise ConversationAlreadyOpen(agent_id, visitor_id)

    def touch(self, conversation: db_models.Conversation) -> None:
        return None


def _conversation_count(session: Session) -> int:
    return session.exec(select(func.count()).select_from(db_models.Conversation)).one()


def test_resolve_reuses_conversation_for_same_visitor(
    session: Session, make_agent: Callable[..., db_models.Agent]
) -> None:
    agent = make_agent()
    resolver = ConversationResolver(SQLConversationStore(session))

    first = resolver.resolve(agent.id, "V")
    second = resolver.resolve(agent.id, "V")
    other_visitor = resolver.resolve(agent.id, "V2")

    assert first.id == second.id
    assert other_visitor.id != first.id


def test_resolve_returns_explicit_conversation(
    session: Session, make_agent: Callable[..., db_models.Agent]
) -> None:
    agent = make_agent()
    store = SQLConversationStore(session)
    existing = store.create(agent.id, "V")

    resolved = ConversationResolver(store).resolve(agent.id, "someone-else", existing.id)

    assert resolved.id == existing.id


def test_resolve_rejects_conversation_of_other_agent(
    session: Session, make_agent: Callable[..., db_models.Agent]
) -> None:
    agent_a = make_agent()
    agent_b = make_agent()
    store = SQLConversationStore(session)
    foreign = store.create(agent_b.id, "V")
    before = _conversation_count(session)

    with pytest.raises(InvalidConversationError) as exc_info:
        ConversationResolver(store).resolve(agent_a.id, "V", foreign.id)

    assert exc_info.value.status_code == 400
    assert _conversation_count(session) == before


def test_resolve_rejects_unknown_conversation(
    session: Session, make_agent: Callable[..., db_models.Agent]
) -> None:
    agent = make_agent()

    with pytest.raises(InvalidConversationError):
        ConversationResolver(SQLConversationStore(session)).resolve(agent.id, "V", uuid4())

    assert _conversation_count(session) == 0


def test_resolve_rejects_malformed_conversation_id(
    session: Session, make_agent: Callable[..., db_models.Agent]
) -> None:
    agent = make_agent()
    store = SQLConversationStore(session)
    existing = store.create(agent.id, "V")
    resolver = ConversationResolver(store)

    with pytest.raises(InvalidConversationError) as exc_info:
        resolver.resolve(agent.id, "V", "not-a-uuid")

    assert exc_info.value.status_code == 400
    assert resolver.resolve(agent.id, "V", str(existing.id)).id == existing.id
    assert _conversation_count(session) == 1


def test_lost_creation_race_returns_winner() -> None:
    store = RacingConversationStore()
    agent_id = uuid4()

    resolved = ConversationResolver(store).resolve(agent_id, "V")

    assert resolved is store.winner
    assert store.lookups == 2
