"""Persistence contracts used by the chat core and their SQL implementations.

Every write commits immediately. A chat turn therefore never holds a
transaction open across the provider call, and the visitor's message is
durable before the model is asked for a reply.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from agentdesk.core.db import models as db_models
from agentdesk.core.db.models import ConversationStatus

logger = logging.getLogger(__name__)

_APPEND_ATTEMPTS = 3


class ConversationAlreadyOpen(Exception):
    """Another request opened a conversation for the same visitor first."""

    def __init__(self, agent_id: UUID, visitor_id: str) -> None:
        super().__init__(f"open conversation already exists for {agent_id}/{visitor_id}")
        self.agent_id = agent_id
        self.visitor_id = visitor_id


class AgentStore(Protocol):
    def get_agent(self, agent_id: UUID) -> db_models.Agent | None: ...

    def is_owned_by(self, agent_id: UUID, tenant_id: UUID) -> bool: ...

    def update_allowed_domains(
        self, agent_id: UUID, patterns: Sequence[str]
    ) -> db_models.Agent: ...


class ConversationStore(Protocol):
    def find_latest_by_agent_and_visitor(
        self, agent_id: UUID, visitor_id: str
    ) -> db_models.Conversation | None: ...

    def get_by_id(self, conversation_id: UUID) -> db_models.Conversation | None: ...

    def create(self, agent_id: UUID, visitor_id: str) -> db_models.Conversation:
        """Open a conversation or raise :class:`ConversationAlreadyOpen`."""
        ...

    def touch(self, conversation: db_models.Conversation) -> None: ...


class MessageStore(Protocol):
    def append(
        self, conversation_id: UUID, content: str, is_from_assistant: bool
    ) -> db_models.Message: ...

    def list_for_conversation(self, conversation_id: UUID) -> list[db_models.Message]: ...


class SQLAgentStore:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get_agent(self, agent_id: UUID) -> db_models.Agent | None:
        return self._session.get(db_models.Agent, agent_id)

    def is_owned_by(self, agent_id: UUID, tenant_id: UUID) -> bool:
        agent = self.get_agent(agent_id)
        return agent is not None and agent.tenant_id == tenant_id

    def update_allowed_domains(
        self, agent_id: UUID, patterns: Sequence[str]
    ) -> db_models.Agent:
        agent = self._session.get(db_models.Agent, agent_id)
        if agent is None:
            raise LookupError(f"agent {agent_id} not found")
        agent.allowed_domains = list(patterns)
        agent.updated_at = datetime.now(tz=UTC)
        self._session.add(agent)
        self._session.commit()
        self._session.refresh(agent)
        return agent


class SQLConversationStore:
    def __init__(self, session: Session) -> None:
        self._session = session

    def find_latest_by_agent_and_visitor(
        self, agent_id: UUID, visitor_id: str
    ) -> db_models.Conversation | None:
        statement = (
            select(db_models.Conversation)
            .where(db_models.Conversation.agent_id == agent_id)
            .where(db_models.Conversation.visitor_id == visitor_id)
            .where(db_models.Conversation.status == ConversationStatus.OPEN.value)
            .order_by(
                col(db_models.Conversation.updated_at).desc(),
                col(db_models.Conversation.created_at).desc(),
            )
        )
        return self._session.exec(statement).first()

    def get_by_id(self, conversation_id: UUID) -> db_models.Conversation | None:
        return self._session.get(db_models.Conversation, conversation_id)

    def create(self, agent_id: UUID, visitor_id: str) -> db_models.Conversation:
        conversation = db_models.Conversation(agent_id=agent_id, visitor_id=visitor_id)
        self._session.add(conversation)
        try:
            self._session.commit()
        except IntegrityError as exc:
            self._session.rollback()
            raise ConversationAlreadyOpen(agent_id, visitor_id) from exc
        self._session.refresh(conversation)
        return conversation

    def touch(self, conversation: db_models.Conversation) -> None:
        conversation.updated_at = datetime.now(tz=UTC)
        self._session.add(conversation)
        self._session.commit()


class SQLMessageStore:
    def __init__(self, session: Session) -> None:
        self._session = session

    def append(
        self, conversation_id: UUID, content: str, is_from_assistant: bool
    ) -> db_models.Message:
        attempt = 1
        while True:
            message = db_models.Message(
                conversation_id=conversation_id,
                sequence=self._next_sequence(conversation_id),
                content=content,
                is_from_assistant=is_from_assistant,
            )
            self._session.add(message)
            try:
                self._session.commit()
            except IntegrityError:
                # A concurrent turn claimed this sequence number.
                self._session.rollback()
                if attempt >= _APPEND_ATTEMPTS:
                    raise
                attempt += 1
                logger.info(
                    "message sequence taken; retrying append",
                    extra={"conversation_id": str(conversation_id), "attempt": attempt},
                )
                continue
            self._session.refresh(message)
            return message

    def list_for_conversation(self, conversation_id: UUID) -> list[db_models.Message]:
        statement = (
            select(db_models.Message)
            .where(db_models.Message.conversation_id == conversation_id)
            .order_by(col(db_models.Message.sequence).asc())
        )
        return list(self._session.exec(statement).all())

    def _next_sequence(self, conversation_id: UUID) -> int:
        statement = select(func.max(db_models.Message.sequence)).where(
            db_models.Message.conversation_id == conversation_id
        )
        current = self._session.exec(statement).one()
        return int(current or 0) + 1
