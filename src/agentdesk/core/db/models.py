"""SQLModel declarative models for agents, conversations and messages."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any, List
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Index,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlmodel import Field, Relationship, SQLModel


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def created_at_field() -> Any:
    return Field(
        default_factory=_utcnow,
        sa_column=Column(
            DateTime(timezone=True),
            nullable=False,
            server_default=func.now(),
        ),
    )


def updated_at_field() -> Any:
    return Field(
        default_factory=_utcnow,
        sa_column=Column(
            DateTime(timezone=True),
            nullable=False,
            server_default=func.now(),
            onupdate=func.now(),
            index=True,
        ),
    )


class UUIDPrimaryKey(SQLModel, table=False):
    """Mixin providing a UUID primary key."""

    id: UUID = Field(default_factory=uuid4, primary_key=True, nullable=False)


class Agent(UUIDPrimaryKey, table=True):
    """A tenant's configured assistant."""

    __tablename__ = "agents"

    created_at: datetime = created_at_field()
    updated_at: datetime = updated_at_field()

    tenant_id: UUID = Field(nullable=False, index=True)
    name: str = Field(sa_column=Column(String(length=100), nullable=False))
    description: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    system_prompt: str = Field(sa_column=Column(Text, nullable=False))
    model: str = Field(sa_column=Column(String(length=100), nullable=False))
    temperature: float = Field(default=0.7, ge=0.0, le=1.0)
    max_tokens: int = Field(default=1024, ge=1)
    top_p: float = Field(default=1.0, ge=0.0, le=1.0)
    is_active: bool = Field(default=True, nullable=False)
    anti_hallucination_template: dict[str, Any] | None = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
    )
    allowed_domains: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False, server_default="[]"),
    )
    file_refs: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False, server_default="[]"),
    )

    conversations: List["Conversation"] = Relationship(
        back_populates="agent",
        sa_relationship_kwargs={"cascade": "all,delete"},
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_agents_tenant_name"),
    )


class ConversationStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class Conversation(UUIDPrimaryKey, table=True):
    """One visitor's thread with one agent."""

    __tablename__ = "conversations"

    created_at: datetime = created_at_field()
    updated_at: datetime = updated_at_field()

    agent_id: UUID = Field(foreign_key="agents.id", nullable=False)
    visitor_id: str = Field(sa_column=Column(String(length=255), nullable=False))
    status: ConversationStatus = Field(
        default=ConversationStatus.OPEN.value,
        sa_column=Column(
            String(length=16), nullable=False, default=ConversationStatus.OPEN.value
        ),
    )

    agent: Agent | None = Relationship(back_populates="conversations")
    messages: List["Message"] = Relationship(
        back_populates="conversation",
        sa_relationship_kwargs={"cascade": "all,delete"},
    )

    __table_args__ = (
        # At most one open conversation per (agent, visitor).
        Index(
            "uq_conversations_agent_visitor_open",
            "agent_id",
            "visitor_id",
            unique=True,
            postgresql_where=text("status = 'open'"),
            sqlite_where=text("status = 'open'"),
        ),
    )


class Message(UUIDPrimaryKey, table=True):
    """Immutable turn within a conversation."""

    __tablename__ = "messages"

    created_at: datetime = created_at_field()

    conversation_id: UUID = Field(
        foreign_key="conversations.id", nullable=False, index=True
    )
    sequence: int = Field(nullable=False, ge=1)
    content: str = Field(sa_column=Column(Text, nullable=False))
    is_from_assistant: bool = Field(default=False, nullable=False)

    conversation: Conversation | None = Relationship(back_populates="messages")

    __table_args__ = (
        UniqueConstraint(
            "conversation_id", "sequence", name="uq_messages_conversation_sequence"
        ),
    )


metadata = SQLModel.metadata
