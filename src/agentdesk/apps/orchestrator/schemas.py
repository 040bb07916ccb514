"""Request and response models for the orchestrator HTTP surface.

JSON field names are camelCase to match the widget and dashboard clients.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from agentdesk.core.domain import ChatReply, Intensity
from agentdesk.core.db import models as db_models

from .services import GuardrailPreview


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatRequest(CamelModel):
    message: str = Field(min_length=1)
    visitor_id: str = Field(min_length=1, max_length=255)
    conversation_id: str | None = None


class ChatResponse(CamelModel):
    response: str
    conversation_id: UUID
    tokens_used: int
    files_used: int = 0

    @classmethod
    def from_reply(cls, reply: ChatReply) -> ChatResponse:
        return cls(
            response=reply.text,
            conversation_id=reply.conversation_id,
            tokens_used=reply.tokens_used,
            files_used=reply.files_used,
        )


class MessageResponse(CamelModel):
    id: UUID
    sequence: int
    content: str
    is_from_assistant: bool
    created_at: datetime

    @classmethod
    def from_model(cls, message: db_models.Message) -> MessageResponse:
        return cls(
            id=message.id,
            sequence=message.sequence,
            content=message.content,
            is_from_assistant=message.is_from_assistant,
            created_at=message.created_at,
        )


class ConversationHistoryResponse(CamelModel):
    conversation_id: UUID
    agent_id: UUID
    visitor_id: str
    status: str
    messages: list[MessageResponse]


class AllowedDomainsRequest(CamelModel):
    allowed_domains: list[str] = Field(default_factory=list)


class AllowedDomainsResponse(CamelModel):
    agent_id: UUID
    allowed_domains: list[str]


class GuardrailPreviewResponse(CamelModel):
    agent_id: UUID
    enabled: bool
    intensity: Intensity
    company_name: str
    compiled_prompt: str
    risk_score: int
    risk_level: str
    advisories: list[str]

    @classmethod
    def from_preview(cls, agent_id: UUID, preview: GuardrailPreview) -> GuardrailPreviewResponse:
        return cls(
            agent_id=agent_id,
            enabled=preview.enabled,
            intensity=preview.intensity,
            company_name=preview.company_name,
            compiled_prompt=preview.compiled_prompt,
            risk_score=preview.risk_score,
            risk_level=preview.risk_level,
            advisories=preview.advisories,
        )
