"""Conversation history endpoints."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status

from agentdesk.core.http import ResponseEnvelope

from .. import schemas
from ..dependencies import get_history_service
from ..services import ConversationHistoryService

router = APIRouter(prefix="/v1/conversations", tags=["conversations"])

HistoryServiceDep = Annotated[ConversationHistoryService, Depends(get_history_service)]


@router.get(
    "/{conversation_id}",
    response_model=ResponseEnvelope[schemas.ConversationHistoryResponse],
    status_code=status.HTTP_200_OK,
)
def get_conversation_history(
    conversation_id: UUID,
    history_service: HistoryServiceDep,
) -> ResponseEnvelope[schemas.ConversationHistoryResponse]:
    """Return the persisted message history for a conversation."""

    conversation, messages = history_service.history(conversation_id)
    payload = schemas.ConversationHistoryResponse(
        conversation_id=conversation.id,
        agent_id=conversation.agent_id,
        visitor_id=conversation.visitor_id,
        status=conversation.status,
        messages=[schemas.MessageResponse.from_model(message) for message in messages],
    )
    return ResponseEnvelope(data=payload)
