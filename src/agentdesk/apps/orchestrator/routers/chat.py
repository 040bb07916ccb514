"""Chat endpoints for operators and the public widget."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status

from agentdesk.core.domain import Intensity
from agentdesk.core.http import ResponseEnvelope

from .. import schemas
from ..dependencies import TenantDep, get_chat_orchestrator, get_widget_gate
from ..services import ChatOrchestrator, WidgetGate

router = APIRouter(tags=["chat"])

OrchestratorDep = Annotated[ChatOrchestrator, Depends(get_chat_orchestrator)]
WidgetGateDep = Annotated[WidgetGate, Depends(get_widget_gate)]


@router.post(
    "/v1/agents/{agent_id}/chat",
    response_model=ResponseEnvelope[schemas.ChatResponse],
    status_code=status.HTTP_200_OK,
)
def chat_with_agent(
    agent_id: UUID,
    payload: schemas.ChatRequest,
    orchestrator: OrchestratorDep,
    tenant_id: TenantDep,
) -> ResponseEnvelope[schemas.ChatResponse]:
    """Handle one visitor message and return the agent's reply."""

    reply = orchestrator.handle_message(
        agent_id,
        payload.visitor_id,
        payload.message,
        payload.conversation_id,
        tenant_id=tenant_id,
    )
    return ResponseEnvelope(data=schemas.ChatResponse.from_reply(reply), trace_id=reply.trace_id)


@router.post(
    "/v1/public/agents/{agent_id}/chat",
    response_model=ResponseEnvelope[schemas.ChatResponse],
    status_code=status.HTTP_200_OK,
)
def widget_chat(
    agent_id: UUID,
    payload: schemas.ChatRequest,
    request: Request,
    gate: WidgetGateDep,
    orchestrator: OrchestratorDep,
) -> ResponseEnvelope[schemas.ChatResponse]:
    """Chat endpoint used by embedded widgets on allow-listed sites."""

    origin = request.headers.get("origin") or request.headers.get("x-domain")
    client = request.client.host if request.client else "unknown"
    gate.admit(agent_id, origin=origin, client=client, text=payload.message)

    reply = orchestrator.handle_message(
        agent_id,
        payload.visitor_id,
        payload.message,
        payload.conversation_id,
        fallback_intensity=Intensity.ULTRA_STRICT,
    )
    return ResponseEnvelope(data=schemas.ChatResponse.from_reply(reply), trace_id=reply.trace_id)
