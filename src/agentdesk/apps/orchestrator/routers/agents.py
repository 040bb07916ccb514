"""Operator endpoints for agent widget allow-lists and guardrail previews."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status

from agentdesk.core.http import ResponseEnvelope

from .. import schemas
from ..dependencies import (
    TenantDep,
    get_allowed_domains_service,
    get_guardrail_preview_service,
)
from ..services import AllowedDomainsService, GuardrailPreviewService

router = APIRouter(prefix="/v1/agents", tags=["agents"])

AllowedDomainsServiceDep = Annotated[
    AllowedDomainsService, Depends(get_allowed_domains_service)
]
GuardrailPreviewServiceDep = Annotated[
    GuardrailPreviewService, Depends(get_guardrail_preview_service)
]


@router.get(
    "/{agent_id}/allowed-domains",
    response_model=ResponseEnvelope[schemas.AllowedDomainsResponse],
    status_code=status.HTTP_200_OK,
)
def get_allowed_domains(
    agent_id: UUID,
    service: AllowedDomainsServiceDep,
    tenant_id: TenantDep,
) -> ResponseEnvelope[schemas.AllowedDomainsResponse]:
    domains = service.get(agent_id, tenant_id=tenant_id)
    return ResponseEnvelope(
        data=schemas.AllowedDomainsResponse(agent_id=agent_id, allowed_domains=domains)
    )


@router.put(
    "/{agent_id}/allowed-domains",
    response_model=ResponseEnvelope[schemas.AllowedDomainsResponse],
    status_code=status.HTTP_200_OK,
)
def replace_allowed_domains(
    agent_id: UUID,
    payload: schemas.AllowedDomainsRequest,
    service: AllowedDomainsServiceDep,
    tenant_id: TenantDep,
) -> ResponseEnvelope[schemas.AllowedDomainsResponse]:
    """Replace the allow-list; duplicates and conflicting entries are rejected."""

    domains = service.replace(agent_id, payload.allowed_domains, tenant_id=tenant_id)
    return ResponseEnvelope(
        data=schemas.AllowedDomainsResponse(agent_id=agent_id, allowed_domains=domains)
    )


@router.get(
    "/{agent_id}/guardrails",
    response_model=ResponseEnvelope[schemas.GuardrailPreviewResponse],
    status_code=status.HTTP_200_OK,
)
def preview_guardrails(
    agent_id: UUID,
    service: GuardrailPreviewServiceDep,
    tenant_id: TenantDep,
) -> ResponseEnvelope[schemas.GuardrailPreviewResponse]:
    """Show the compiled system prompt, risk score and model advisories."""

    preview = service.preview(agent_id, tenant_id=tenant_id)
    return ResponseEnvelope(
        data=schemas.GuardrailPreviewResponse.from_preview(agent_id, preview)
    )
