"""Dependency wiring for the orchestrator FastAPI application."""

from __future__ import annotations

from collections.abc import Iterator
from functools import lru_cache
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header
from redis import Redis
from sqlalchemy.engine import Engine
from sqlmodel import Session

from agentdesk.core.config import AppSettings
from agentdesk.core.db.session import create_engine_from_settings, init_db
from agentdesk.llm import OpenAIProviderClient, ProviderClient
from agentdesk.widget import WidgetRateLimiter

from .services import (
    AllowedDomainsService,
    ChatOrchestrator,
    ConversationHistoryService,
    GuardrailPreviewService,
    WidgetGate,
)
from .stores import SQLAgentStore, SQLConversationStore, SQLMessageStore


@lru_cache
def get_settings() -> AppSettings:
    """Return cached ``AppSettings`` instance."""

    return AppSettings.load()


@lru_cache
def get_engine() -> Engine:
    """Create (or reuse) the SQLModel engine."""

    settings = get_settings()
    engine = create_engine_from_settings(settings)
    init_db(engine)
    return engine


def get_session() -> Iterator[Session]:
    """Provide a SQLModel session per-request."""

    engine = get_engine()
    with Session(engine) as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise


@lru_cache
def get_redis_client() -> Redis:
    """Create the Redis client; connections are opened lazily per command."""

    settings = get_settings()
    return Redis.from_url(settings.redis.url, decode_responses=True)


@lru_cache
def get_provider_client() -> ProviderClient:
    """Return the LLM provider client for the configured provider."""

    return OpenAIProviderClient.from_settings(get_settings())


@lru_cache
def get_rate_limiter() -> WidgetRateLimiter:
    settings = get_settings()
    return WidgetRateLimiter(
        get_redis_client(),
        requests_per_minute=settings.widget.requests_per_minute,
    )


def get_tenant_id(
    x_tenant_id: Annotated[UUID | None, Header(alias="X-Tenant-ID")] = None,
) -> UUID | None:
    """Tenant asserted by the calling layer; ``None`` skips the ownership check."""

    return x_tenant_id


SettingsDep = Annotated[AppSettings, Depends(get_settings)]
SessionDep = Annotated[Session, Depends(get_session)]
ProviderDep = Annotated[ProviderClient, Depends(get_provider_client)]
RateLimiterDep = Annotated[WidgetRateLimiter, Depends(get_rate_limiter)]
TenantDep = Annotated[UUID | None, Depends(get_tenant_id)]


def get_chat_orchestrator(
    session: SessionDep,
    provider: ProviderDep,
    settings: SettingsDep,
) -> ChatOrchestrator:
    """Provide a chat orchestrator bound to the active DB session."""

    return ChatOrchestrator(
        SQLAgentStore(session),
        SQLConversationStore(session),
        SQLMessageStore(session),
        provider,
        fallback_company_name=settings.guardrails.fallback_company_name,
        timeout_seconds=settings.llm.timeout_seconds,
    )


def get_history_service(session: SessionDep) -> ConversationHistoryService:
    return ConversationHistoryService(SQLConversationStore(session), SQLMessageStore(session))


def get_allowed_domains_service(
    session: SessionDep,
    settings: SettingsDep,
) -> AllowedDomainsService:
    return AllowedDomainsService(SQLAgentStore(session), settings.widget)


def get_widget_gate(
    session: SessionDep,
    rate_limiter: RateLimiterDep,
    settings: SettingsDep,
) -> WidgetGate:
    return WidgetGate(SQLAgentStore(session), rate_limiter, settings.widget)


def get_guardrail_preview_service(
    session: SessionDep,
    settings: SettingsDep,
) -> GuardrailPreviewService:
    return GuardrailPreviewService(SQLAgentStore(session), settings.guardrails)
