"""Engine construction for the chat store."""

from __future__ import annotations

from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

from agentdesk.core.config import AppSettings, PostgresSettings

from .models import metadata

EngineCacheKey = tuple[str, bool]
_ENGINE_CACHE: dict[EngineCacheKey, Engine] = {}


def create_engine_from_settings(settings: AppSettings, *, echo: bool = False) -> Engine:
    """Create (or reuse) the engine for ``settings.postgres.dsn``."""

    dsn = settings.postgres.dsn
    cache_key: EngineCacheKey = (dsn, echo)
    if cache_key not in _ENGINE_CACHE:
        _ENGINE_CACHE[cache_key] = _build_engine(dsn, settings.postgres, echo=echo)
    return _ENGINE_CACHE[cache_key]


def _build_engine(dsn: str, postgres: PostgresSettings, *, echo: bool) -> Engine:
    if dsn.startswith("sqlite"):
        # Local runs: one shared connection so in-memory tables survive.
        return create_engine(
            dsn,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(
        dsn,
        echo=echo,
        pool_pre_ping=True,
        pool_size=postgres.pool_size,
        max_overflow=postgres.max_overflow,
    )


def init_db(engine: Engine) -> None:
    """Create the agents, conversations and messages tables if missing."""

    metadata.create_all(engine)
