from __future__ import annotations

import pytest
from sqlalchemy import inspect
from sqlalchemy.pool import StaticPool

from agentdesk.core.config import AppSettings
from agentdesk.core.db import session as db_session

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def _empty_engine_cache(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(db_session, "_ENGINE_CACHE", {})


def test_postgres_url_override_builds_shared_sqlite_engine(monkeypatch) -> None:
    monkeypatch.setenv("POSTGRES_URL", "sqlite://")
    settings = AppSettings()

    engine = db_session.create_engine_from_settings(settings)
    db_session.init_db(engine)

    assert isinstance(engine.pool, StaticPool)
    assert db_session.create_engine_from_settings(settings) is engine
    assert {"agents", "conversations", "messages"} <= set(inspect(engine).get_table_names())


def test_postgres_engine_uses_configured_pool(monkeypatch) -> None:
    monkeypatch.setenv("POSTGRES_POOL_SIZE", "3")
    monkeypatch.setenv("POSTGRES_MAX_OVERFLOW", "1")
    settings = AppSettings()

    engine = db_session.create_engine_from_settings(settings)

    assert settings.postgres.dsn.startswith("postgresql+psycopg://")
    assert engine.pool.size() == 3
    assert engine.url.drivername == "postgresql+psycopg"
