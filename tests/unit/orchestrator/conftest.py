from __future__ import annotations

from collections.abc import Callable, Generator
from typing import Any
from uuid import UUID, uuid4

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from agentdesk.core.db import models as db_models
from agentdesk.core.db.session import init_db


@pytest.fixture()
def engine() -> Engine:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    return engine


@pytest.fixture()
def session(engine: Engine) -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


@pytest.fixture()
def tenant_id() -> UUID:
    return uuid4()


@pytest.fixture()
def make_agent(session: Session, tenant_id: UUID) -> Callable[..., db_models.Agent]:
    def factory(**overrides: Any) -> db_models.Agent:
        values: dict[str, Any] = {
            "tenant_id": tenant_id,
            "name": f"Support {uuid4().hex[:6]}",
            "system_prompt": "Answer questions about Acme deliveries.",
            "model": "claude-3-5-sonnet-20241022",
            "temperature": 0.2,
            "max_tokens": 300,
            "top_p": 0.95,
        }
        values.update(overrides)
        agent = db_models.Agent(**values)
        session.add(agent)
        session.commit()
        session.refresh(agent)
        return agent

    return factory
