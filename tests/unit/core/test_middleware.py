from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from agentdesk.core.errors import ConflictError
from agentdesk.core.http import install_error_handlers
from agentdesk.core.middleware import RequestContextMiddleware, get_correlation_id

pytestmark = pytest.mark.unit


def test_request_context_middleware_injects_correlation_id() -> None:
    app = FastAPI()
    app.add_middleware(RequestContextMiddleware, service_name="test-service")

    @app.get("/ping")
    async def ping() -> dict[str, str]:
        return {"status": "ok", "correlation": get_correlation_id() or ""}

    client = TestClient(app)
    response = client.get("/ping")

    assert response.status_code == 200
    assert "X-Request-ID" in response.headers
    assert response.json()["correlation"] == response.headers["X-Request-ID"]


def test_request_context_middleware_reuses_inbound_request_id() -> None:
    app = FastAPI()
    app.add_middleware(RequestContextMiddleware, service_name="test-service")

    @app.get("/ping")
    async def ping() -> dict[str, str]:
        return {"correlation": get_correlation_id() or ""}

    response = TestClient(app).get("/ping", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"
    assert response.json()["correlation"] == "req-123"


def test_core_errors_render_as_problem_details() -> None:
    app = FastAPI()
    install_error_handlers(app)

    @app.get("/boom")
    async def boom() -> None:
        raise ConflictError("agent is busy", code="agent_busy", details={"agent": "a1"})

    response = TestClient(app).get("/boom")

    assert response.status_code == 409
    assert response.headers["content-type"].startswith("application/problem+json")
    assert response.json() == {
        "type": "https://docs.agentdesk.dev/errors/agent_busy",
        "title": "agent is busy",
        "status": 409,
        "code": "agent_busy",
        "details": {"agent": "a1"},
    }
