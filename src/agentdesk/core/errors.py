"""Shared exception hierarchy for services."""

from __future__ import annotations

from collections.abc import Mapping
from http import HTTPStatus
from typing import Any


class CoreError(Exception):
    """Base exception capturing rich problem details."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR
    code: str = "core_error"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
        details: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code if status_code is not None else self.status_code)
        self.code = code or self.code
        self.details = dict(details or {})
        self.headers = dict(headers or {})

    def to_dict(self) -> dict[str, Any]:
        """FastAPI/JSON-serializable representation of the error."""

        payload: dict[str, Any] = {
            "type": f"https://docs.agentdesk.dev/errors/{self.code}",
            "title": self.message,
            "status": self.status_code,
            "code": self.code,
        }
        if self.details:
            payload["details"] = self.details
        return payload


class NotFoundError(CoreError):
    """Raised when a resource cannot be located."""

    status_code = HTTPStatus.NOT_FOUND
    code = "not_found"


class ValidationError(CoreError):
    """Raised when an upstream request fails validation."""

    status_code = HTTPStatus.UNPROCESSABLE_ENTITY
    code = "validation_error"


class UnauthorizedError(CoreError):
    """Raised when authentication fails or is missing."""

    status_code = HTTPStatus.UNAUTHORIZED
    code = "unauthorized"

    def __init__(self, message: str = "unauthorized") -> None:
        super().__init__(message)


class ForbiddenError(CoreError):
    """Raised when the caller is known but not allowed to act."""

    status_code = HTTPStatus.FORBIDDEN
    code = "forbidden"


class ConflictError(CoreError):
    """Raised when a request conflicts with existing state."""

    status_code = HTTPStatus.CONFLICT
    code = "conflict"


class RateLimitedError(CoreError):
    """Raised when a caller exceeded its request budget."""

    status_code = HTTPStatus.TOO_MANY_REQUESTS
    code = "rate_limited"


# Chat taxonomy ----------------------------------------------------------


class AgentNotFoundError(NotFoundError):
    code = "agent_not_found"

    def __init__(self, agent_id: object) -> None:
        super().__init__("agent not found", details={"agent_id": str(agent_id)})


class AgentInactiveError(ConflictError):
    """The agent exists but has been disabled by its tenant."""

    code = "agent_inactive"

    def __init__(self, agent_id: object) -> None:
        super().__init__("agent is inactive", details={"agent_id": str(agent_id)})


class AgentAccessError(ForbiddenError):
    code = "agent_forbidden"

    def __init__(self, agent_id: object) -> None:
        super().__init__(
            "caller is not allowed to use this agent",
            details={"agent_id": str(agent_id)},
        )


class InvalidConversationError(CoreError):
    """A supplied conversation id is unknown or bound to another agent."""

    status_code = HTTPStatus.BAD_REQUEST
    code = "invalid_conversation"

    def __init__(self, conversation_id: object) -> None:
        super().__init__(
            "invalid conversation",
            details={"conversation_id": str(conversation_id)},
        )


class ProviderError(CoreError):
    """The LLM provider call failed; the user turn stays persisted."""

    status_code = HTTPStatus.BAD_GATEWAY
    code = "provider_error"
    public_message = "The assistant is temporarily unavailable. Please try again."

    def __init__(
        self,
        message: str,
        *,
        retryable: bool = True,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["title"] = self.public_message
        payload["retryable"] = self.retryable
        # Provider internals are for operators only.
        payload.pop("details", None)
        return payload


class ProviderTimeoutError(ProviderError):
    status_code = HTTPStatus.GATEWAY_TIMEOUT
    code = "provider_timeout"


class TemplateValidationError(ValidationError):
    """Raised when a stored guardrail template is structurally invalid."""

    code = "invalid_template"
