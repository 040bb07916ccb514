"""LLM provider clients.

The orchestrator only depends on :class:`ProviderClient`. The default
implementation speaks the OpenAI chat-completions protocol, which both OpenAI
and OpenRouter expose, and owns the transport retry policy: connection errors
and rate limits are retried with backoff, timeouts and everything else fail
immediately. The caller's timeout bounds the whole call, retries included.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any, Protocol

import openai
from prometheus_client import Histogram

from agentdesk.core.config import AppSettings
from agentdesk.core.domain import ProviderReply, ProviderRequest
from agentdesk.core.errors import ProviderError, ProviderTimeoutError
from agentdesk.utils.retry import RetryConfig, RetryDeadlineExceeded, RetryState, retry

logger = logging.getLogger(__name__)

PROVIDER_LATENCY = Histogram(
    "agentdesk_llm_request_latency_seconds",
    "Latency of LLM provider calls.",
    ["provider", "outcome"],
)

_RETRYABLE_ERRORS: tuple[type[Exception], ...] = (
    openai.APIConnectionError,
    openai.RateLimitError,
)


class ProviderClient(Protocol):
    """Contract for anything that can turn a prompt into a completion."""

    def generate(self, request: ProviderRequest, *, timeout: float) -> ProviderReply:
        """Return the completion or raise :class:`ProviderError`."""


def build_messages(request: ProviderRequest) -> list[dict[str, Any]]:
    """Render a request as chat-completion messages.

    File references are attached to the user turn as opaque ``file`` parts.
    """

    if request.file_refs:
        user_content: Any = [{"type": "text", "text": request.user_text}]
        user_content.extend(
            {"type": "file", "file": {"file_id": ref}} for ref in request.file_refs
        )
    else:
        user_content = request.user_text

    messages: list[dict[str, Any]] = []
    if request.system_prompt:
        messages.append({"role": "system", "content": request.system_prompt})
    messages.append({"role": "user", "content": user_content})
    return messages


class OpenAIProviderClient:
    """Chat-completions client for OpenAI or any compatible endpoint."""

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str | None = None,
        provider_name: str = "openai",
        retry_config: RetryConfig | None = None,
        client: Any | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._provider_name = provider_name
        self._retry_config = retry_config or RetryConfig(attempts=2)
        self._client = client
        self._clock = clock
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: AppSettings) -> OpenAIProviderClient:
        credentials = settings.llm.resolve_credentials(settings.openai, settings.openrouter)
        return cls(
            api_key=credentials["api_key"],
            base_url=credentials["base_url"],
            provider_name=settings.llm.provider.value,
            retry_config=RetryConfig(
                attempts=settings.llm.retry_attempts,
                base_delay=settings.llm.retry_base_delay,
            ),
        )

    def generate(self, request: ProviderRequest, *, timeout: float) -> ProviderReply:
        deadline = self._clock() + timeout
        call = retry(
            config=self._retry_config,
            exceptions=_RETRYABLE_ERRORS,
            before_sleep=self._log_retry,
            sleep=self._sleep,
            deadline=deadline,
            clock=self._clock,
        )(self._complete)

        start = time.perf_counter()
        outcome = "error"
        try:
            reply = call(request, timeout, deadline)
            outcome = "ok"
            return reply
        except ProviderTimeoutError:
            outcome = "timeout"
            raise
        except RetryDeadlineExceeded as exc:
            outcome = "timeout"
            raise ProviderTimeoutError(
                "provider call timed out while retrying",
                details={
                    "provider": self._provider_name,
                    "timeout_seconds": timeout,
                    "error": type(exc.last_exception).__name__,
                },
            ) from exc
        except openai.RateLimitError as exc:
            raise ProviderError(
                "provider rate limit exhausted",
                details={"provider": self._provider_name},
            ) from exc
        except openai.APIConnectionError as exc:
            raise ProviderError(
                "provider unreachable",
                details={"provider": self._provider_name},
            ) from exc
        except openai.APIStatusError as exc:
            raise ProviderError(
                f"provider returned HTTP {exc.status_code}",
                retryable=exc.status_code >= 500,
                details={"provider": self._provider_name, "status_code": exc.status_code},
            ) from exc
        except openai.OpenAIError as exc:
            raise ProviderError(
                "provider request failed",
                retryable=False,
                details={"provider": self._provider_name, "error": type(exc).__name__},
            ) from exc
        finally:
            PROVIDER_LATENCY.labels(self._provider_name, outcome).observe(
                time.perf_counter() - start
            )

    def _complete(self, request: ProviderRequest, timeout: float, deadline: float) -> ProviderReply:
        remaining = deadline - self._clock()
        if remaining <= 0:
            raise ProviderTimeoutError(
                "provider call timed out",
                details={"provider": self._provider_name, "timeout_seconds": timeout},
            )
        try:
            response = self._load_client().chat.completions.create(
                model=request.model,
                messages=build_messages(request),
                temperature=request.temperature,
                max_tokens=request.max_tokens,
                top_p=request.top_p,
                timeout=remaining,
            )
        except openai.APITimeoutError as exc:
            # Timeouts are never retried.
            raise ProviderTimeoutError(
                "provider call timed out",
                details={"provider": self._provider_name, "timeout_seconds": timeout},
            ) from exc

        if not response.choices:
            raise ProviderError(
                "provider returned no choices",
                details={"provider": self._provider_name},
            )
        text = response.choices[0].message.content or ""
        usage = response.usage
        return ProviderReply(
            text=text,
            input_tokens=int(getattr(usage, "prompt_tokens", 0) or 0),
            output_tokens=int(getattr(usage, "completion_tokens", 0) or 0),
        )

    def _load_client(self) -> Any:
        if self._client is None:
            if not self._api_key:
                raise ProviderError(
                    "no API key configured for the LLM provider",
                    retryable=False,
                    details={"provider": self._provider_name},
                )
            # Retries are handled here, not inside the SDK.
            self._client = openai.OpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                max_retries=0,
            )
        return self._client

    def _log_retry(self, state: RetryState) -> None:
        logger.warning(
            "retrying LLM provider call",
            extra={
                "provider": self._provider_name,
                "attempt": state.attempt,
                "delay": round(state.delay, 3),
                "error": type(state.last_exception).__name__,
            },
        )
