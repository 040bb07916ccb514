from __future__ import annotations

from agentdesk.core.domain import ProviderReply, ProviderRequest
from agentdesk.core.errors import ProviderError


class StubProvider:
    """Records requests and replies from a scripted list of outcomes.

    The last outcome repeats once the script is exhausted.
    """

    def __init__(self, *outcomes: ProviderReply | Exception) -> None:
        self._outcomes = list(outcomes) or [ProviderReply("Happy to help.", 20, 10)]
        self.requests: list[ProviderRequest] = []
        self.timeouts: list[float] = []

    def generate(self, request: ProviderRequest, *, timeout: float) -> ProviderReply:
        self.requests.append(request)
        self.timeouts.append(timeout)
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FailingProvider(StubProvider):
    def __init__(self) -> None:
        super().__init__(ProviderError("provider returned HTTP 503"))
