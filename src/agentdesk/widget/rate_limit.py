"""Per-minute request budget for the public widget endpoint."""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from uuid import UUID

from prometheus_client import Counter
from redis import Redis
from redis.exceptions import RedisError

from agentdesk.core.errors import RateLimitedError
from agentdesk.core.logging import get_logger

logger = get_logger("widget.rate_limit")

RATE_LIMIT_DENIALS = Counter(
    "agentdesk_widget_rate_limited_total",
    "Widget requests rejected by the per-minute budget.",
)

WINDOW_SECONDS = 60


class WidgetRateLimiter:
    """Fixed one-minute window counter stored in Redis.

    Without a Redis client, or when Redis is unreachable, every request is
    allowed.
    """

    def __init__(
        self,
        redis_client: Redis | None,
        *,
        requests_per_minute: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._redis = redis_client
        self._limit = requests_per_minute
        self._clock = clock

    def key_for(self, agent_id: UUID, client: str) -> str:
        window = int(self._clock() // WINDOW_SECONDS)
        return f"widget:{agent_id}:{client}:{window}"

    def hit(self, agent_id: UUID, client: str) -> bool:
        """Record one request and return whether it fits the budget."""

        if self._redis is None:
            return True

        key = self.key_for(agent_id, client)
        try:
            count = int(self._redis.incr(key))
            if count == 1:
                self._redis.expire(key, WINDOW_SECONDS)
        except RedisError as exc:
            logger.warning("widget.rate_limit.unavailable", error=str(exc))
            return True
        return count <= self._limit

    def check(self, agent_id: UUID, client: str) -> None:
        if self.hit(agent_id, client):
            return
        RATE_LIMIT_DENIALS.inc()
        logger.info("widget.rate_limit.denied", agent_id=str(agent_id), client=client)
        now = self._clock()
        reset_at = (int(now // WINDOW_SECONDS) + 1) * WINDOW_SECONDS
        retry_after = max(1, math.ceil(reset_at - now))
        raise RateLimitedError(
            "too many requests, please retry in a minute",
            details={"retry_after_seconds": retry_after},
            headers={
                "Retry-After": str(retry_after),
                "X-RateLimit-Limit": str(self._limit),
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Reset": str(reset_at),
            },
        )
