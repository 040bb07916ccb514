"""Retry helpers for IO-bound operations."""

from __future__ import annotations

import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from functools import wraps
from typing import ParamSpec, TypeVar

P = ParamSpec("P")
R = TypeVar("R")


class RetryDeadlineExceeded(Exception):
    """Raised when the next attempt could not start before the deadline."""

    def __init__(self, last_exception: Exception) -> None:
        super().__init__(f"retry deadline exceeded after {type(last_exception).__name__}")
        self.last_exception = last_exception


@dataclass(frozen=True)
class RetryConfig:
    """Configuration controlling retry behaviour."""

    attempts: int = 3
    base_delay: float = 0.5
    backoff: float = 2.0
    max_delay: float = 10.0
    jitter: float = 0.1


@dataclass
class RetryState:
    """Captures the state of an individual retry loop."""

    attempt: int
    last_exception: Exception | None = None
    delay: float = 0.0


def next_delay(config: RetryConfig, attempt: int) -> float:
    """Return the jittered exponential delay before ``attempt + 1``."""

    delay = min(config.base_delay * (config.backoff ** (attempt - 1)), config.max_delay)
    if config.jitter:
        delay += random.uniform(0, config.jitter)
    return delay


def retry(
    *,
    config: RetryConfig | None = None,
    exceptions: tuple[type[Exception], ...] = (Exception,),
    before_sleep: Callable[[RetryState], None] | None = None,
    sleep: Callable[[float], None] = time.sleep,
    deadline: float | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Decorator implementing exponential backoff for synchronous functions.

    Only ``exceptions`` are retried; anything else propagates on the first
    attempt. The final failure is re-raised unchanged. When ``deadline`` (a
    ``clock`` reading) is given, no retry starts once the backoff would reach
    it and :class:`RetryDeadlineExceeded` is raised instead.
    """

    retry_config = config or RetryConfig()

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            state = RetryState(attempt=1)

            while True:
                try:
                    return func(*args, **kwargs)
                except exceptions as exc:
                    state.last_exception = exc
                    if state.attempt >= retry_config.attempts:
                        raise

                    state.delay = next_delay(retry_config, state.attempt)
                    if deadline is not None and clock() + state.delay >= deadline:
                        raise RetryDeadlineExceeded(exc) from exc
                    if before_sleep is not None:
                        before_sleep(state)
                    sleep(state.delay)
                    state.attempt += 1

        return wrapper

    return decorator
