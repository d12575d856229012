"""Circuit breaker for verifiable-inference calls.

Keeps a flaky inference endpoint from adding its timeout to every turn: after
enough consecutive failures the breaker fails fast and the callers fall back
to their deterministic paths.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Any, Awaitable, Callable, TypeVar

from gitsplits.config import settings
from gitsplits.observability.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"  # probing with a limited number of calls


class CircuitBreakerError(Exception):
    """The breaker rejected the call without attempting it."""


class CircuitBreaker:
    """Async breaker: `failure_threshold` consecutive failures open it, and after
    `recovery_timeout` seconds up to `half_open_max_calls` trial calls are let through.
    One successful trial call closes it again; a failed one reopens it.
    """

    def __init__(
        self,
        failure_threshold: int | None = None,
        recovery_timeout: float | None = None,
        half_open_max_calls: int = 3,
        name: str = "circuit_breaker",
        *,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold or settings.circuit_breaker_failure_threshold
        self.recovery_timeout = recovery_timeout or settings.circuit_breaker_recovery_timeout
        self.half_open_max_calls = half_open_max_calls
        self.name = name
        self._monotonic = monotonic

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: float | None = None
        self._half_open_calls = 0

    @property
    def state(self) -> CircuitState:
        if self._state == CircuitState.OPEN and self._last_failure_time is not None:
            elapsed = self._monotonic() - self._last_failure_time
            if elapsed >= self.recovery_timeout:
                logger.info("circuit_half_open", breaker=self.name)
                self._state = CircuitState.HALF_OPEN
                self._half_open_calls = 0
        return self._state

    async def call(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Await `func(*args, **kwargs)` under breaker protection.

        Raises:
            CircuitBreakerError: If the circuit is open.
        """
        current_state = self.state

        if current_state == CircuitState.OPEN:
            logger.warning("circuit_open_rejected", breaker=self.name)
            raise CircuitBreakerError(f"{self.name}: circuit open, failing fast")

        if current_state == CircuitState.HALF_OPEN:
            if self._half_open_calls >= self.half_open_max_calls:
                self._trip()
                raise CircuitBreakerError(f"{self.name}: too many trial calls while half-open")
            self._half_open_calls += 1

        try:
            result = await func(*args, **kwargs)
        except Exception:
            self._on_failure()
            raise
        self._on_success()
        return result

    def _trip(self) -> None:
        self._state = CircuitState.OPEN
        self._last_failure_time = self._monotonic()
        self._half_open_calls = 0

    def _close(self) -> None:
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._half_open_calls = 0
        self._last_failure_time = None

    def _on_success(self) -> None:
        if self._state == CircuitState.HALF_OPEN:
            logger.info("circuit_closed", breaker=self.name)
        self._close()

    def _on_failure(self) -> None:
        self._failure_count += 1
        if self._state == CircuitState.HALF_OPEN:
            logger.warning("circuit_reopened", breaker=self.name)
            self._trip()
        elif self._failure_count >= self.failure_threshold:
            logger.warning(
                "circuit_opened",
                breaker=self.name,
                failure_threshold=self.failure_threshold,
            )
            self._trip()
        else:
            self._last_failure_time = self._monotonic()

    def reset(self) -> None:
        logger.info("circuit_reset", breaker=self.name)
        self._close()
