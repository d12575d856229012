"""Resilience patterns for external calls."""

from gitsplits.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerError,
    CircuitState,
)

__all__ = ["CircuitBreaker", "CircuitBreakerError", "CircuitState"]
