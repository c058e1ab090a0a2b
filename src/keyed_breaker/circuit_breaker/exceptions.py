"""Circuit breaker exception classes."""

from __future__ import annotations


class CircuitBreakerError(Exception):
    """Base exception for circuit breaker errors."""

    pass


class OpenCircuitError(CircuitBreakerError):
    """Raised when a breaker is blocked and no fallback was supplied."""

    def __init__(self, key: str, time_until_retry: float = 0.0) -> None:
        self.key = key
        self.time_until_retry = time_until_retry
        super().__init__(f"Circuit {key} is open. Retry in {time_until_retry:.1f}s")
