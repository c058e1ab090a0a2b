"""Keyed Breaker.

Per-key circuit breaker that wraps fallible operations, tracks their
failure history by key, and blocks them temporarily once they fail
too often.
"""

from __future__ import annotations

from .breaker_config import DEFAULT_CONFIG, BreakerConfig, BreakerPhase
from .circuit_breaker import (
    BreakerRegistry,
    BreakerSnapshot,
    BreakerState,
    CircuitBreakerError,
    OpenCircuitError,
    Outcome,
    RunResult,
)
from .config_file import load_breaker_config

__all__ = [
    # Configuration
    "BreakerConfig",
    "BreakerPhase",
    "DEFAULT_CONFIG",
    "load_breaker_config",
    # Breakers
    "BreakerRegistry",
    "BreakerSnapshot",
    "BreakerState",
    "Outcome",
    "RunResult",
    # Errors
    "CircuitBreakerError",
    "OpenCircuitError",
]
