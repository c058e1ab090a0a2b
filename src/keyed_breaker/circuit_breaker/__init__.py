"""Keyed circuit breaker implementation.

Guards fallible operations per key and blocks them temporarily once
they have failed too often, substituting an optional fallback.

The breaker has three phases:
- NORMAL: Calls pass through, failures are counted cumulatively
- BLOCKED: Breaker tripped, calls rejected until the cool-down elapses
- PROBING: Cool-down elapsed, a single trial call tests recovery
"""

from .exceptions import CircuitBreakerError, OpenCircuitError
from .registry import BreakerRegistry
from .result import Outcome, RunResult
from .state import Admission, BreakerSnapshot, BreakerState, Ticket

__all__ = [
    "Admission",
    "BreakerRegistry",
    "BreakerSnapshot",
    "BreakerState",
    "CircuitBreakerError",
    "OpenCircuitError",
    "Outcome",
    "RunResult",
    "Ticket",
]
