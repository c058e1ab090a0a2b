"""Circuit breaker configuration for keyed breakers.

This module defines the phases a breaker moves through and the
configuration dataclass shared by every breaker in a registry.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class BreakerPhase(Enum):
    """Possible phases for a keyed breaker."""

    NORMAL = "normal"  # Calls pass straight through
    BLOCKED = "blocked"  # Tripped - calls rejected until cool-down elapses
    PROBING = "probing"  # Cool-down elapsed - a single trial call allowed


@dataclass(frozen=True)
class BreakerConfig:
    """Configuration applied to every breaker created by a registry.

    Failures are counted cumulatively per key. The breaker trips once the
    count exceeds ``max_retries`` and only a successful probe resets it.

    Attributes:
        max_retries: Failures tolerated before the breaker trips.
        cool_down_seconds: Time spent BLOCKED before a probe is allowed.
    """

    max_retries: int = 2
    cool_down_seconds: float = 10.0


# Default configuration instance for convenience
DEFAULT_CONFIG = BreakerConfig()
