"""Tagged result of a guarded call."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class Outcome(Enum):
    """How a guarded call ended."""

    SUCCESS = "success"  # Operation returned a value
    BLOCKED = "blocked"  # Operation was not invoked
    FAILED = "failed"  # Operation raised


@dataclass(frozen=True)
class RunResult(Generic[T]):
    """Result of ``BreakerRegistry.attempt``.

    Exactly one of ``value`` (for SUCCESS) or ``error`` (for BLOCKED and
    FAILED) is meaningful. ``tripped`` is True when this call moved the
    breaker to BLOCKED.
    """

    key: str
    outcome: Outcome
    value: T | None = None
    error: Exception | None = None
    tripped: bool = False

    @classmethod
    def success(cls, key: str, value: T) -> RunResult[T]:
        return cls(key=key, outcome=Outcome.SUCCESS, value=value)

    @classmethod
    def blocked(cls, key: str, error: Exception) -> RunResult[T]:
        return cls(key=key, outcome=Outcome.BLOCKED, error=error)

    @classmethod
    def failed(cls, key: str, error: Exception, tripped: bool = False) -> RunResult[T]:
        return cls(key=key, outcome=Outcome.FAILED, error=error, tripped=tripped)

    @property
    def ok(self) -> bool:
        return self.outcome == Outcome.SUCCESS

    def unwrap(self) -> T:
        """Return the value, or raise the stored error unchanged."""
        if self.outcome == Outcome.SUCCESS:
            return self.value  # type: ignore[return-value]
        raise self.error  # type: ignore[misc]
