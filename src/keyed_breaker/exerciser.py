"""Three-mode harness for exercising a breaker registry by hand.

Each input pair ``<key> <mode>`` runs one guarded call:
- ``y``: operation always fails, no fallback
- ``n``: operation always succeeds, no fallback
- anything else: operation always fails, fallback returns a sentinel
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from enum import Enum

from .circuit_breaker import BreakerRegistry, OpenCircuitError

SUCCESS_VALUE = 1
FALLBACK_VALUE = -1

OPEN_MESSAGE = "Circuit is open"


class ExerciseMode(Enum):
    """Behavior of the exercised operation."""

    FAIL = "y"
    SUCCEED = "n"
    FAIL_WITH_FALLBACK = "f"


class ExerciseFailure(RuntimeError):
    """Raised by the exercised operation in failing modes."""


def parse_mode(token: str) -> ExerciseMode:
    """Map an input token to a mode; unknown tokens select the fallback mode."""
    if token == "y":
        return ExerciseMode.FAIL
    if token == "n":
        return ExerciseMode.SUCCEED
    return ExerciseMode.FAIL_WITH_FALLBACK


def _fail() -> int:
    raise ExerciseFailure("failure inside operation")


def _succeed() -> int:
    return SUCCESS_VALUE


def _fallback() -> int:
    return FALLBACK_VALUE


def exercise(registry: BreakerRegistry, key: str, mode: ExerciseMode) -> str:
    """Run one guarded call and describe the outcome as a single line."""
    try:
        if mode is ExerciseMode.FAIL:
            value = registry.run(key, _fail)
        elif mode is ExerciseMode.SUCCEED:
            value = registry.run(key, _succeed)
        else:
            value = registry.run(key, _fail, _fallback)
    except OpenCircuitError:
        return OPEN_MESSAGE
    except ExerciseFailure as exc:
        return f"Operation failed: {exc}"
    return str(value)


def iter_pairs(lines: Iterable[str]) -> Iterator[tuple[str, str]]:
    """Yield ``(key, mode)`` pairs from whitespace-separated tokens.

    Pairs may span lines. A trailing unpaired token is ignored.
    """
    pending: str | None = None
    for line in lines:
        for token in line.split():
            if pending is None:
                pending = token
            else:
                yield pending, token
                pending = None
