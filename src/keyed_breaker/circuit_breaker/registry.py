"""Breaker registry mapping operation keys to their breaker state.

Provides the ``run`` entry point that evaluates a key's state machine
and executes either the operation or its fallback, plus lookup and
administrative helpers over all registered keys.
"""

from __future__ import annotations

import functools
import inspect
import logging
import threading
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from ..breaker_config import DEFAULT_CONFIG, BreakerConfig, BreakerPhase
from .exceptions import OpenCircuitError
from .result import Outcome, RunResult
from .state import BreakerSnapshot, BreakerState

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BreakerRegistry:
    """Central registry for keyed breakers.

    One BreakerState is created lazily per key on first use and lives as
    long as the registry. Registries are independent of each other.

    Usage:
        registry = BreakerRegistry()

        value = registry.run("db:read", read_row, fallback=lambda: None)

        # Tagged result instead of exceptions
        result = registry.attempt("db:read", read_row)
        if result.outcome is Outcome.BLOCKED:
            ...

    Attributes:
        config: Breaker configuration applied to every key.
    """

    def __init__(
        self,
        config: BreakerConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize an empty registry.

        Args:
            config: Configuration settings. Uses DEFAULT_CONFIG if None.
            clock: Monotonic time source in seconds.
        """
        self._config = config or DEFAULT_CONFIG
        self._clock = clock
        self._states: dict[str, BreakerState] = {}

        # Guards lazy creation only; transitions lock per state
        self._lock = threading.Lock()

    @property
    def config(self) -> BreakerConfig:
        return self._config

    def __contains__(self, key: object) -> bool:
        return key in self._states

    def __len__(self) -> int:
        return len(self._states)

    def keys(self) -> list[str]:
        """Return registered keys in creation order."""
        with self._lock:
            return list(self._states)

    def get_state(self, key: str) -> BreakerState:
        """Get or create the breaker state for a key."""
        state = self._states.get(key)
        if state is not None:
            return state

        with self._lock:
            state = self._states.get(key)
            if state is None:
                state = BreakerState(key, self._config)
                self._states[key] = state
                logger.debug("Created breaker %s", key)
            return state

    def attempt(self, key: str, operation: Callable[[], T]) -> RunResult[T]:
        """Run an operation through the key's breaker without a fallback.

        Args:
            key: Identifier of the breaker.
            operation: Zero-argument callable to guard.

        Returns:
            SUCCESS with the value, BLOCKED with an OpenCircuitError, or
            FAILED with the exception the operation raised.
        """
        state = self.get_state(key)
        ticket = state.admit(self._clock())
        if ticket.rejected:
            return self._rejected(state)

        try:
            value = operation()
        except Exception as exc:
            tripped = state.record_failure(self._clock(), ticket)
            return RunResult.failed(key, exc, tripped=tripped)
        except BaseException:
            state.release(ticket)
            raise

        state.record_success(ticket)
        return RunResult.success(key, value)

    async def attempt_async(
        self, key: str, operation: Callable[[], Awaitable[T]]
    ) -> RunResult[T]:
        """Async variant of ``attempt`` for coroutine operations.

        Cancellation of the operation propagates and is not counted.
        """
        state = self.get_state(key)
        ticket = state.admit(self._clock())
        if ticket.rejected:
            return self._rejected(state)

        try:
            value = await operation()
        except Exception as exc:
            tripped = state.record_failure(self._clock(), ticket)
            return RunResult.failed(key, exc, tripped=tripped)
        except BaseException:
            state.release(ticket)
            raise

        state.record_success(ticket)
        return RunResult.success(key, value)

    def run(
        self,
        key: str,
        operation: Callable[[], T],
        fallback: Callable[[], T] | None = None,
    ) -> T:
        """Run an operation through the key's breaker.

        The operation is invoked at most once. When the breaker rejects the
        call or the operation fails, the fallback result is returned instead.
        Errors raised by the fallback propagate unchanged.

        Args:
            key: Identifier of the breaker.
            operation: Zero-argument callable to guard.
            fallback: Optional zero-argument substitute.

        Returns:
            The operation's result, or the fallback's.

        Raises:
            OpenCircuitError: If the breaker is blocked and no fallback is given.
            Exception: Whatever the operation raised, when no fallback is given.
        """
        result = self.attempt(key, operation)
        if result.outcome is not Outcome.SUCCESS and fallback is not None:
            return fallback()
        return result.unwrap()

    async def run_async(
        self,
        key: str,
        operation: Callable[[], Awaitable[T]],
        fallback: Callable[[], T | Awaitable[T]] | None = None,
    ) -> T:
        """Async variant of ``run``.

        The fallback may be a plain callable or return an awaitable.
        """
        result = await self.attempt_async(key, operation)
        if result.outcome is not Outcome.SUCCESS and fallback is not None:
            substitute = fallback()
            if inspect.isawaitable(substitute):
                return await substitute
            return substitute
        return result.unwrap()

    def protect(
        self,
        key: str,
        fallback: Callable[[], Any] | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorate a function so every call runs through ``key``'s breaker.

        Works for both plain and ``async def`` functions.
        """

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            if inspect.iscoroutinefunction(func):

                @functools.wraps(func)
                async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                    return await self.run_async(key, lambda: func(*args, **kwargs), fallback)

                return async_wrapper

            @functools.wraps(func)
            def wrapper(*args: Any, **kwargs: Any) -> Any:
                return self.run(key, lambda: func(*args, **kwargs), fallback)

            return wrapper

        return decorator

    def snapshot(self, key: str) -> BreakerSnapshot | None:
        """Return a snapshot of a key's state without creating it."""
        state = self._states.get(key)
        return state.snapshot() if state is not None else None

    def blocked_keys(self) -> list[str]:
        """Get keys whose breakers are BLOCKED or PROBING.

        Useful for monitoring and health checks.
        """
        with self._lock:
            states = list(self._states.values())
        return [s.key for s in states if s.phase != BreakerPhase.NORMAL]

    def stats(self) -> dict[str, int]:
        """Get counts of registered breakers by phase.

        Returns:
            Dictionary with the total and a count for every phase.
        """
        with self._lock:
            states = list(self._states.values())

        counts = {"total": len(states)}
        for phase in BreakerPhase:
            counts[phase.value] = sum(1 for s in states if s.phase == phase)
        return counts

    def reset(self, key: str) -> bool:
        """Manually reset a key's breaker to NORMAL.

        Returns:
            True if the key exists and its state changed.
        """
        state = self._states.get(key)
        if state is None:
            return False
        return state.reset()

    def reset_all(self) -> int:
        """Reset every registered breaker to NORMAL.

        Administrative function for recovery from widespread issues.

        Returns:
            Number of breakers whose state changed.
        """
        with self._lock:
            states = list(self._states.values())

        reset_count = sum(1 for s in states if s.reset())
        logger.info("Reset %d breakers via registry.reset_all()", reset_count)
        return reset_count

    def _rejected(self, state: BreakerState) -> RunResult[Any]:
        retry_in = state.time_until_retry(self._clock())
        logger.debug("Breaker %s rejected call (retry in %.1fs)", state.key, retry_in)
        return RunResult.blocked(state.key, OpenCircuitError(state.key, retry_in))
