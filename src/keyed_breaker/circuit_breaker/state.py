"""Per-key breaker state machine.

Tracks the cumulative failure count for one key and moves it between
NORMAL, BLOCKED and PROBING. The failure count is never reset by a
success in NORMAL, only by a successful probe.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum

from ..breaker_config import DEFAULT_CONFIG, BreakerConfig, BreakerPhase

logger = logging.getLogger(__name__)


class Admission(Enum):
    """Verdict of the admission check made at the start of every call."""

    REJECTED = "rejected"  # Blocked within cool-down, or probe already in flight
    ADMITTED = "admitted"  # Regular call
    PROBE = "probe"  # The single trial call after cool-down


@dataclass(frozen=True)
class Ticket:
    """Admission verdict stamped with the trip generation it was issued in.

    A result is only applied when its ticket's epoch still matches the
    breaker's, so calls admitted before a trip or reset cannot move the
    breaker afterwards.
    """

    admission: Admission
    epoch: int

    @property
    def rejected(self) -> bool:
        return self.admission is Admission.REJECTED


@dataclass(frozen=True)
class BreakerSnapshot:
    """Point-in-time copy of a BreakerState, safe to hand to callers."""

    key: str
    phase: BreakerPhase
    failure_count: int
    max_retries: int
    cool_down_seconds: float
    last_tripped_at: float | None
    probe_in_flight: bool


class BreakerState:
    """State machine guarding a single key.

    Usage:
        state = BreakerState("db:read", config)

        ticket = state.admit(now)
        if not ticket.rejected:
            try:
                # Execute operation
                state.record_success(ticket)
            except Exception:
                state.record_failure(now, ticket)

    Every transition runs under the instance lock. The guarded operation
    itself must run outside of it.

    Attributes:
        key: Identifier of the guarded operation.
        phase: Current breaker phase.
        failure_count: Failures accumulated since the last successful probe.
    """

    def __init__(self, key: str, config: BreakerConfig | None = None) -> None:
        """Initialize the breaker in the NORMAL phase.

        Args:
            key: Identifier of the guarded operation.
            config: Configuration settings. Uses DEFAULT_CONFIG if None.
        """
        config = config or DEFAULT_CONFIG
        self._key = key
        self._max_retries = config.max_retries
        self._cool_down = config.cool_down_seconds

        self._phase = BreakerPhase.NORMAL
        self._failure_count = 0
        self._last_tripped_at: float | None = None
        self._probe_in_flight = False

        # Bumped on every trip and reset
        self._epoch = 0

        self._lock = threading.Lock()

    @property
    def key(self) -> str:
        """Return the breaker key."""
        return self._key

    @property
    def phase(self) -> BreakerPhase:
        """Return the current phase."""
        return self._phase

    @property
    def failure_count(self) -> int:
        """Return the cumulative failure count."""
        return self._failure_count

    @property
    def max_retries(self) -> int:
        return self._max_retries

    @property
    def cool_down(self) -> float:
        return self._cool_down

    @property
    def last_tripped_at(self) -> float | None:
        return self._last_tripped_at

    @property
    def is_blocked(self) -> bool:
        """Check if the breaker is currently rejecting calls."""
        return self._phase == BreakerPhase.BLOCKED

    def admit(self, now: float) -> Ticket:
        """Evaluate the phase transition at the start of a call.

        A BLOCKED breaker whose cool-down has elapsed moves to PROBING and
        admits the caller as the probe. The failure count is kept as is.

        Args:
            now: Current monotonic time in seconds.

        Returns:
            The admission ticket for this call.
        """
        with self._lock:
            if self._phase == BreakerPhase.BLOCKED:
                if not self._cool_down_elapsed(now):
                    return self._ticket(Admission.REJECTED)

                self._last_tripped_at = now
                self._phase = BreakerPhase.PROBING
                self._probe_in_flight = True
                logger.info("Breaker %s entering PROBING for recovery test", self._key)
                return self._ticket(Admission.PROBE)

            if self._phase == BreakerPhase.PROBING:
                if self._probe_in_flight:
                    return self._ticket(Admission.REJECTED)
                self._probe_in_flight = True
                return self._ticket(Admission.PROBE)

            return self._ticket(Admission.ADMITTED)

    def record_success(self, ticket: Ticket | None = None) -> bool:
        """Record a successful call.

        Only the probe of the current generation closes the breaker.

        Returns:
            True if the breaker recovered from PROBING to NORMAL.
        """
        with self._lock:
            ticket = ticket or self._ticket(Admission.ADMITTED)
            if not self._is_current_probe(ticket):
                return False

            self._probe_in_flight = False
            if self._phase != BreakerPhase.PROBING:
                return False

            self._phase = BreakerPhase.NORMAL
            self._failure_count = 0
            logger.info("Breaker %s back to NORMAL after successful probe", self._key)
            return True

    def record_failure(self, now: float, ticket: Ticket | None = None) -> bool:
        """Record a failed call and trip the breaker past the threshold.

        Failures from calls admitted before the last trip or reset are
        dropped so they cannot re-trip or re-stamp the breaker.

        Args:
            now: Current monotonic time in seconds.
            ticket: Ticket the failed call was admitted with. Defaults to a
                regular call of the current generation.

        Returns:
            True if this failure moved the breaker to BLOCKED.
        """
        with self._lock:
            ticket = ticket or self._ticket(Admission.ADMITTED)
            if ticket.epoch != self._epoch:
                logger.debug("Breaker %s ignoring failure from a stale call", self._key)
                return False

            if ticket.admission is Admission.PROBE:
                self._probe_in_flight = False

            self._failure_count += 1
            if self._failure_count <= self._max_retries:
                logger.debug(
                    "Breaker %s failure %d/%d",
                    self._key,
                    self._failure_count,
                    self._max_retries,
                )
                return False

            from_phase = self._phase
            self._phase = BreakerPhase.BLOCKED
            self._last_tripped_at = now
            self._probe_in_flight = False
            self._epoch += 1
            logger.warning(
                "Breaker %s BLOCKED from %s (failures=%d, max_retries=%d)",
                self._key,
                from_phase.value,
                self._failure_count,
                self._max_retries,
            )
            return True

    def release(self, ticket: Ticket) -> None:
        """Free the probe slot of a call that ended without a result.

        Used when the operation was interrupted by a BaseException that
        is neither counted as a failure nor a success.
        """
        with self._lock:
            if self._is_current_probe(ticket):
                self._probe_in_flight = False

    def time_until_retry(self, now: float) -> float:
        """Get seconds until a BLOCKED breaker admits a probe."""
        if self._phase != BreakerPhase.BLOCKED or self._last_tripped_at is None:
            return 0.0

        remaining = self._cool_down - (now - self._last_tripped_at)
        return max(0.0, remaining)

    def reset(self) -> bool:
        """Manually return the breaker to NORMAL with a zero failure count.

        Returns:
            True if the breaker was not already in a clean NORMAL phase.
        """
        with self._lock:
            changed = self._phase != BreakerPhase.NORMAL or self._failure_count != 0
            self._phase = BreakerPhase.NORMAL
            self._failure_count = 0
            self._last_tripped_at = None
            self._probe_in_flight = False
            self._epoch += 1

        if changed:
            logger.info("Breaker %s manually reset to NORMAL", self._key)
        return changed

    def snapshot(self) -> BreakerSnapshot:
        """Return an immutable copy of the current state."""
        with self._lock:
            return BreakerSnapshot(
                key=self._key,
                phase=self._phase,
                failure_count=self._failure_count,
                max_retries=self._max_retries,
                cool_down_seconds=self._cool_down,
                last_tripped_at=self._last_tripped_at,
                probe_in_flight=self._probe_in_flight,
            )

    def _ticket(self, admission: Admission) -> Ticket:
        return Ticket(admission, self._epoch)

    def _is_current_probe(self, ticket: Ticket) -> bool:
        return ticket.admission is Admission.PROBE and ticket.epoch == self._epoch

    def _cool_down_elapsed(self, now: float) -> bool:
        if self._last_tripped_at is None:
            return True
        return now - self._last_tripped_at >= self._cool_down
