"""Unit tests for the per-key breaker state machine.

Tests BreakerState transitions, cumulative failure counting,
cool-down handling and manual reset without going through a registry.
"""

from __future__ import annotations

import pytest

from keyed_breaker.breaker_config import BreakerConfig, BreakerPhase, DEFAULT_CONFIG
from keyed_breaker.circuit_breaker import Admission, BreakerState


class TestBreakerConfig:
    """Tests for breaker configuration."""

    def test_default_config(self) -> None:
        """Default config retries twice and cools down for 10 seconds."""
        assert DEFAULT_CONFIG.max_retries == 2
        assert DEFAULT_CONFIG.cool_down_seconds == 10.0

    def test_config_is_frozen(self) -> None:
        """Config dataclass is immutable."""
        config = BreakerConfig()
        with pytest.raises(AttributeError):
            config.max_retries = 10  # type: ignore[misc]


class TestBreakerStateTransitions:
    """Tests for BreakerState phase transitions."""

    @pytest.fixture
    def state(self) -> BreakerState:
        return BreakerState("svc")

    def _trip(self, state: BreakerState, now: float = 0.0) -> None:
        for _ in range(state.max_retries + 1):
            state.record_failure(now)

    def test_initial_phase_is_normal(self, state: BreakerState) -> None:
        """New breaker starts in NORMAL with no failures."""
        assert state.phase == BreakerPhase.NORMAL
        assert state.failure_count == 0
        assert state.last_tripped_at is None
        assert state.is_blocked is False

    def test_normal_admits_calls(self, state: BreakerState) -> None:
        assert state.admit(0.0).admission is Admission.ADMITTED

    def test_failures_up_to_max_retries_do_not_trip(self, state: BreakerState) -> None:
        assert state.record_failure(0.0) is False
        assert state.record_failure(0.0) is False
        assert state.phase == BreakerPhase.NORMAL
        assert state.failure_count == 2

    def test_failure_past_max_retries_trips(self, state: BreakerState) -> None:
        """The third failure exceeds max_retries=2 and blocks the breaker."""
        state.record_failure(0.0)
        state.record_failure(0.0)
        assert state.record_failure(5.0) is True
        assert state.phase == BreakerPhase.BLOCKED
        assert state.last_tripped_at == 5.0

    def test_success_in_normal_keeps_failure_count(self, state: BreakerState) -> None:
        """Failures are cumulative; a NORMAL success does not reset them."""
        state.record_failure(0.0)
        assert state.record_success() is False
        assert state.failure_count == 1

    def test_blocked_rejects_within_cool_down(self, state: BreakerState) -> None:
        self._trip(state)
        assert state.admit(9.999).admission is Admission.REJECTED
        assert state.phase == BreakerPhase.BLOCKED
        assert state.last_tripped_at == 0.0

    def test_blocked_probes_after_cool_down(self, state: BreakerState) -> None:
        """Elapsed cool-down moves BLOCKED to PROBING and restamps the trip time."""
        self._trip(state)
        assert state.admit(10.0).admission is Admission.PROBE
        assert state.phase == BreakerPhase.PROBING
        assert state.last_tripped_at == 10.0

    def test_entering_probing_keeps_failure_count(self, state: BreakerState) -> None:
        """failure_count is only reset by a successful probe, not on entering PROBING."""
        self._trip(state)
        state.admit(10.0)
        assert state.failure_count == 3

    def test_successful_probe_returns_to_normal(self, state: BreakerState) -> None:
        self._trip(state)
        ticket = state.admit(10.0)
        assert state.record_success(ticket) is True
        assert state.phase == BreakerPhase.NORMAL
        assert state.failure_count == 0

    def test_failed_probe_re_trips_immediately(self, state: BreakerState) -> None:
        self._trip(state)
        ticket = state.admit(10.0)
        assert state.record_failure(10.5, ticket) is True
        assert state.phase == BreakerPhase.BLOCKED
        assert state.failure_count == 4
        assert state.last_tripped_at == 10.5

    def test_probe_in_flight_rejects_other_calls(self, state: BreakerState) -> None:
        """Only a single trial call is admitted while PROBING."""
        self._trip(state)
        assert state.admit(10.0).admission is Admission.PROBE
        assert state.admit(10.1).admission is Admission.REJECTED

    def test_release_frees_probe_slot(self, state: BreakerState) -> None:
        self._trip(state)
        ticket = state.admit(10.0)
        state.release(ticket)
        assert state.phase == BreakerPhase.PROBING
        assert state.admit(10.1).admission is Admission.PROBE

    def test_zero_max_retries_trips_on_first_failure(self) -> None:
        state = BreakerState("svc", BreakerConfig(max_retries=0))
        assert state.record_failure(0.0) is True
        assert state.phase == BreakerPhase.BLOCKED


class TestBreakerStateTiming:
    """Tests for cool-down bookkeeping."""

    def test_time_until_retry_counts_down(self) -> None:
        state = BreakerState("svc", BreakerConfig(max_retries=0, cool_down_seconds=10.0))
        state.record_failure(100.0)
        assert state.time_until_retry(104.0) == pytest.approx(6.0)
        assert state.time_until_retry(200.0) == 0.0

    def test_time_until_retry_zero_when_not_blocked(self) -> None:
        assert BreakerState("svc").time_until_retry(0.0) == 0.0


class TestBreakerStateReset:
    """Tests for manual reset and snapshots."""

    def test_reset_from_blocked(self) -> None:
        state = BreakerState("svc", BreakerConfig(max_retries=0))
        state.record_failure(0.0)

        assert state.reset() is True
        assert state.phase == BreakerPhase.NORMAL
        assert state.failure_count == 0
        assert state.last_tripped_at is None

    def test_reset_clean_breaker_reports_no_change(self) -> None:
        assert BreakerState("svc").reset() is False

    def test_snapshot_is_a_copy(self) -> None:
        state = BreakerState("svc", BreakerConfig(max_retries=5, cool_down_seconds=3.0))
        state.record_failure(1.0)

        snap = state.snapshot()
        state.record_failure(2.0)

        assert snap.key == "svc"
        assert snap.phase == BreakerPhase.NORMAL
        assert snap.failure_count == 1
        assert snap.max_retries == 5
        assert snap.cool_down_seconds == 3.0
        assert snap.probe_in_flight is False


class TestStaleResults:
    """Results of calls admitted before a trip or reset must not move the breaker."""

    def test_stale_success_does_not_close_probing_breaker(self) -> None:
        state = BreakerState("svc", BreakerConfig(max_retries=0))
        early = state.admit(0.0)
        state.record_failure(0.0)
        probe = state.admit(10.0)

        assert state.record_success(early) is False
        assert state.phase == BreakerPhase.PROBING
        assert state.admit(10.1).admission is Admission.REJECTED

        assert state.record_success(probe) is True
        assert state.phase == BreakerPhase.NORMAL

    def test_stale_failure_does_not_restamp_cool_down(self) -> None:
        state = BreakerState("svc", BreakerConfig(max_retries=0))
        early = state.admit(0.0)
        state.record_failure(0.0)

        assert state.record_failure(5.0, early) is False
        assert state.last_tripped_at == 0.0
        assert state.failure_count == 1
        assert state.admit(10.0).admission is Admission.PROBE

    def test_stale_probe_keeps_new_probe_slot(self) -> None:
        state = BreakerState("svc", BreakerConfig(max_retries=0))
        state.record_failure(0.0)
        old_probe = state.admit(10.0)
        state.reset()
        state.record_failure(11.0)
        new_probe = state.admit(21.0)

        state.release(old_probe)
        assert state.record_success(old_probe) is False
        assert state.admit(21.1).admission is Admission.REJECTED
        assert state.record_success(new_probe) is True

    def test_failure_after_recovery_from_pre_trip_call_is_ignored(self) -> None:
        state = BreakerState("svc", BreakerConfig(max_retries=0))
        early = state.admit(0.0)
        state.record_failure(0.0)
        state.record_success(state.admit(10.0))

        assert state.record_failure(12.0, early) is False
        assert state.phase == BreakerPhase.NORMAL
        assert state.failure_count == 0
