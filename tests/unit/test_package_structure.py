"""Tests for the public package surface."""

import keyed_breaker


def test_public_names_exported() -> None:
    """Verify the documented names are importable from the package root."""
    for name in keyed_breaker.__all__:
        assert hasattr(keyed_breaker, name), f"keyed_breaker.{name} should be exported"


def test_open_circuit_error_carries_key() -> None:
    """OpenCircuitError exposes the triggering key as payload."""
    error = keyed_breaker.OpenCircuitError("svc", 2.0)
    assert error.key == "svc"
    assert "svc" in str(error)
    assert isinstance(error, keyed_breaker.CircuitBreakerError)
