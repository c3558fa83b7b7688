"""Tests for culturevo error hierarchy."""

import pytest

from culturevo.errors import (
    ConfigurationError,
    CulturevoError,
    EngineStateError,
    NumericDomainError,
    SerializationError,
)
from culturevo.simulation.driver import SimulationDriver


def test_culturevo_error_hierarchy():
    """All custom errors inherit from CulturevoError."""
    for error in (ConfigurationError, NumericDomainError, EngineStateError, SerializationError):
        assert issubclass(error, CulturevoError)
    assert issubclass(CulturevoError, Exception)


def test_configuration_error_fields():
    error = ConfigurationError("bad", fields=["b", "c"])
    assert error.fields == ["b", "c"]
    assert str(error) == "bad"
    assert ConfigurationError("bad").fields == []


def test_errors_catchable_as_base():
    """Callers can catch every engine error through the base class."""
    with pytest.raises(CulturevoError):
        SimulationDriver("rogers", {"b": 0.9})
