"""Shared test fixtures for the culturevo test suite."""

from __future__ import annotations

import numpy as np
import pytest

from culturevo.config import EngineSettings
from culturevo.evolution.population import TRAIT_A, TRAIT_B, Population
from culturevo.evolution.random_variate import RandomVariate


@pytest.fixture
def rng() -> RandomVariate:
    """Deterministic random stream."""
    return RandomVariate(42)


@pytest.fixture
def settings() -> EngineSettings:
    """Serial, seeded engine settings."""
    return EngineSettings(seed=7, workers=1)


@pytest.fixture
def half_population() -> Population:
    """100 slots, the first half holding A and the second half B."""
    traits = np.array([TRAIT_A] * 50 + [TRAIT_B] * 50, dtype=np.int64)
    return Population(100, {"trait": traits})


@pytest.fixture
def all_a_population() -> Population:
    """50 slots all holding A."""
    return Population(50, {"trait": np.full(50, TRAIT_A, dtype=np.int64)})

