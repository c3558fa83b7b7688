"""Tests for the deterministic expected-trajectory recursions."""

from __future__ import annotations

import pytest

from culturevo.evolution import recursions


def test_series_start_at_p0():
    """Generation 1 of every series is the initial frequency."""
    assert recursions.unbiased_mutation(0.2, 0.05, 10)[0] == 0.2
    assert len(recursions.conformity(0.6, 1.0, 25)) == 25


def test_unbiased_mutation_converges_to_half():
    values = recursions.unbiased_mutation(1.0, 0.05, 300)
    assert values[-1] == pytest.approx(0.5, abs=1e-3)


def test_biased_mutation_monotone_to_one():
    values = recursions.biased_mutation(0.0, 0.05, 200)
    assert all(b >= a for a, b in zip(values, values[1:]))
    assert values[-1] == pytest.approx(1.0, abs=1e-3)


def test_direct_bias_spreads_favoured_trait():
    values = recursions.direct_bias(0.01, 0.1, 0.0, 300)
    assert values[-1] > 0.99


def test_direct_bias_neutral_when_equal():
    values = recursions.direct_bias(0.3, 0.4, 0.4, 50)
    assert values[-1] == pytest.approx(0.3)


def test_conformity_bistable():
    """Above 0.5 goes to 1, below 0.5 goes to 0, 0.5 stays."""
    assert recursions.conformity(0.55, 1.0, 200)[-1] == pytest.approx(1.0, abs=1e-3)
    assert recursions.conformity(0.45, 1.0, 200)[-1] == pytest.approx(0.0, abs=1e-3)
    assert recursions.conformity(0.5, 1.0, 200)[-1] == 0.5


def test_individual_learner_fitness():
    assert recursions.individual_learner_fitness(1.0, 0.5, 0.9, 1.0) == pytest.approx(1.05)


def test_generations_to_reach():
    values = [0.0, 0.5, 0.9, 0.9995]
    assert recursions.generations_to_reach(values, 1.0) == 4
    assert recursions.generations_to_reach(values, 2.0) is None


def test_conformity_without_strength_is_neutral():
    values = recursions.conformity(0.3, 0.0, 100)
    assert all(v == pytest.approx(0.3) for v in values)


def test_biased_mutation_time_scales_inversely_with_rate():
    """Halving mu_b roughly doubles the time to reach fixation."""
    slow = recursions.generations_to_reach(recursions.biased_mutation(0.0, 0.1, 500), 1.0, 0.01)
    fast = recursions.generations_to_reach(recursions.biased_mutation(0.0, 0.2, 500), 1.0, 0.01)
    assert fast < slow
    assert slow / fast == pytest.approx(2.0, abs=0.3)
