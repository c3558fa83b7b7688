"""Tests for the RandomVariate sampling primitives."""

from __future__ import annotations

import numpy as np
import pytest

from culturevo.errors import NumericDomainError
from culturevo.evolution.random_variate import RandomVariate


class TestRandomVariate:
    """Tests for seeding and stream derivation."""

    def test_same_seed_same_draws(self):
        """Two streams with the same seed produce identical draws."""
        a = RandomVariate(123).uniform_categorical([0, 1, 2], 50)
        b = RandomVariate(123).uniform_categorical([0, 1, 2], 50)
        assert np.array_equal(a, b)

    def test_spawned_streams_differ(self):
        """Child streams are independent of each other."""
        first, second = RandomVariate(1).spawn(2)
        assert not np.array_equal(first.bernoulli(0.5, 100), second.bernoulli(0.5, 100))

    def test_accepts_seed_sequence(self):
        """A SeedSequence is used as-is."""
        seq = np.random.SeedSequence(5)
        assert RandomVariate(seq).seed_sequence is seq


class TestWeightedCategorical:
    """Tests for weighted and uniform categorical draws."""

    def test_frequencies_follow_weights(self, rng):
        """Draw frequencies approach weight / sum(weights)."""
        draws = rng.weighted_categorical(["x", "y"], [1.0, 3.0], 20000)
        assert np.mean(draws == "y") == pytest.approx(0.75, abs=0.02)

    def test_zero_weight_never_drawn(self, rng):
        """A category with weight 0 never appears."""
        draws = rng.weighted_categorical([0, 1, 2], [1.0, 0.0, 1.0], 5000)
        assert not np.any(draws == 1)

    def test_zero_count_returns_empty(self, rng):
        """count=0 returns an empty array even with zero weights."""
        assert rng.weighted_categorical([0, 1], [0.0, 0.0], 0).size == 0

    def test_negative_weight_rejected(self, rng):
        with pytest.raises(NumericDomainError):
            rng.weighted_categorical([0, 1], [-1.0, 2.0], 10)

    def test_zero_sum_rejected(self, rng):
        with pytest.raises(NumericDomainError):
            rng.weighted_categorical([0, 1], [0.0, 0.0], 10)

    def test_weight_length_mismatch_rejected(self, rng):
        with pytest.raises(NumericDomainError):
            rng.weighted_categorical([0, 1, 2], [1.0, 1.0], 10)

    def test_uniform_covers_all_categories(self, rng):
        draws = rng.uniform_categorical([0, 1, 2, 3], 4000)
        for category in range(4):
            assert np.mean(draws == category) == pytest.approx(0.25, abs=0.03)


class TestSampleIndices:
    """Tests for demonstrator index draws."""

    def test_single_element_pool_always_zero(self, rng):
        """A pool of one yields index 0 with probability 1."""
        assert np.array_equal(rng.sample_indices(1, 10), np.zeros(10))
        assert np.array_equal(rng.sample_indices(1, 10, weights=[0.3]), np.zeros(10))

    def test_indices_in_range(self, rng):
        indices = rng.sample_indices(7, 1000)
        assert indices.min() >= 0
        assert indices.max() < 7

    def test_empty_pool_rejected(self, rng):
        with pytest.raises(NumericDomainError):
            rng.sample_indices(0, 5)


class TestBernoulli:
    """Tests for Bernoulli gates."""

    def test_extremes_are_deterministic(self, rng):
        assert not rng.bernoulli(0.0, 1000).any()
        assert rng.bernoulli(1.0, 1000).all()

    def test_rate(self, rng):
        assert rng.bernoulli(0.3, 20000).mean() == pytest.approx(0.3, abs=0.015)

    def test_per_draw_probabilities(self, rng):
        """An array of probabilities gives one gate per entry."""
        gates = rng.bernoulli(np.array([0.0, 1.0, 0.0, 1.0]), 4)
        assert gates.tolist() == [False, True, False, True]

    @pytest.mark.parametrize("p", [-0.1, 1.5, float("nan")])
    def test_out_of_domain_rejected(self, rng, p):
        with pytest.raises(NumericDomainError):
            rng.bernoulli(p, 3)

    def test_chance_returns_bool(self, rng):
        assert rng.chance(1.0) is True
        assert rng.chance(0.0) is False


class TestOtherCategory:
    """Tests for switching to a different category."""

    def test_two_categories_flip(self, rng):
        current = np.array([0, 1, 1, 0])
        assert rng.other_category(current, 2).tolist() == [1, 0, 0, 1]

    def test_never_returns_current(self, rng):
        current = rng.uniform_categorical(list(range(5)), 2000)
        switched = rng.other_category(current, 5)
        assert not np.any(switched == current)
        assert switched.min() >= 0
        assert switched.max() < 5

    def test_fewer_than_two_rejected(self, rng):
        with pytest.raises(NumericDomainError):
            rng.other_category(np.array([0, 0]), 1)


class TestGumbel:
    def test_location_shifts_mean(self, rng):
        """Mean of Gumbel(loc, 1) is loc + Euler-Mascheroni constant."""
        draws = rng.gumbel(-7.0, 1.0, 20000)
        assert draws.mean() == pytest.approx(-7.0 + 0.5772, abs=0.05)

    def test_non_positive_scale_rejected(self, rng):
        with pytest.raises(NumericDomainError):
            rng.gumbel(0.0, 0.0, 5)
