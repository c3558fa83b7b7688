"""Tests for Population, PopulationSnapshot and AttributeSpec."""

from __future__ import annotations

import math

import numpy as np
import pytest

from culturevo.errors import NumericDomainError
from culturevo.evolution.population import (
    TRAIT_A,
    TRAIT_B,
    AttributeSpec,
    Population,
    Status,
)
from tests.helpers import make_population


class TestPopulationInit:
    """Tests for population construction."""

    def test_size_below_one_rejected(self):
        with pytest.raises(NumericDomainError):
            Population(0)

    def test_initialize_binary_frequency(self, rng):
        """A binary spec with p_first=0.3 gives about 30% code 0."""
        population = Population.initialize(10000, [AttributeSpec.binary("trait", 0.3)], rng)
        assert population.proportion("trait", TRAIT_A) == pytest.approx(0.3, abs=0.02)

    def test_initialize_extreme_frequencies(self, rng):
        """p_0 of 0 and 1 give monomorphic founders."""
        all_b = Population.initialize(200, [AttributeSpec.binary("trait", 0.0)], rng)
        all_a = Population.initialize(200, [AttributeSpec.binary("trait", 1.0)], rng)
        assert all_b.proportion("trait", TRAIT_B) == 1.0
        assert all_a.proportion("trait", TRAIT_A) == 1.0

    def test_initialize_constant(self, rng):
        population = Population.initialize(
            5, [AttributeSpec.constant("fitness", math.nan, dtype="float64")], rng
        )
        assert population.undefined_slots("fitness").tolist() == [0, 1, 2, 3, 4]

    def test_status_attribute(self, rng):
        spec = AttributeSpec(
            name="status", categories=(int(Status.HIGH), int(Status.LOW)), weights=(0.1, 0.9)
        )
        population = Population.initialize(5000, [spec], rng)
        assert population.proportion("status", Status.HIGH) == pytest.approx(0.1, abs=0.02)

    def test_wrong_column_length_rejected(self):
        with pytest.raises(NumericDomainError):
            Population(3, {"trait": np.array([0, 1])})


class TestPopulationAccess:
    """Tests for reads, subsets and bulk writes."""

    def test_columns_are_read_only(self, half_population):
        with pytest.raises(ValueError):
            half_population["trait"][0] = TRAIT_B

    def test_replace_attribute_at_indices(self, half_population):
        half_population.replace_attribute("trait", np.array([0, 1]), np.array([TRAIT_B, TRAIT_B]))
        assert half_population.proportion("trait", TRAIT_A) == pytest.approx(0.48)

    def test_replace_attribute_scalar_broadcast(self, half_population):
        half_population.replace_attribute("trait", None, TRAIT_A)
        assert half_population.proportion("trait", TRAIT_A) == 1.0

    def test_replace_attribute_empty_indices_is_noop(self, half_population):
        half_population.replace_attribute("trait", np.array([], dtype=np.int64), np.array([]))
        assert half_population.proportion("trait", TRAIT_A) == 0.5

    def test_replace_attribute_length_mismatch(self, half_population):
        with pytest.raises(NumericDomainError):
            half_population.replace_attribute("trait", np.array([0, 1, 2]), np.array([1, 1]))

    def test_select_subset(self):
        population = make_population([0, 1, 0, 1], group=[0, 0, 1, 1])
        members = population.select_subset(lambda pop: pop["group"] == 1)
        assert members.tolist() == [2, 3]

    def test_select_subset_may_be_empty(self):
        population = make_population([0, 1], group=[0, 0])
        assert population.select_subset(lambda pop: pop["group"] == 5).size == 0

    def test_proportions(self):
        population = make_population([0, 1, 2, 2])
        assert population.proportions("trait", range(3)) == {0: 0.25, 1: 0.25, 2: 0.5}

    def test_undefined_slots_ignores_int_columns(self, half_population):
        assert half_population.undefined_slots("trait").size == 0


class TestPopulationSnapshot:
    """Tests for the frozen demonstrator pool."""

    def test_snapshot_is_isolated(self, half_population):
        """Writes after the snapshot do not reach it."""
        snapshot = half_population.snapshot()
        half_population.replace_attribute("trait", None, TRAIT_B)
        assert np.count_nonzero(snapshot["trait"] == TRAIT_A) == 50

    def test_snapshot_is_immutable(self, half_population):
        snapshot = half_population.snapshot()
        with pytest.raises(ValueError):
            snapshot["trait"][0] = TRAIT_B

    def test_draw_demonstrators_within_pool(self, half_population, rng):
        snapshot = half_population.snapshot()
        pool = np.arange(50, 100)
        picked = snapshot.draw_demonstrators(rng, 500, pool=pool)
        assert picked.min() >= 50
        assert np.all(snapshot["trait"][picked] == TRAIT_B)

    def test_single_demonstrator_pool(self, half_population, rng):
        snapshot = half_population.snapshot()
        picked = snapshot.draw_demonstrators(rng, 20, pool=np.array([7]))
        assert np.all(picked == 7)
