"""Mutation policies applied to individuals after transmission.

- UnbiasedMutation: switch to a uniformly chosen different category
- BiasedMutation: one-directional switch (B -> A)
- StrategyMutation: switch learning strategy to one of the others
- InnovationMutation: mutants invent a trait never seen before in the run

All mutation decisions are drawn against the pre-mutation state, so no
individual is mutated twice in the same generation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np

from culturevo.errors import NumericDomainError
from culturevo.evolution.population import TRAIT_A, TRAIT_B, Population, Strategy
from culturevo.evolution.random_variate import RandomVariate


class MutationPolicy(ABC):
    """Base class for a per-individual mutation sub-step."""

    attribute = "trait"

    def __init__(self, mu: float):
        self.mu = mu

    @abstractmethod
    def apply(self, population: Population, rng: RandomVariate) -> int:
        """Mutate the population in one batch.

        Returns:
            Number of individuals whose value changed
        """


class UnbiasedMutation(MutationPolicy):
    """With probability ``mu`` switch to a uniformly chosen *different* category."""

    def __init__(self, mu: float, n_categories: int = 2):
        if n_categories < 2:
            raise NumericDomainError(
                f"Categorical mutation needs at least 2 categories, got {n_categories}"
            )
        super().__init__(mu)
        self.n_categories = n_categories

    def apply(self, population, rng):
        mutants = np.flatnonzero(rng.bernoulli(self.mu, population.size))
        if mutants.size == 0:
            return 0
        current = population[self.attribute][mutants]
        population.replace_attribute(
            self.attribute, mutants, rng.other_category(current, self.n_categories)
        )
        return int(mutants.size)


class BiasedMutation(MutationPolicy):
    """With probability ``mu`` a ``source`` individual switches to ``target``.

    Individuals already holding ``target`` never mutate.
    """

    def __init__(self, mu: float, source: int = TRAIT_B, target: int = TRAIT_A):
        super().__init__(mu)
        self.source = source
        self.target = target

    def apply(self, population, rng):
        mutate = rng.bernoulli(self.mu, population.size)
        mutants = np.flatnonzero(mutate & (population[self.attribute] == self.source))
        population.replace_attribute(self.attribute, mutants, self.target)
        return int(mutants.size)


class StrategyMutation(MutationPolicy):
    """With probability ``mu`` switch learning strategy to one of the other strategies.

    With two strategies this is a flip; with three, each of the two others
    is chosen with probability 0.5.
    """

    attribute = "strategy"

    def __init__(self, mu: float, strategies: tuple[Strategy, ...]):
        if len(strategies) < 2:
            raise NumericDomainError("Strategy mutation needs at least 2 strategies")
        super().__init__(mu)
        self.strategies = np.array(sorted(int(s) for s in strategies), dtype=np.int64)

    def apply(self, population, rng):
        mutants = np.flatnonzero(rng.bernoulli(self.mu, population.size))
        if mutants.size == 0:
            return 0

        # Map strategy codes onto positions 0..k-1 so other_category can pick among them
        current = population[self.attribute][mutants]
        positions = np.searchsorted(self.strategies, current)
        if np.any(self.strategies[np.clip(positions, 0, len(self.strategies) - 1)] != current):
            raise NumericDomainError("Population holds a strategy outside the mutation alphabet")

        switched = rng.other_category(positions, len(self.strategies))
        population.replace_attribute(self.attribute, mutants, self.strategies[switched])
        return int(mutants.size)


class InnovationMutation(MutationPolicy):
    """With probability ``mu`` replace the trait with a brand-new one (infinite alleles).

    New traits are numbered from ``next_trait`` upwards, so one instance
    must not be shared between runs.
    """

    def __init__(self, mu: float, next_trait: int):
        super().__init__(mu)
        self.next_trait = next_trait

    def apply(self, population, rng):
        mutants = np.flatnonzero(rng.bernoulli(self.mu, population.size))
        if mutants.size == 0:
            return 0
        new_traits = np.arange(self.next_trait, self.next_trait + mutants.size)
        self.next_trait += int(mutants.size)
        population.replace_attribute(self.attribute, mutants, new_traits)
        return int(mutants.size)
