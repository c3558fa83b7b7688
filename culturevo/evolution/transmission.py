"""Transmission policies: how learners acquire traits from demonstrators.

Implements the oblique transmission rules of the models:
- Unbiased: copy one uniformly drawn demonstrator
- Direct bias: copy, but accept the copy with a trait-specific probability
- Conformist: adopt from three demonstrators with a majority-favouring rule
- Demonstrator bias: draw the demonstrator with status-dependent weight
- Critical learner: social copy, environment check, individual fallback
- Vertical then horizontal: inherit from two parents, then peer conformity

Every policy reads demonstrators from the frozen previous generation and
the learners' own pre-step values, builds the complete update vector, and
commits it in one ``replace_attribute`` call.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import numpy as np

from culturevo.evolution.learning import Environment, IndividualLearning
from culturevo.evolution.population import (
    TRAIT_A,
    TRAIT_B,
    Population,
    PopulationSnapshot,
    Status,
    Strategy,
)
from culturevo.evolution.random_variate import RandomVariate

logger = logging.getLogger(__name__)

# Conformist transmission always samples this many demonstrators
CONFORMIST_DEMONSTRATORS = 3


class TransmissionPolicy(ABC):
    """Base class for a single transmission sub-step."""

    attribute = "trait"

    @abstractmethod
    def apply(
        self,
        previous: PopulationSnapshot,
        population: Population,
        rng: RandomVariate,
        eligible: np.ndarray | None = None,
        pool: np.ndarray | None = None,
    ) -> int:
        """Update ``attribute`` for the eligible learners.

        Args:
            previous: Frozen previous generation (demonstrator pool)
            population: Current generation, written in one batch
            rng: Random stream
            eligible: Learner slot indices (None = everybody)
            pool: Demonstrator slot indices in ``previous`` (None = everybody)

        Returns:
            Number of learners that went through the sub-step
        """

    def _learners(self, population: Population, eligible: np.ndarray | None) -> np.ndarray:
        if eligible is None:
            learners = np.arange(population.size)
        else:
            learners = np.asarray(eligible, dtype=np.int64)
        if learners.size == 0:
            logger.debug(f"{type(self).__name__}: empty eligible subset, nothing to update")
        return learners


class UnbiasedTransmission(TransmissionPolicy):
    """Each learner copies one demonstrator drawn uniformly with replacement."""

    def apply(self, previous, population, rng, eligible=None, pool=None):
        learners = self._learners(population, eligible)
        if learners.size == 0:
            return 0
        demonstrators = previous.draw_demonstrators(rng, learners.size, pool=pool)
        population.replace_attribute(
            self.attribute, learners, previous[self.attribute][demonstrators]
        )
        return int(learners.size)


class DirectBiasTransmission(TransmissionPolicy):
    """Copy a random demonstrator, accepting the copy with a trait-dependent probability.

    A learner whose copy gate fails keeps its own pre-step trait; it does
    not switch to the other trait.
    """

    def __init__(self, s_a: float, s_b: float):
        """Initialize direct bias.

        Args:
            s_a: Probability of accepting a copy from an A demonstrator
            s_b: Probability of accepting a copy from a B demonstrator
        """
        self.s_a = s_a
        self.s_b = s_b

    def apply(self, previous, population, rng, eligible=None, pool=None):
        learners = self._learners(population, eligible)
        if learners.size == 0:
            return 0

        demonstrated = previous[self.attribute][
            previous.draw_demonstrators(rng, learners.size, pool=pool)
        ]
        copy_a = rng.bernoulli(self.s_a, learners.size)
        copy_b = rng.bernoulli(self.s_b, learners.size)

        updated = population[self.attribute][learners].copy()
        updated[copy_a & (demonstrated == TRAIT_A)] = TRAIT_A
        updated[copy_b & (demonstrated == TRAIT_B)] = TRAIT_B

        population.replace_attribute(self.attribute, learners, updated)
        return int(learners.size)


class ConformistTransmission(TransmissionPolicy):
    """Frequency-dependent copying from three demonstrators.

    With k of the three demonstrators showing A, the learner adopts A with
    probability 0, 1/3 - D/3, 2/3 + D/3, 1 for k = 0, 1, 2, 3. D > 0 is
    conformity, D < 0 anti-conformity, and D = 0 is proportional copying in
    aggregate. Each learner draws its own triad.
    """

    def __init__(self, D: float):
        """Initialize conformist transmission.

        Args:
            D: Conformity strength in [-1, 1]
        """
        self.D = D
        self.adoption_table = np.array(
            [0.0, 1.0 / 3.0 - D / 3.0, 2.0 / 3.0 + D / 3.0, 1.0], dtype=float
        )

    def adoption_probability(self, k: np.ndarray) -> np.ndarray:
        """Probability of adopting A given the number of A demonstrators."""
        return self.adoption_table[np.asarray(k, dtype=np.int64)]

    def apply(self, previous, population, rng, eligible=None, pool=None):
        learners = self._learners(population, eligible)
        if learners.size == 0:
            return 0

        n = learners.size
        demonstrators = previous.draw_demonstrators(
            rng, n * CONFORMIST_DEMONSTRATORS, pool=pool
        ).reshape(n, CONFORMIST_DEMONSTRATORS)
        k = np.count_nonzero(previous[self.attribute][demonstrators] == TRAIT_A, axis=1)

        adopt_a = rng.bernoulli(self.adoption_probability(k), n)
        population.replace_attribute(self.attribute, learners, np.where(adopt_a, TRAIT_A, TRAIT_B))
        return int(n)


class DemonstratorBiasTransmission(TransmissionPolicy):
    """Copy a demonstrator drawn with weight 1 if high status, ``p_low`` if low status.

    If no demonstrator has positive weight the sub-step is a no-op and
    every learner keeps its trait.
    """

    status_attribute = "status"

    def __init__(self, p_low: float):
        """Initialize demonstrator bias.

        Args:
            p_low: Relative weight of low-status demonstrators (0-1)
        """
        self.p_low = p_low

    def demonstrator_weights(self, previous: PopulationSnapshot) -> np.ndarray:
        status = previous[self.status_attribute]
        return np.where(status == Status.HIGH, 1.0, self.p_low)

    def apply(self, previous, population, rng, eligible=None, pool=None):
        learners = self._learners(population, eligible)
        if learners.size == 0:
            return 0

        weights = self.demonstrator_weights(previous)
        if pool is not None:
            weights = weights[np.asarray(pool)]
        if weights.sum() <= 0:
            logger.debug("No demonstrator with positive weight, traits unchanged")
            return 0

        demonstrators = previous.draw_demonstrators(rng, learners.size, pool=pool, weights=weights)
        population.replace_attribute(
            self.attribute, learners, previous[self.attribute][demonstrators]
        )
        return int(learners.size)


class CriticalLearnerTransmission(TransmissionPolicy):
    """Two-phase learning for the Rogers' paradox models.

    Phase 1: social and critical learners copy the behaviour of a uniformly
    drawn demonstrator. Phase 2: critical learners whose copied behaviour
    does not match the current environment, together with all individual
    learners, learn individually. The match test runs on the just-copied
    behaviour.

    The per-slot ``learned_individually`` flag is written for the fitness
    step (critical learners pay the individual learning cost only when they
    fell through).
    """

    attribute = "behaviour"
    strategy_attribute = "strategy"
    flag_attribute = "learned_individually"

    def __init__(self, environment: Environment, learning: IndividualLearning):
        self.environment = environment
        self.learning = learning

    def apply(self, previous, population, rng, eligible=None, pool=None):
        learners = self._learners(population, eligible)
        if learners.size == 0:
            return 0

        strategy = population[self.strategy_attribute][learners]
        behaviour = population[self.attribute][learners].copy()

        copiers = (strategy == Strategy.SOCIAL) | (strategy == Strategy.CRITICAL)
        n_copiers = int(np.count_nonzero(copiers))
        if n_copiers:
            demonstrators = previous.draw_demonstrators(rng, n_copiers, pool=pool)
            behaviour[copiers] = previous[self.attribute][demonstrators]

        unsatisfied = (strategy == Strategy.CRITICAL) & ~self.environment.matches(behaviour)
        individual = (strategy == Strategy.INDIVIDUAL) | unsatisfied
        n_individual = int(np.count_nonzero(individual))
        if n_individual:
            behaviour[individual] = self.learning.learn(rng, n_individual, self.environment)

        population.replace_attribute(self.attribute, learners, behaviour)
        population.replace_attribute(self.flag_attribute, learners, individual.astype(np.int64))
        return int(learners.size)


class VerticalTransmission(TransmissionPolicy):
    """Inherit from two parents drawn from the previous generation.

    Parents sharing a trait pass it on; mixed parents pass on A with
    probability ``b``.
    """

    def __init__(self, b: float):
        self.b = b

    def apply(self, previous, population, rng, eligible=None, pool=None):
        learners = self._learners(population, eligible)
        if learners.size == 0:
            return 0

        n = learners.size
        traits = previous[self.attribute]
        mother = traits[previous.draw_demonstrators(rng, n, pool=pool)]
        father = traits[previous.draw_demonstrators(rng, n, pool=pool)]

        prefer_a = rng.bernoulli(self.b, n)
        inherited = np.where(mother == father, mother, np.where(prefer_a, TRAIT_A, TRAIT_B))
        population.replace_attribute(self.attribute, learners, inherited)
        return int(n)


class HorizontalConformity(TransmissionPolicy):
    """Peer learning within the current generation.

    With probability ``g`` a learner samples ``n`` peers from the current
    (post-vertical) generation and adopts their strict majority trait. A
    tie leaves the learner's trait unchanged. All peers are read from the
    state at the start of this sub-step.
    """

    def __init__(self, n: int, g: float):
        self.n = n
        self.g = g

    def apply(self, previous, population, rng, eligible=None, pool=None):
        learners = self._learners(population, eligible)
        horizontal = learners[rng.bernoulli(self.g, learners.size)]
        if horizontal.size == 0:
            return 0

        peers = population.snapshot()
        sampled = peers[self.attribute][
            peers.draw_demonstrators(rng, horizontal.size * self.n).reshape(horizontal.size, self.n)
        ]
        n_a = np.count_nonzero(sampled == TRAIT_A, axis=1)
        n_b = self.n - n_a

        updated = population[self.attribute][horizontal].copy()
        updated[n_a > n_b] = TRAIT_A
        updated[n_b > n_a] = TRAIT_B
        population.replace_attribute(self.attribute, horizontal, updated)
        return int(horizontal.size)
