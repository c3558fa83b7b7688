"""Fitness assignment and class-level fitness-proportional reproduction.

Fitness (Rogers' paradox family):
- Baseline ``w`` for everybody
- ``+b`` if the behaviour matches the current environment, ``-b`` otherwise
- Learning costs: ``-b*c`` for individual learners, ``-b*s`` for social
  learners, ``-b*s`` (plus ``-b*c`` if they fell through to individual
  learning) for critical learners

Reproduction picks the strategy of each new slot from the aggregate
relative fitness of each strategy class in the previous generation.
"""

from __future__ import annotations

import numpy as np

from culturevo.errors import ConfigurationError
from culturevo.evolution.learning import Environment
from culturevo.evolution.population import Population, PopulationSnapshot, Strategy
from culturevo.evolution.random_variate import RandomVariate


def check_fitness_validity(w: float, b: float, c: float, s: float, critical: bool = False) -> None:
    """Reject parameter sets that could produce negative fitness.

    Args:
        w: Baseline fitness
        b: Benefit of adaptive behaviour (and cost scale)
        c: Relative cost of individual learning
        s: Relative cost of social learning
        critical: Whether critical learners (who can pay both costs) exist

    Raises:
        ConfigurationError: If ``b*(1+c) >= 1``, ``b*(1+s) >= 1`` or the
            worst-case fitness is negative
    """
    if b * (1 + c) >= 1 or b * (1 + s) >= 1:
        raise ConfigurationError(
            "Invalid parameter values: ensure b*(1+c) < 1 and b*(1+s) < 1 "
            f"(got b={b}, c={c}, s={s})",
            fields=["b", "c", "s"],
        )
    worst = w - b * (1 + max(c, s))
    if critical:
        worst = min(worst, w - b * (1 + c + s))
    if worst < 0:
        raise ConfigurationError(
            f"Parameters allow negative fitness (worst case {worst:.3f}); raise w or lower b, c, s",
            fields=["w", "b", "c", "s"],
        )


class FitnessModel:
    """Assigns fitness from behaviour/environment match and strategy costs."""

    attribute = "fitness"

    def __init__(self, w: float, b: float, c: float, s: float, critical: bool = False):
        check_fitness_validity(w, b, c, s, critical=critical)
        self.w = w
        self.b = b
        self.c = c
        self.s = s

    def assign(self, population: Population, environment: Environment) -> np.ndarray:
        """Compute and store fitness for every slot.

        Args:
            population: Population after learning
            environment: Environment this generation experienced

        Returns:
            The fitness vector that was written
        """
        strategy = population["strategy"]
        matched = environment.matches(population["behaviour"])

        fitness = self.w + np.where(matched, self.b, -self.b)
        fitness = fitness - np.where(strategy == Strategy.INDIVIDUAL, self.b * self.c, 0.0)
        fitness = fitness - np.where(strategy == Strategy.SOCIAL, self.b * self.s, 0.0)

        if "learned_individually" in population:
            critical = strategy == Strategy.CRITICAL
            fell_through = population["learned_individually"].astype(bool)
            fitness = fitness - np.where(critical, self.b * self.s, 0.0)
            fitness = fitness - np.where(critical & fell_through, self.b * self.c, 0.0)

        population.replace_attribute(self.attribute, None, fitness)
        return fitness

    def individual_learner_line(self, p: float) -> float:
        """Expected fitness of a pure individual-learner population."""
        return self.w + self.b * (2 * p - self.c - 1)


class ClassReproduction:
    """Fitness-proportional reproduction at the level of strategy classes.

    Two individual learners of different fitness are equally likely to be
    copied; only the class total relative to the population total decides
    how many new slots adopt the class.
    """

    def __init__(self, strategies: tuple[Strategy, ...]):
        self.strategies = strategies

    @staticmethod
    def relative_fitness(previous: PopulationSnapshot, strategy: Strategy) -> float:
        """Share of total fitness held by ``strategy`` (0 if absent)."""
        fitness = previous["fitness"]
        total = float(fitness.sum())
        if total <= 0:
            return 0.0
        share = float(fitness[previous["strategy"] == strategy].sum()) / total
        return min(max(share, 0.0), 1.0)

    def reproduce(self, previous: PopulationSnapshot, rng: RandomVariate) -> np.ndarray:
        """Strategy codes for the N slots of the next generation.

        A slot that passes the individual-learner gate is an individual
        learner. With two strategies every other slot is a social learner.
        With three, the social gate is conditional on having failed the
        first one, so each class is produced in proportion to its share of
        total fitness and an absent class produces nothing.
        """
        n = previous.size
        f_individual = self.relative_fitness(previous, Strategy.INDIVIDUAL)
        produce_individual = rng.bernoulli(f_individual, n)

        if Strategy.CRITICAL not in self.strategies:
            return np.where(produce_individual, Strategy.INDIVIDUAL, Strategy.SOCIAL).astype(
                np.int64
            )

        # f_SL / (1 - f_IL), written so an absent critical class gives exactly 1
        f_social = self.relative_fitness(previous, Strategy.SOCIAL)
        remainder = f_social + self.relative_fitness(previous, Strategy.CRITICAL)
        social_gate = f_social / remainder if remainder > 0 else 0.0
        produce_social = rng.bernoulli(social_gate, n)
        return np.select(
            [produce_individual, produce_social],
            [int(Strategy.INDIVIDUAL), int(Strategy.SOCIAL)],
            default=int(Strategy.CRITICAL),
        ).astype(np.int64)
