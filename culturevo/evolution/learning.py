"""Environment state and individual (asocial) learning."""

from __future__ import annotations

import numpy as np

from culturevo.evolution.random_variate import RandomVariate


class Environment:
    """Ordinal environment counter for one run.

    Starts at 0 and only ever increments, each generation with probability
    ``u``. Every new value is a state nobody has experienced before, so a
    behaviour that matched an old state can never match again.
    """

    def __init__(self, u: float, state: int = 0):
        self.u = u
        self.state = state
        self.changes = 0

    def maybe_change(self, rng: RandomVariate) -> bool:
        """Advance the environment with probability ``u``.

        Returns:
            True if the environment changed
        """
        if rng.chance(self.u):
            self.state += 1
            self.changes += 1
            return True
        return False

    def matches(self, behaviour: np.ndarray) -> np.ndarray:
        """Boolean mask of behaviours adapted to the current state."""
        return np.asarray(behaviour) == self.state


class IndividualLearning:
    """Trial-and-error learning: find the adaptive behaviour with probability ``p``.

    Failed learners end up with a behaviour that does not match the
    current environment (``E - 1``).
    """

    def __init__(self, p: float):
        self.p = p

    def learn(self, rng: RandomVariate, count: int, environment: Environment) -> np.ndarray:
        """Behaviours acquired by ``count`` individual learners."""
        correct = rng.bernoulli(self.p, count)
        return np.where(correct, environment.state, environment.state - 1)
