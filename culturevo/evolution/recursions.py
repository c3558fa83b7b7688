"""Deterministic recursions for the expected trajectory of the stochastic models.

Each function iterates a one-generation map from ``p_0`` and returns the
``t_max`` values p_1 .. p_t_max, with p_1 = p_0, matching the generation
numbering of the simulations.
"""

from __future__ import annotations

from collections.abc import Callable


def iterate(step: Callable[[float], float], p_0: float, t_max: int) -> list[float]:
    """Iterate ``step`` from ``p_0`` for ``t_max`` generations."""
    values = [p_0]
    for _ in range(t_max - 1):
        values.append(step(values[-1]))
    return values


def unbiased_mutation(p_0: float, mu: float, t_max: int) -> list[float]:
    """p' = p(1 - mu) + (1 - p)mu, converging to 0.5."""
    return iterate(lambda p: p * (1 - mu) + (1 - p) * mu, p_0, t_max)


def biased_mutation(p_0: float, mu_b: float, t_max: int) -> list[float]:
    """p' = p + (1 - p)mu_b, converging monotonically to 1."""
    return iterate(lambda p: p + (1 - p) * mu_b, p_0, t_max)


def direct_bias(p_0: float, s_a: float, s_b: float, t_max: int) -> list[float]:
    """Expected A frequency under gated copying.

    A learner becomes A by accepting a copy from an A demonstrator, or by
    keeping its own A trait when no copy is accepted.
    """

    def step(p: float) -> float:
        accepted_a = p * s_a
        no_copy = 1 - p * s_a - (1 - p) * s_b
        return accepted_a + no_copy * p

    return iterate(step, p_0, t_max)


def conformity(p_0: float, D: float, t_max: int) -> list[float]:
    """p' = p + D p (1 - p)(2p - 1) for three-demonstrator conformity."""
    return iterate(lambda p: p + D * p * (1 - p) * (2 * p - 1), p_0, t_max)


def individual_learner_fitness(w: float, b: float, c: float, p: float) -> float:
    """Mean fitness of a population made only of individual learners."""
    return w + b * (2 * p - c - 1)


def generations_to_reach(values: list[float], target: float, tolerance: float = 1e-3) -> int | None:
    """First generation (1-based) at which ``values`` is within ``tolerance`` of ``target``."""
    for generation, value in enumerate(values, start=1):
        if abs(value - target) <= tolerance:
            return generation
    return None
