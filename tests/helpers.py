"""Shared builders for culturevo test suites."""

from __future__ import annotations

import numpy as np

from culturevo.evolution.population import Population


def make_population(traits: list[int], **columns: list) -> Population:
    """Build a population from literal columns (``trait`` plus any extras)."""
    data = {"trait": np.array(traits, dtype=np.int64)}
    for name, values in columns.items():
        data[name] = np.array(values)
    return Population(len(traits), data)


def fraction(values: np.ndarray, value: int) -> float:
    return float(np.count_nonzero(np.asarray(values) == value)) / len(values)
