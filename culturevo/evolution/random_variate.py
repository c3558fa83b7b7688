"""Random variates for population updates.

Thin wrapper over a numpy ``Generator`` exposing the handful of draws the
transmission, mutation and reproduction policies need:
- Weighted and uniform categorical draws
- Demonstrator index draws (with the single-element pool guard)
- Bernoulli gates
- Gumbel draws for imperfect imitation of skills

Every draw is batched: callers ask for ``count`` values at once and get a
numpy array back.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from culturevo.errors import NumericDomainError


class RandomVariate:
    """A single independent random stream.

    Each simulation run owns exactly one instance. Streams for parallel
    runs are derived with ``spawn`` so they never overlap.
    """

    def __init__(self, seed: int | np.random.SeedSequence | None = None):
        """Initialize the stream.

        Args:
            seed: Integer seed, an existing SeedSequence, or None for OS entropy
        """
        if isinstance(seed, np.random.SeedSequence):
            self.seed_sequence = seed
        else:
            self.seed_sequence = np.random.SeedSequence(seed)
        self.generator = np.random.default_rng(self.seed_sequence)

    def spawn(self, n: int) -> list[RandomVariate]:
        """Derive ``n`` statistically independent child streams."""
        return [RandomVariate(child) for child in self.seed_sequence.spawn(n)]

    def weighted_categorical(
        self,
        categories: Sequence,
        weights: Sequence[float] | np.ndarray | None,
        count: int,
    ) -> np.ndarray:
        """Draw ``count`` i.i.d. categories with probability ``weights[i] / sum(weights)``.

        Args:
            categories: Values to draw from
            weights: Non-negative weights, one per category (None = uniform)
            count: Number of draws

        Returns:
            Array of ``count`` drawn categories

        Raises:
            NumericDomainError: On a negative weight, a length mismatch, or a
                weight sum <= 0 when ``count > 0``
        """
        values = np.asarray(categories)
        if count <= 0:
            return values[:0].copy()
        if len(values) == 0:
            raise NumericDomainError("Cannot draw from an empty set of categories")

        indices = self.sample_indices(len(values), count, weights)
        return values[indices]

    def uniform_categorical(self, categories: Sequence, count: int) -> np.ndarray:
        """Draw ``count`` categories uniformly at random, with replacement."""
        return self.weighted_categorical(categories, None, count)

    def sample_indices(
        self,
        pool_size: int,
        count: int,
        weights: Sequence[float] | np.ndarray | None = None,
    ) -> np.ndarray:
        """Draw ``count`` indices into a pool of ``pool_size`` items, with replacement.

        A pool of one always yields index 0, whatever the weights, so a
        single eligible demonstrator is chosen with probability 1.

        Args:
            pool_size: Number of items in the pool
            count: Number of draws
            weights: Optional non-negative weights, one per pool item

        Returns:
            Integer array of ``count`` indices in ``[0, pool_size)``
        """
        if count <= 0:
            return np.zeros(0, dtype=np.int64)
        if pool_size <= 0:
            raise NumericDomainError("Cannot sample from an empty pool")

        if weights is None:
            if pool_size == 1:
                return np.zeros(count, dtype=np.int64)
            return self.generator.integers(0, pool_size, size=count)

        w = np.asarray(weights, dtype=float)
        if w.shape != (pool_size,):
            raise NumericDomainError(
                f"Expected {pool_size} weights, got array of shape {w.shape}"
            )
        if np.any(w < 0) or not np.all(np.isfinite(w)):
            raise NumericDomainError("Sampling weights must be finite and non-negative")
        total = w.sum()
        if total <= 0:
            raise NumericDomainError("Sampling weights sum to zero")

        if pool_size == 1:
            return np.zeros(count, dtype=np.int64)
        return self.generator.choice(pool_size, size=count, replace=True, p=w / total)

    def bernoulli(self, p: float | np.ndarray, count: int) -> np.ndarray:
        """Draw ``count`` independent boolean gates, True with probability ``p``.

        Args:
            p: Scalar probability, or one probability per draw
            count: Number of draws

        Returns:
            Boolean array of length ``count``
        """
        probs = np.asarray(p, dtype=float)
        if np.any(probs < 0.0) or np.any(probs > 1.0) or np.any(np.isnan(probs)):
            raise NumericDomainError(f"Bernoulli probability outside [0, 1]: {p!r}")
        if probs.ndim > 0 and probs.shape != (count,):
            raise NumericDomainError(
                f"Expected {count} probabilities, got array of shape {probs.shape}"
            )
        if count <= 0:
            return np.zeros(0, dtype=bool)
        return self.generator.random(count) < probs

    def chance(self, p: float) -> bool:
        """Single Bernoulli gate."""
        return bool(self.bernoulli(p, 1)[0])

    def gumbel(self, location: float | np.ndarray, scale: float, count: int) -> np.ndarray:
        """Draw ``count`` values from Gumbel(location, scale)."""
        if scale <= 0:
            raise NumericDomainError(f"Gumbel scale must be positive, got {scale}")
        return self.generator.gumbel(location, scale, size=count)

    def other_category(self, current: np.ndarray, n_categories: int) -> np.ndarray:
        """Pick, for each entry, a category uniformly among the ``n_categories - 1`` others.

        With two categories this is a deterministic flip.
        """
        if n_categories < 2:
            raise NumericDomainError(
                f"Need at least 2 categories to switch category, got {n_categories}"
            )
        current = np.asarray(current)
        if n_categories == 2:
            return 1 - current
        offsets = self.generator.integers(1, n_categories, size=current.shape)
        return (current + offsets) % n_categories

    def permutation(self, values: np.ndarray) -> np.ndarray:
        """Return a shuffled copy of ``values``."""
        return self.generator.permutation(values)
