"""Population: the attribute table for N individual slots.

Individuals are not objects. A population is a set of equal-length numpy
columns (trait, strategy, status, fitness, ...) indexed by slot. Policies
never loop over individuals: they compute a full update vector from the
state at the start of their sub-step and commit it with a single
``replace_attribute`` call, so every read within a sub-step sees the same
pre-update state.

``snapshot`` freezes the current columns into the demonstrator pool for
the next generation. The snapshot is never written to.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import IntEnum

import numpy as np

from culturevo.errors import NumericDomainError
from culturevo.evolution.random_variate import RandomVariate

# Two-trait alphabet used by the A/B models
TRAIT_A = 0
TRAIT_B = 1
TRAIT_LABELS = ("A", "B")


class Strategy(IntEnum):
    """Learning strategy of an individual."""

    INDIVIDUAL = 0
    SOCIAL = 1
    CRITICAL = 2


class Status(IntEnum):
    """Demonstrator status, fixed for the whole run."""

    HIGH = 0
    LOW = 1


@dataclass(frozen=True)
class AttributeSpec:
    """How to initialize one attribute column.

    Either ``fill`` is given (every slot starts with that value) or each
    slot draws independently from ``categories`` with ``weights``.
    """

    name: str
    categories: tuple = ()
    weights: tuple[float, ...] | None = None
    fill: float | int | None = None
    dtype: str = "int64"

    @staticmethod
    def binary(name: str, p_first: float) -> AttributeSpec:
        """Two-category attribute with P(code 0) = ``p_first``."""
        return AttributeSpec(name=name, categories=(0, 1), weights=(p_first, 1.0 - p_first))

    @staticmethod
    def constant(name: str, value: float | int, dtype: str = "int64") -> AttributeSpec:
        return AttributeSpec(name=name, fill=value, dtype=dtype)


class PopulationSnapshot:
    """Immutable copy of a population, used as the demonstrator pool."""

    def __init__(self, columns: dict[str, np.ndarray], size: int):
        self._columns: dict[str, np.ndarray] = {}
        for name, values in columns.items():
            frozen = values.copy()
            frozen.flags.writeable = False
            self._columns[name] = frozen
        self.size = size

    def __len__(self) -> int:
        return self.size

    def __getitem__(self, name: str) -> np.ndarray:
        return self._columns[name]

    def __contains__(self, name: str) -> bool:
        return name in self._columns

    @property
    def attributes(self) -> list[str]:
        return list(self._columns)

    def draw_demonstrators(
        self,
        rng: RandomVariate,
        count: int,
        pool: np.ndarray | None = None,
        weights: np.ndarray | None = None,
    ) -> np.ndarray:
        """Pick ``count`` demonstrator slots with replacement.

        Args:
            rng: Random stream
            count: Number of learners needing a demonstrator
            pool: Optional slot indices restricting who can be copied
            weights: Optional weights aligned with ``pool`` (or with all slots)

        Returns:
            Slot indices into this snapshot
        """
        if pool is None:
            return rng.sample_indices(self.size, count, weights)
        picked = rng.sample_indices(len(pool), count, weights)
        return np.asarray(pool)[picked]


class Population:
    """Ordered collection of exactly N individual slots."""

    def __init__(self, size: int, columns: dict[str, np.ndarray] | None = None):
        if size < 1:
            raise NumericDomainError(f"Population size must be >= 1, got {size}")
        self.size = size
        self._columns: dict[str, np.ndarray] = {}
        for name, values in (columns or {}).items():
            self.add_attribute(name, values)

    @classmethod
    def initialize(
        cls,
        size: int,
        specs: Sequence[AttributeSpec],
        rng: RandomVariate,
    ) -> Population:
        """Create ``size`` slots, sampling each attribute independently.

        Args:
            size: Number of individuals (N)
            specs: One spec per attribute
            rng: Random stream

        Returns:
            New Population
        """
        population = cls(size)
        for spec in specs:
            if spec.fill is not None:
                values = np.full(size, spec.fill, dtype=spec.dtype)
            else:
                values = rng.weighted_categorical(spec.categories, spec.weights, size)
                values = values.astype(spec.dtype)
            population.add_attribute(spec.name, values)
        return population

    def __len__(self) -> int:
        return self.size

    def __contains__(self, name: str) -> bool:
        return name in self._columns

    def __getitem__(self, name: str) -> np.ndarray:
        """Read-only view of an attribute column."""
        view = self._columns[name].view()
        view.flags.writeable = False
        return view

    @property
    def attributes(self) -> list[str]:
        return list(self._columns)

    def add_attribute(self, name: str, values: np.ndarray) -> None:
        values = np.array(values, copy=True)
        if values.shape != (self.size,):
            raise NumericDomainError(
                f"Attribute {name!r} needs {self.size} values, got shape {values.shape}"
            )
        self._columns[name] = values

    def snapshot(self) -> PopulationSnapshot:
        """Freeze the current state as the next generation's demonstrator pool."""
        return PopulationSnapshot(self._columns, self.size)

    def select_subset(self, predicate: Callable[[Population], np.ndarray]) -> np.ndarray:
        """Slot indices for which ``predicate`` holds (possibly empty)."""
        mask = np.asarray(predicate(self), dtype=bool)
        return np.flatnonzero(mask)

    def indices_where(self, name: str, value: int | float) -> np.ndarray:
        """Slot indices whose attribute ``name`` equals ``value``."""
        return np.flatnonzero(self._columns[name] == value)

    def replace_attribute(
        self,
        name: str,
        indices: np.ndarray | None,
        values: np.ndarray | int | float,
    ) -> None:
        """Bulk-assign ``values`` to attribute ``name`` at ``indices``.

        Args:
            name: Attribute to write
            indices: Slot indices, or None for every slot
            values: One value per index, or a scalar broadcast to all
        """
        column = self._columns[name]
        if indices is None:
            indices = np.arange(self.size)
        indices = np.asarray(indices, dtype=np.int64)
        if indices.size == 0:
            return

        values = np.asarray(values)
        if values.ndim > 0 and values.shape != indices.shape:
            raise NumericDomainError(
                f"replace_attribute({name!r}): {indices.size} indices but {values.size} values"
            )
        column[indices] = values

    def proportions(self, name: str, categories: Sequence[int]) -> dict[int, float]:
        """Share of slots holding each category of attribute ``name``."""
        column = self._columns[name]
        return {
            category: float(np.count_nonzero(column == category)) / self.size
            for category in categories
        }

    def proportion(self, name: str, value: int | float) -> float:
        return float(np.count_nonzero(self._columns[name] == value)) / self.size

    def mean(self, name: str) -> float:
        return float(self._columns[name].mean())

    def undefined_slots(self, name: str) -> np.ndarray:
        """Slots whose value is still undefined (NaN) for a float attribute."""
        column = self._columns[name]
        if not np.issubdtype(column.dtype, np.floating):
            return np.zeros(0, dtype=np.int64)
        return np.flatnonzero(np.isnan(column))
