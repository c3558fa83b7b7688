"""ResultTable: long-format time series of per-generation summary statistics.

Rows are keyed by (run, generation) and appended in simulation order.
Once frozen, a table no longer accepts rows. Plotting and analysis code
consumes it through ``rows``, ``column`` or ``to_frame``.
"""

from __future__ import annotations

import math
from collections import defaultdict
from collections.abc import Iterator, Sequence
from typing import Any

import numpy as np
import pandas as pd

from culturevo.errors import EngineStateError

KEY_COLUMNS = ("run", "generation")

# Two-sided 95% t critical values by degrees of freedom
T_VALUES_95 = {
    1: 12.706,
    2: 4.303,
    3: 3.182,
    4: 2.776,
    5: 2.571,
    6: 2.447,
    7: 2.365,
    8: 2.306,
    9: 2.262,
    10: 2.228,
    15: 2.131,
    20: 2.086,
    30: 2.042,
    40: 2.021,
    50: 2.009,
    100: 1.984,
}


def t_critical(df: int) -> float:
    """95% t critical value, interpolating between tabulated degrees of freedom."""
    if df in T_VALUES_95:
        return T_VALUES_95[df]
    if df < 1:
        return T_VALUES_95[1]
    if df > 100:
        return 1.96

    keys = sorted(T_VALUES_95)
    lower_key = max(k for k in keys if k <= df)
    upper_key = min(k for k in keys if k >= df)
    frac = (df - lower_key) / (upper_key - lower_key)
    return T_VALUES_95[lower_key] * (1 - frac) + T_VALUES_95[upper_key] * frac


def summary_stats(values: Sequence[float]) -> dict[str, float]:
    """Mean, sample std, min, max and 95% CI of ``values``.

    Args:
        values: Numeric values (one per run)

    Returns:
        Dict with keys: mean, std, min, max, ci_95_lower, ci_95_upper
    """
    n = len(values)
    if n == 0:
        return {
            "mean": 0.0,
            "std": 0.0,
            "min": 0.0,
            "max": 0.0,
            "ci_95_lower": 0.0,
            "ci_95_upper": 0.0,
        }

    arr = np.asarray(values, dtype=float)
    mean = float(arr.mean())
    std = float(arr.std(ddof=1)) if n > 1 else 0.0
    margin = t_critical(n - 1) * std / math.sqrt(n) if n > 1 else 0.0

    return {
        "mean": mean,
        "std": std,
        "min": float(arr.min()),
        "max": float(arr.max()),
        "ci_95_lower": mean - margin,
        "ci_95_upper": mean + margin,
    }


class ResultTable:
    """Append-only (run, generation) -> statistics table."""

    def __init__(self, columns: Sequence[str], model: str = ""):
        """Initialize an empty table.

        Args:
            columns: Statistic column names (without run/generation)
            model: Model key that produced the table
        """
        clash = set(columns) & set(KEY_COLUMNS)
        if clash:
            raise ValueError(f"Statistic columns clash with key columns: {sorted(clash)}")
        self.columns = tuple(columns)
        self.model = model
        self._rows: list[dict[str, Any]] = []
        self._last_generation: dict[int, int] = {}
        self._frozen = False

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self.rows)

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def rows(self) -> list[dict[str, Any]]:
        """Copies of all rows in append order."""
        return [dict(row) for row in self._rows]

    def append(self, run: int, generation: int, stats: dict[str, float]) -> None:
        """Record the statistics of one generation of one run.

        Raises:
            EngineStateError: If the table is frozen
            ValueError: If the columns differ from the table's, or the
                generation does not follow the run's previous one
        """
        if self._frozen:
            raise EngineStateError("ResultTable is frozen; no more rows can be appended")
        if set(stats) != set(self.columns):
            missing = sorted(set(self.columns) - set(stats))
            extra = sorted(set(stats) - set(self.columns))
            raise ValueError(f"Statistics mismatch: missing={missing} unexpected={extra}")
        last = self._last_generation.get(run)
        if last is not None and generation <= last:
            raise ValueError(
                f"Run {run}: generation {generation} does not follow generation {last}"
            )

        row: dict[str, Any] = {"run": run, "generation": generation}
        row.update({name: float(stats[name]) for name in self.columns})
        self._rows.append(row)
        self._last_generation[run] = generation

    def extend(self, rows: Sequence[dict[str, Any]]) -> None:
        """Append rows produced elsewhere (e.g. by a worker process)."""
        for row in rows:
            self.append(
                int(row["run"]),
                int(row["generation"]),
                {name: row[name] for name in self.columns},
            )

    def freeze(self) -> ResultTable:
        self._frozen = True
        return self

    def runs(self) -> list[int]:
        return sorted(self._last_generation)

    def generations(self) -> list[int]:
        return sorted({row["generation"] for row in self._rows})

    def column(self, name: str, run: int | None = None) -> np.ndarray:
        """Values of one column in append order, optionally for a single run."""
        if name not in self.columns and name not in KEY_COLUMNS:
            raise KeyError(name)
        return np.array(
            [row[name] for row in self._rows if run is None or row["run"] == run], dtype=float
        )

    def final_generation(self) -> dict[int, dict[str, Any]]:
        """Last recorded row of each run, keyed by run."""
        final: dict[int, dict[str, Any]] = {}
        for row in self._rows:
            final[row["run"]] = dict(row)
        return final

    def summarize(self, stat: str) -> list[dict[str, float]]:
        """Aggregate ``stat`` across runs, one entry per generation.

        Returns:
            List of dicts with ``generation`` plus the keys of ``summary_stats``
        """
        if stat not in self.columns:
            raise KeyError(stat)
        by_generation: dict[int, list[float]] = defaultdict(list)
        for row in self._rows:
            by_generation[row["generation"]].append(row[stat])

        summary = []
        for generation in sorted(by_generation):
            entry: dict[str, float] = {"generation": generation}
            entry.update(summary_stats(by_generation[generation]))
            summary.append(entry)
        return summary

    def to_frame(self) -> pd.DataFrame:
        """Long-format DataFrame with run, generation and one column per statistic."""
        return pd.DataFrame(self._rows, columns=[*KEY_COLUMNS, *self.columns])

    def summarize_final(self) -> dict[str, dict[str, float]]:
        """``summary_stats`` of every column over the runs' last recorded rows."""
        final = self.final_generation().values()
        return {name: summary_stats([row[name] for row in final]) for name in self.columns}
