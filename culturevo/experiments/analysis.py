"""Statistical analysis of experiment results."""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass

from culturevo.experiments.runner import RunResult
from culturevo.simulation.results import ResultTable, summary_stats


@dataclass
class ConditionSummary:
    """Summary statistics for a single condition."""

    condition_name: str
    n: int
    metrics: dict[str, dict]  # metric_name -> {"mean", "std", "min", "max", "ci_95_*"}


class ResultAnalyzer:
    """Aggregates final-generation metrics across runs and compares conditions."""

    def summarize(self, results: list[RunResult]) -> list[ConditionSummary]:
        """Compute summary statistics per condition.

        Args:
            results: List of RunResult objects

        Returns:
            List of ConditionSummary objects, in first-seen condition order
        """
        by_condition: dict[str, list[RunResult]] = defaultdict(list)
        for result in results:
            by_condition[result.condition_name].append(result)

        summaries = []
        for condition_name, cond_results in by_condition.items():
            all_metrics: set[str] = set()
            for result in cond_results:
                all_metrics.update(result.metrics.keys())

            metric_stats = {}
            for metric_name in sorted(all_metrics):
                values = [r.metrics[metric_name] for r in cond_results if metric_name in r.metrics]
                metric_stats[metric_name] = summary_stats(values)

            summaries.append(
                ConditionSummary(
                    condition_name=condition_name,
                    n=len(cond_results),
                    metrics=metric_stats,
                )
            )

        return summaries

    def pairwise_comparison(self, results: list[RunResult]) -> list[dict]:
        """Compare pairs of conditions with effect sizes.

        Args:
            results: List of RunResult objects

        Returns:
            List of comparison dicts with keys:
            - condition_a: First condition name
            - condition_b: Second condition name
            - metric: Metric name
            - mean_diff: Difference in means (b - a)
            - effect_size: Cohen's d
        """
        by_condition: dict[str, list[RunResult]] = defaultdict(list)
        for result in results:
            by_condition[result.condition_name].append(result)

        conditions = list(by_condition.keys())
        all_metrics: set[str] = set()
        for result in results:
            all_metrics.update(result.metrics.keys())

        comparisons = []
        for i, cond_a in enumerate(conditions):
            for cond_b in conditions[i + 1 :]:
                for metric in sorted(all_metrics):
                    values_a = [r.metrics[metric] for r in by_condition[cond_a]]
                    values_b = [r.metrics[metric] for r in by_condition[cond_b]]

                    stats_a = summary_stats(values_a)
                    stats_b = summary_stats(values_b)
                    mean_diff = stats_b["mean"] - stats_a["mean"]

                    dof = len(values_a) + len(values_b) - 2
                    pooled_std = 0.0
                    if dof > 0:
                        pooled_std = math.sqrt(
                            (
                                (len(values_a) - 1) * stats_a["std"] ** 2
                                + (len(values_b) - 1) * stats_b["std"] ** 2
                            )
                            / dof
                        )
                    effect_size = mean_diff / pooled_std if pooled_std > 0 else 0.0

                    comparisons.append(
                        {
                            "condition_a": cond_a,
                            "condition_b": cond_b,
                            "metric": metric,
                            "mean_diff": mean_diff,
                            "effect_size": effect_size,
                        }
                    )

        return comparisons

    def trajectory(self, table: ResultTable, stat: str) -> list[dict[str, float]]:
        """Per-generation mean/CI of ``stat`` across the runs of one table."""
        return table.summarize(stat)

    def fixation_share(self, results: list[RunResult], metric: str = "p") -> dict[str, dict]:
        """Share of runs per condition that ended fixed at 0, fixed at 1, or in between.

        Used to read off bistability (conformity) versus drift.
        """
        by_condition: dict[str, list[float]] = defaultdict(list)
        for result in results:
            if metric in result.metrics:
                by_condition[result.condition_name].append(result.metrics[metric])

        shares = {}
        for name, values in by_condition.items():
            n = len(values)
            shares[name] = {
                "fixed_0": sum(1 for v in values if v == 0.0) / n,
                "fixed_1": sum(1 for v in values if v == 1.0) / n,
                "polymorphic": sum(1 for v in values if 0.0 < v < 1.0) / n,
            }
        return shares
