"""Report generation for experiment results."""

from __future__ import annotations

import csv
import json
from pathlib import Path

from culturevo.config import EngineSettings
from culturevo.errors import SerializationError
from culturevo.experiments.analysis import ConditionSummary
from culturevo.experiments.config import ExperimentConfig
from culturevo.experiments.runner import RunResult
from culturevo.simulation.results import KEY_COLUMNS, ResultTable


def _open_for_write(output_path: str, newline: str | None = None):
    path = Path(output_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        return open(path, "w", newline=newline)
    except OSError as err:
        raise SerializationError(f"Cannot write report {output_path}: {err}") from err


class ReportGenerator:
    """Generates reports in various formats.

    Supports markdown tables, CSV (final metrics and full time series),
    and JSON output.
    """

    def to_markdown(
        self,
        config: ExperimentConfig,
        summaries: list[ConditionSummary],
        output_path: str,
    ) -> None:
        """Generate markdown report with one table per metric.

        Args:
            config: Experiment configuration
            summaries: List of condition summaries
            output_path: Path to output markdown file
        """
        lines = []
        lines.append(f"# {config.name}")
        lines.append("")
        lines.append(f"**Model:** {config.model}")
        if config.description:
            lines.append("")
            lines.append(f"**Description:** {config.description}")
        lines.append("")
        lines.append(f"**Replicates:** {config.replicates}")
        lines.append(f"**Seed Start:** {config.seed_start}")
        lines.append("")

        all_metrics: set[str] = set()
        for summary in summaries:
            all_metrics.update(summary.metrics.keys())

        for metric in sorted(all_metrics):
            lines.append(f"## {metric} (final generation)")
            lines.append("")
            lines.append("| Condition | N | Mean | Std | Min | Max | 95% CI |")
            lines.append("|-----------|---|------|-----|-----|-----|--------|")

            for summary in summaries:
                if metric not in summary.metrics:
                    continue

                stats = summary.metrics[metric]
                lines.append(
                    f"| {summary.condition_name} | {summary.n} | "
                    f"{stats['mean']:.3f} | {stats['std']:.3f} | {stats['min']:.3f} | "
                    f"{stats['max']:.3f} | "
                    f"[{stats['ci_95_lower']:.3f}, {stats['ci_95_upper']:.3f}] |"
                )

            lines.append("")

        with _open_for_write(output_path) as f:
            f.write("\n".join(lines))

    def to_csv(self, results: list[RunResult], output_path: str) -> None:
        """Generate flat CSV with one row per run (final-generation metrics).

        Args:
            results: List of run results
            output_path: Path to output CSV file
        """
        if not results:
            with _open_for_write(output_path) as f:
                f.write("")
            return

        all_metrics: set[str] = set()
        for result in results:
            all_metrics.update(result.metrics.keys())
        sorted_metrics = sorted(all_metrics)

        with _open_for_write(output_path, newline="") as f:
            fieldnames = ["condition", "replicate", "seed", *sorted_metrics]
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()

            for result in results:
                row = {
                    "condition": result.condition_name,
                    "replicate": result.replicate,
                    "seed": result.seed,
                }
                for metric in sorted_metrics:
                    row[metric] = result.metrics.get(metric, 0.0)
                writer.writerow(row)

    def timeseries_to_csv(self, tables: dict[str, ResultTable], output_path: str) -> None:
        """Long-format CSV of every (condition, run, generation) row.

        Args:
            tables: Condition name -> ResultTable
            output_path: Path to output CSV file
        """
        columns: list[str] = []
        for table in tables.values():
            for column in table.columns:
                if column not in columns:
                    columns.append(column)

        with _open_for_write(output_path, newline="") as f:
            writer = csv.DictWriter(
                f, fieldnames=["condition", *KEY_COLUMNS, *columns], restval=""
            )
            writer.writeheader()
            for name, table in tables.items():
                for row in table.rows:
                    writer.writerow({"condition": name, **row})

    def to_json(self, summaries: list[ConditionSummary], output_path: str) -> None:
        """Generate machine-readable JSON.

        Args:
            summaries: List of condition summaries
            output_path: Path to output JSON file
        """
        data = [
            {
                "condition": summary.condition_name,
                "n": summary.n,
                "metrics": summary.metrics,
            }
            for summary in summaries
        ]

        with _open_for_write(output_path) as f:
            json.dump(data, f, indent=2)

    def write_all(
        self,
        config: ExperimentConfig,
        results: list[RunResult],
        summaries: list[ConditionSummary],
        tables: dict[str, ResultTable],
        output_dir: str | None = None,
    ) -> list[str]:
        """Write every format listed in ``config.formats``.

        Returns:
            Paths of the files written
        """
        if config.output_dir is None or config.formats is None:
            config = config.with_settings(EngineSettings())
        out = Path(output_dir or config.output_dir)
        written = []
        for fmt in config.formats:
            if fmt == "csv":
                self.to_csv(results, str(out / "results.csv"))
                self.timeseries_to_csv(tables, str(out / "timeseries.csv"))
                written += [str(out / "results.csv"), str(out / "timeseries.csv")]
            elif fmt == "json":
                self.to_json(summaries, str(out / "summary.json"))
                written.append(str(out / "summary.json"))
            elif fmt == "markdown":
                self.to_markdown(config, summaries, str(out / "report.md"))
                written.append(str(out / "report.md"))
            else:
                raise SerializationError(f"Unknown report format {fmt!r}")
        return written
