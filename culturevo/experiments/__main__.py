"""CLI for running models and experiments.

Usage:
    python -m culturevo.experiments models
    python -m culturevo.experiments simulate rogers --param u=0.2 --param N=500 --seed 1
    python -m culturevo.experiments run experiments/conformity.yaml
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from culturevo.config import EngineSettings
from culturevo.errors import ConfigurationError, CulturevoError
from culturevo.experiments.analysis import ResultAnalyzer
from culturevo.experiments.config import ExperimentConfig
from culturevo.experiments.report import ReportGenerator
from culturevo.experiments.runner import ExperimentRunner
from culturevo.logging_setup import configure_logging
from culturevo.simulation.driver import SimulationDriver
from culturevo.simulation.models import MODELS

console = Console()


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="culturevo",
        description="Agent-based cultural evolution models",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--log-level", type=str, help="DEBUG, INFO, WARNING, ...")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # List models
    subparsers.add_parser("models", help="List models and their default parameters")

    # Single model
    sim_parser = subparsers.add_parser("simulate", help="Run one model and summarize")
    sim_parser.add_argument("model", help="Model key (see 'models')")
    sim_parser.add_argument(
        "--param",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Parameter override, repeatable (value parsed as YAML)",
    )
    sim_parser.add_argument("--seed", type=int, help="Master seed")
    sim_parser.add_argument("--workers", type=int, help="Worker processes")
    sim_parser.add_argument("--csv", type=str, help="Write the full ResultTable to this CSV")

    # Run experiment
    run_parser = subparsers.add_parser("run", help="Run experiment from YAML")
    run_parser.add_argument("yaml_path", help="Path to experiment YAML config")
    run_parser.add_argument("--output-dir", type=str, help="Override output directory")
    run_parser.add_argument("--workers", type=int, help="Worker processes")

    args = parser.parse_args(argv)
    settings = EngineSettings()
    configure_logging(args.log_level or settings.log_level)

    try:
        if args.command == "models":
            list_models()
        elif args.command == "simulate":
            simulate_model(args, settings)
        elif args.command == "run":
            run_experiment(args, settings)
        else:
            parser.print_help()
            return 1
    except CulturevoError as err:
        console.print(f"[bold red]{type(err).__name__}:[/bold red] {escape(str(err))}")
        return 2
    return 0


def parse_overrides(pairs: list[str]) -> dict[str, Any]:
    """Parse ``key=value`` pairs; values go through YAML so numbers and lists work."""
    overrides = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ConfigurationError(f"Expected KEY=VALUE, got {pair!r}", fields=["param"])
        overrides[key.strip()] = yaml.safe_load(value)
    return overrides


def list_models() -> None:
    """Print every model with its default parameters."""
    table = Table(title="Models")
    table.add_column("Key", style="bold cyan", no_wrap=True)
    table.add_column("Description")
    table.add_column("Defaults")

    for key, model_class in MODELS.items():
        defaults = model_class.params_class().model_dump()
        table.add_row(
            key,
            model_class.description,
            ", ".join(f"{name}={value}" for name, value in defaults.items()),
        )
    console.print(table)


def simulate_model(args: argparse.Namespace, settings: EngineSettings) -> None:
    """Run one model and print final-generation summaries."""
    driver = SimulationDriver(
        args.model,
        parse_overrides(args.param),
        seed=args.seed,
        workers=args.workers,
        settings=settings,
    )
    results = driver.run()

    title = f"{driver.key}: generation {driver.params.t_max} over {driver.params.r_max} runs"
    table = Table(title=title)
    for heading in ("Statistic", "Mean", "Std", "Min", "Max", "95% CI"):
        table.add_column(heading)

    final = results.summarize_final()
    for column in results.columns:
        stats = final[column]
        table.add_row(
            column,
            f"{stats['mean']:.4f}",
            f"{stats['std']:.4f}",
            f"{stats['min']:.4f}",
            f"{stats['max']:.4f}",
            f"[{stats['ci_95_lower']:.4f}, {stats['ci_95_upper']:.4f}]",
        )
    console.print(table)

    if args.csv:
        path = Path(args.csv)
        path.parent.mkdir(parents=True, exist_ok=True)
        results.to_frame().to_csv(path, index=False)
        console.print(f"Results: {path}")


def run_experiment(args: argparse.Namespace, settings: EngineSettings) -> None:
    """Run experiment from YAML config."""
    yaml_path = Path(args.yaml_path)
    if not yaml_path.exists():
        console.print(f"Config file not found: {yaml_path}")
        sys.exit(1)

    config = ExperimentConfig.from_yaml(str(yaml_path))
    if args.workers is not None:
        settings = settings.model_copy(update={"workers": args.workers})
    conditions = config.expand_conditions()

    console.print(f"Experiment: [bold]{config.name}[/bold] ({config.model})")
    console.print(f"Conditions: {len(conditions)}")
    console.print(f"Replicates: {config.replicates}")
    console.print(f"Total runs: {len(conditions) * config.replicates}")

    runner = ExperimentRunner(config, config_yaml_path=str(yaml_path), settings=settings)
    config = runner.config
    output_dir = args.output_dir or config.output_dir

    def progress(condition: str, index: int, total: int) -> None:
        console.print(f"Running {condition} ({index + 1}/{total})")

    results = runner.run_all(progress_callback=progress)

    analyzer = ResultAnalyzer()
    summaries = analyzer.summarize(results)
    written = ReportGenerator().write_all(
        config, results, summaries, runner.tables, output_dir=output_dir
    )
    written.append(str(runner.save_provenance(output_dir)))

    provenance = runner.provenance
    if provenance:
        console.print(f"Experiment complete: {provenance.experiment_id}")
        console.print(f"Duration: {provenance.duration_seconds:.2f}s")
    for path in written:
        console.print(f"  {path}")


if __name__ == "__main__":
    sys.exit(main())
