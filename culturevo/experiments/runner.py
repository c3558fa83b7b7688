"""Experiment runner for executing model conditions with replicates."""

from __future__ import annotations

import json
import logging
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from culturevo.config import EngineSettings
from culturevo.errors import ConfigurationError, SerializationError
from culturevo.experiments.config import ExperimentCondition, ExperimentConfig
from culturevo.experiments.provenance import ExperimentProvenance, capture_provenance
from culturevo.simulation.driver import SimulationDriver
from culturevo.simulation.results import ResultTable

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Final-generation metrics of a single run."""

    condition_name: str
    replicate: int
    seed: int
    metrics: dict[str, float]


class ExperimentRunner:
    """Executes experiment conditions with replicates.

    Each condition becomes one SimulationDriver with ``r_max`` equal to the
    number of replicates. Tracks provenance for reproducibility.
    """

    def __init__(
        self,
        config: ExperimentConfig,
        config_yaml_path: str | None = None,
        settings: EngineSettings | None = None,
    ):
        """Initialize experiment runner.

        Args:
            config: Experiment configuration
            config_yaml_path: Path to YAML config (for provenance tracking)
            settings: Engine settings (worker count, report defaults)
        """
        self.settings = settings or EngineSettings()
        self.config = config.with_settings(self.settings)
        self.config_yaml_path = config_yaml_path or "config_from_code.yaml"
        self.tables: dict[str, ResultTable] = {}
        self._results: list[RunResult] = []
        self._provenance: ExperimentProvenance | None = None
        self._experiment_id = str(uuid.uuid4())

    @property
    def provenance(self) -> ExperimentProvenance | None:
        return self._provenance

    def build_drivers(self) -> dict[str, SimulationDriver]:
        """Validate every condition up front, before anything runs.

        Raises:
            ConfigurationError: If any condition has invalid parameters
        """
        drivers = {}
        for condition in self.config.expand_conditions():
            if condition.name in drivers:
                raise ConfigurationError(
                    f"Duplicate condition name {condition.name!r}", fields=["conditions"]
                )
            drivers[condition.name] = SimulationDriver(
                self.config.model,
                self.config.parameters_for(condition),
                seeds=self.config.seeds(),
                settings=self.settings,
            )
        return drivers

    def run_all(self, progress_callback: Any = None) -> list[RunResult]:
        """Execute all conditions x replicates.

        Args:
            progress_callback: Optional callback(condition_name, index, total_conditions)

        Returns:
            List of RunResult objects, one per condition x replicate
        """
        start_time = time.time()
        drivers = self.build_drivers()

        for index, (name, driver) in enumerate(drivers.items()):
            if progress_callback:
                progress_callback(name, index, len(drivers))
            logger.info(f"Condition {name} ({index + 1}/{len(drivers)})")

            table = driver.run()
            self.tables[name] = table
            self._results.extend(self._collect_results(name, table))

        duration = time.time() - start_time
        self._provenance = capture_provenance(
            experiment_id=self._experiment_id,
            config_yaml_path=self.config_yaml_path,
            config_resolved=self._get_resolved_config(),
            seed_range=self.config.seeds(),
            duration_seconds=duration,
        )
        return self._results

    def _collect_results(self, condition_name: str, table: ResultTable) -> list[RunResult]:
        metrics = self.config.metrics or list(table.columns)
        unknown = sorted(set(metrics) - set(table.columns))
        if unknown:
            raise ConfigurationError(
                f"Model {self.config.model!r} records no metric(s) {unknown}", fields=["metrics"]
            )

        seeds = self.config.seeds()
        results = []
        for run, row in sorted(table.final_generation().items()):
            results.append(
                RunResult(
                    condition_name=condition_name,
                    replicate=run - 1,
                    seed=seeds[run - 1],
                    metrics={name: row[name] for name in metrics},
                )
            )
        return results

    def _get_resolved_config(self) -> dict[str, Any]:
        """Get fully resolved config for provenance."""
        return {
            "name": self.config.name,
            "model": self.config.model,
            "description": self.config.description,
            "base": self.config.base,
            "conditions": [
                {"name": c.name, "overrides": c.overrides}
                for c in self.config.expand_conditions()
            ],
            "replicates": self.config.replicates,
            "seed_start": self.config.seed_start,
            "metrics": self.config.metrics,
        }

    def condition(self, name: str) -> ExperimentCondition:
        for condition in self.config.expand_conditions():
            if condition.name == name:
                return condition
        raise KeyError(name)

    def save_provenance(self, output_dir: str | None = None) -> Path:
        """Write provenance.json next to the reports.

        Raises:
            SerializationError: If nothing has run yet or the file cannot be written
        """
        if self._provenance is None:
            raise SerializationError("No provenance captured; run the experiment first")

        path = Path(output_dir or self.config.output_dir) / "provenance.json"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w") as f:
                json.dump(self._provenance.to_dict(), f, indent=2)
        except OSError as err:
            raise SerializationError(f"Cannot write provenance to {path}: {err}") from err
        return path
