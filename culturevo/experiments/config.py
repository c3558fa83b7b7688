"""Experiment configuration with YAML support."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from culturevo.config import EngineSettings
from culturevo.errors import ConfigurationError, SerializationError
from culturevo.simulation.models import get_model


@dataclass
class ExperimentCondition:
    """A single experimental condition with parameter overrides."""

    name: str
    overrides: dict[str, Any] = field(default_factory=dict)


@dataclass
class ExperimentConfig:
    """Configuration for a multi-condition experiment on one model.

    Every condition runs ``replicates`` independent runs; replicate ``i``
    uses seed ``seed_start + i``.
    """

    name: str
    model: str
    description: str = ""
    base: dict[str, Any] = field(default_factory=dict)  # parameters shared by all conditions
    conditions: list[ExperimentCondition] = field(default_factory=list)
    replicates: int = 5
    seed_start: int = 42
    metrics: list[str] = field(default_factory=list)  # empty = every model column
    # None = take the value from EngineSettings
    output_dir: str | None = None
    formats: list[str] | None = None

    def __post_init__(self) -> None:
        get_model(self.model)
        if self.replicates < 1:
            raise ConfigurationError(
                f"replicates must be >= 1, got {self.replicates}", fields=["replicates"]
            )
        if not self.conditions:
            self.conditions = [ExperimentCondition(name="default")]

    @classmethod
    def from_yaml(cls, path: str) -> ExperimentConfig:
        """Load experiment config from YAML file.

        Args:
            path: Path to YAML file

        Returns:
            ExperimentConfig instance

        Raises:
            SerializationError: If the file cannot be read or parsed
        """
        import yaml

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as err:
            raise SerializationError(f"Cannot load experiment config {path}: {err}") from err

        if not isinstance(data, dict):
            raise SerializationError(f"Experiment config {path} must be a mapping")
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> ExperimentConfig:
        """Build ExperimentConfig from dictionary.

        Args:
            data: Dict with experiment configuration

        Returns:
            ExperimentConfig instance
        """
        for required in ("name", "model"):
            if required not in data:
                raise ConfigurationError(
                    f"Experiment config is missing {required!r}", fields=[required]
                )

        conditions = [
            ExperimentCondition(
                name=cond_data["name"],
                overrides=cond_data.get("overrides", {}),
            )
            for cond_data in data.get("conditions", [])
        ]

        return cls(
            name=data["name"],
            model=data["model"],
            description=data.get("description", ""),
            base=data.get("base", {}),
            conditions=conditions,
            replicates=data.get("replicates", 5),
            seed_start=data.get("seed_start", 42),
            metrics=data.get("metrics", []),
            output_dir=data.get("output_dir"),
            formats=data.get("formats"),
        )

    def with_settings(self, settings: EngineSettings) -> ExperimentConfig:
        """Copy with the report options the YAML left out taken from ``settings``."""
        return replace(
            self,
            output_dir=self.output_dir or settings.output_dir,
            formats=list(settings.formats) if self.formats is None else self.formats,
        )

    def expand_conditions(self) -> list[ExperimentCondition]:
        """Expand grid sweeps into individual conditions.

        An override whose value is a list of scalars expands into one
        condition per value (cartesian product across such overrides).
        ``p_0`` lists are group frequencies, not sweeps, and are kept as-is.

        Returns:
            List of concrete conditions
        """
        expanded: list[ExperimentCondition] = []
        for condition in self.conditions:
            sweeps = {
                key: value
                for key, value in condition.overrides.items()
                if isinstance(value, list) and key != "p_0"
            }
            if not sweeps:
                expanded.append(condition)
                continue

            combos: list[dict[str, Any]] = [{}]
            for key, values in sweeps.items():
                combos = [{**combo, key: value} for combo in combos for value in values]

            for combo in combos:
                suffix = ",".join(f"{key}={value}" for key, value in combo.items())
                expanded.append(
                    ExperimentCondition(
                        name=f"{condition.name}[{suffix}]",
                        overrides={**condition.overrides, **combo},
                    )
                )
        return expanded

    def parameters_for(self, condition: ExperimentCondition) -> dict[str, Any]:
        """Resolved model parameters for a condition (replicates become r_max)."""
        return {**self.base, **condition.overrides, "r_max": self.replicates}

    def seeds(self) -> list[int]:
        return list(range(self.seed_start, self.seed_start + self.replicates))
