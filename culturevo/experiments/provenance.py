"""Experiment provenance tracking for reproducible runs."""

from __future__ import annotations

import hashlib
import platform
import subprocess
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from importlib import metadata
from pathlib import Path

DEPENDENCIES = ["numpy", "pandas", "pydantic", "pydantic-settings", "pyyaml", "rich"]


@dataclass
class ExperimentProvenance:
    """Everything needed to reproduce this experiment."""

    experiment_id: str  # UUID
    timestamp: str  # ISO 8601
    git_commit: str | None  # HEAD SHA, None outside a repository
    git_dirty: bool
    python_version: str  # e.g., "3.12.1"
    platform_info: str  # e.g., "Linux-6.1-x86_64"
    culturevo_version: str
    config_yaml_path: str
    config_yaml_hash: str  # SHA256 of YAML content
    config_resolved: dict  # Full resolved config (after defaults)
    seed_range: list[int]  # Seeds used, one per replicate
    duration_seconds: float  # Total wall time
    dependencies: dict  # Installed versions of key deps

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> ExperimentProvenance:
        """Create from dictionary."""
        return cls(**data)


def capture_provenance(
    experiment_id: str,
    config_yaml_path: str,
    config_resolved: dict,
    seed_range: list[int],
    duration_seconds: float = 0.0,
) -> ExperimentProvenance:
    """Capture full provenance for current experiment.

    Args:
        experiment_id: Unique identifier for this experiment
        config_yaml_path: Path to the YAML config file
        config_resolved: Full resolved configuration dictionary
        seed_range: List of seeds used in this experiment
        duration_seconds: Total wall time for experiment

    Returns:
        ExperimentProvenance object with all captured metadata
    """
    return ExperimentProvenance(
        experiment_id=experiment_id,
        timestamp=datetime.now(timezone.utc).isoformat(),
        git_commit=_git("rev-parse", "HEAD"),
        git_dirty=bool(_git("status", "--porcelain")),
        python_version=platform.python_version(),
        platform_info=platform.platform(),
        culturevo_version=_get_culturevo_version(),
        config_yaml_path=str(config_yaml_path),
        config_yaml_hash=_hash_file(config_yaml_path),
        config_resolved=config_resolved,
        seed_range=seed_range,
        duration_seconds=duration_seconds,
        dependencies=_get_dependency_versions(),
    )


def _git(*args: str) -> str | None:
    """Stripped stdout of a git command, or None if git is unavailable or fails."""
    try:
        result = subprocess.run(
            ["git", *args], capture_output=True, text=True, timeout=5, check=False
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip()


def _get_culturevo_version() -> str:
    """Installed package version, or the pyproject.toml version for a source checkout."""
    try:
        return metadata.version("culturevo")
    except metadata.PackageNotFoundError:
        pass

    toml_path = Path(__file__).parent.parent.parent / "pyproject.toml"
    if toml_path.exists():
        for line in toml_path.read_text().splitlines():
            if line.strip().startswith("version"):
                return line.split("=")[1].strip().strip('"').strip("'")
    return "0.1.0"


def _hash_file(path: str) -> str:
    """SHA256 hash of file contents.

    Args:
        path: Path to file to hash

    Returns:
        Hex digest of SHA256 hash, or "file_not_found" if file doesn't exist
    """
    try:
        content = Path(path).read_bytes()
        return hashlib.sha256(content).hexdigest()
    except OSError:
        return "file_not_found"


def _get_dependency_versions() -> dict:
    """Get installed versions of key dependencies.

    Returns:
        Dictionary mapping distribution name to version string
    """
    deps = {}
    for dist in DEPENDENCIES:
        try:
            deps[dist] = metadata.version(dist)
        except metadata.PackageNotFoundError:
            deps[dist] = "not_installed"
    return deps
