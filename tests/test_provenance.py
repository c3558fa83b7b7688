"""Tests for experiment provenance tracking."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from culturevo.experiments.provenance import (
    DEPENDENCIES,
    ExperimentProvenance,
    _get_culturevo_version,
    _get_dependency_versions,
    _git,
    _hash_file,
    capture_provenance,
)


def test_capture_provenance_returns_all_fields(tmp_path):
    """capture_provenance fills every field."""
    yaml_path = tmp_path / "exp.yaml"
    yaml_path.write_text("name: test\nmodel: unbiased\n")
    config_resolved = {"name": "test", "replicates": 3, "seed_start": 42}

    provenance = capture_provenance(
        experiment_id="test-123",
        config_yaml_path=str(yaml_path),
        config_resolved=config_resolved,
        seed_range=[42, 43, 44],
        duration_seconds=10.5,
    )

    assert provenance.experiment_id == "test-123"
    assert provenance.timestamp
    assert provenance.git_commit is None or isinstance(provenance.git_commit, str)
    assert isinstance(provenance.git_dirty, bool)
    assert provenance.python_version
    assert provenance.culturevo_version
    assert provenance.config_yaml_path == str(yaml_path)
    assert len(provenance.config_yaml_hash) == 64
    assert provenance.config_resolved == config_resolved
    assert provenance.seed_range == [42, 43, 44]
    assert provenance.duration_seconds == 10.5
    assert set(provenance.dependencies) == set(DEPENDENCIES)


def test_provenance_round_trip_serialization():
    """to_dict / from_dict preserve every field."""
    original = ExperimentProvenance(
        experiment_id="test-456",
        timestamp="2024-01-01T00:00:00Z",
        git_commit="abc123",
        git_dirty=False,
        python_version="3.12.1",
        platform_info="Linux-6.1-x86_64",
        culturevo_version="0.1.0",
        config_yaml_path="test.yaml",
        config_yaml_hash="def456",
        config_resolved={"name": "test"},
        seed_range=[1, 2, 3],
        duration_seconds=5.5,
        dependencies={"numpy": "2.0.0"},
    )

    assert ExperimentProvenance.from_dict(original.to_dict()) == original


def test_hash_file_is_content_hash(tmp_path):
    a = tmp_path / "a.yaml"
    b = tmp_path / "b.yaml"
    a.write_text("x: 1\n")
    b.write_text("x: 1\n")
    assert _hash_file(str(a)) == _hash_file(str(b))
    b.write_text("x: 2\n")
    assert _hash_file(str(a)) != _hash_file(str(b))


def test_hash_file_missing():
    assert _hash_file("/nonexistent/path.yaml") == "file_not_found"


def test_git_unavailable_returns_none():
    with patch("culturevo.experiments.provenance.subprocess.run", side_effect=FileNotFoundError):
        assert _git("rev-parse", "HEAD") is None


def test_version_is_string():
    assert isinstance(_get_culturevo_version(), str)


def test_dependency_versions_mark_missing():
    with patch("culturevo.experiments.provenance.DEPENDENCIES", ["numpy", "not-a-real-dist-xyz"]):
        versions = _get_dependency_versions()
    assert versions["not-a-real-dist-xyz"] == "not_installed"
    assert versions["numpy"] != "not_installed"


def test_pyproject_present_for_source_checkout():
    assert (Path(__file__).parent.parent / "pyproject.toml").exists()
