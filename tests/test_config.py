"""Tests for engine settings and logging setup."""

from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from culturevo.config import EngineSettings
from culturevo.logging_setup import LOG_FORMAT, configure_logging


class TestEngineSettings:
    """Tests for EngineSettings."""

    def test_defaults(self, monkeypatch):
        for name in ("SEED", "WORKERS", "LOG_LEVEL", "OUTPUT_DIR", "FORMATS"):
            monkeypatch.delenv(f"CULTUREVO_{name}", raising=False)
        settings = EngineSettings()
        assert settings.seed is None
        assert settings.workers == 1
        assert settings.log_level == "WARNING"
        assert settings.output_dir == "data/experiments"
        assert settings.formats == ["csv", "markdown"]

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("CULTUREVO_SEED", "11")
        monkeypatch.setenv("CULTUREVO_WORKERS", "4")
        settings = EngineSettings()
        assert settings.seed == 11
        assert settings.workers == 4

    def test_workers_must_be_positive(self):
        with pytest.raises(ValidationError):
            EngineSettings(workers=0)


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_sets_level_and_single_handler(self):
        first = configure_logging("DEBUG")
        second = configure_logging("INFO")
        logger = logging.getLogger("culturevo")
        assert logger.level == logging.INFO
        assert first is second
        assert logger.handlers.count(first) == 1
        assert first.formatter._fmt == LOG_FORMAT

    def test_unknown_level_falls_back_to_warning(self):
        configure_logging("CHATTY")
        assert logging.getLogger("culturevo").level == logging.WARNING

    def test_driver_logs_run_completion(self, caplog):
        from culturevo.simulation.driver import SimulationDriver

        with caplog.at_level(logging.INFO, logger="culturevo"):
            SimulationDriver("unbiased", {"N": 10, "t_max": 2, "r_max": 1}, seed=1).run()
        assert any("runs completed" in record.getMessage() for record in caplog.records)

    def test_empty_eligible_subset_logged_at_debug(self, caplog, rng):
        import numpy as np

        from culturevo.evolution.transmission import UnbiasedTransmission
        from tests.helpers import make_population

        population = make_population([0, 1, 0, 1])
        with caplog.at_level(logging.DEBUG, logger="culturevo"):
            count = UnbiasedTransmission().apply(
                population.snapshot(), population, rng, eligible=np.array([], dtype=np.int64)
            )
        assert count == 0
        assert any("empty eligible subset" in record.getMessage() for record in caplog.records)
