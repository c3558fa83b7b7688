"""Experiment runner for systematic model studies.

Provides configuration, execution, analysis, and reporting tools for
running several parameter conditions of one model with replicates.
"""

from __future__ import annotations

from culturevo.experiments.analysis import ConditionSummary, ResultAnalyzer
from culturevo.experiments.config import ExperimentCondition, ExperimentConfig
from culturevo.experiments.provenance import ExperimentProvenance, capture_provenance
from culturevo.experiments.report import ReportGenerator
from culturevo.experiments.runner import ExperimentRunner, RunResult

__all__ = [
    "ExperimentConfig",
    "ExperimentCondition",
    "ExperimentRunner",
    "RunResult",
    "ResultAnalyzer",
    "ConditionSummary",
    "ReportGenerator",
    "ExperimentProvenance",
    "capture_provenance",
]
