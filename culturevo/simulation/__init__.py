"""Simulation layer: model variants, the generation driver and result tables."""

from __future__ import annotations

from culturevo.simulation.driver import RunState, SimulationDriver, SimulationRun, simulate
from culturevo.simulation.models import MODELS, Model, ModelParams, build_params, get_model
from culturevo.simulation.results import ResultTable

__all__ = [
    "MODELS",
    "Model",
    "ModelParams",
    "ResultTable",
    "RunState",
    "SimulationDriver",
    "SimulationRun",
    "build_params",
    "get_model",
    "simulate",
]
