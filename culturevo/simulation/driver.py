"""Simulation driver: runs x generations in the fixed per-generation order.

Per generation:
1. transmission sub-step(s)
2. mutation / individual learning
3. fitness
4. statistics recorded into the ResultTable
5. reproduction (next generation's composition)
6. environment transition

Each run has its own model instance, population and random stream, and
moves through ``UNINITIALIZED -> RUNNING -> COMPLETED``. Runs never share
state, so they can be dispatched to worker processes; the result is the
same for the same seeds whatever the number of workers.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ProcessPoolExecutor
from enum import Enum
from typing import Any

import numpy as np

from culturevo.config import EngineSettings
from culturevo.errors import ConfigurationError, EngineStateError
from culturevo.evolution.population import PopulationSnapshot
from culturevo.evolution.random_variate import RandomVariate
from culturevo.simulation.models import Model, ModelParams, build_params, get_model
from culturevo.simulation.results import ResultTable

logger = logging.getLogger(__name__)


class RunState(Enum):
    """Lifecycle of a single run."""

    UNINITIALIZED = "uninitialized"
    RUNNING = "running"
    COMPLETED = "completed"


class SimulationRun:
    """One independent stochastic trajectory of ``t_max`` generations."""

    def __init__(self, model: Model, run: int, rng: RandomVariate):
        """Initialize a run.

        Args:
            model: Fresh model instance (holds this run's state)
            run: 1-based run index used as the ResultTable key
            rng: This run's random stream
        """
        self.model = model
        self.run = run
        self.rng = rng
        self.state = RunState.UNINITIALIZED
        self.generation = 0
        self.rows: list[dict[str, Any]] = []
        self._previous: PopulationSnapshot | None = None

    @property
    def t_max(self) -> int:
        return self.model.params.t_max

    def start(self) -> None:
        """Create the founding population."""
        if self.state is not RunState.UNINITIALIZED:
            raise EngineStateError(f"Run {self.run} already started")
        population = self.model.setup(self.rng)
        self._previous = population.snapshot()
        self.state = RunState.RUNNING

    def step(self) -> dict[str, Any]:
        """Execute one generation and return its recorded row."""
        if self.state is RunState.UNINITIALIZED:
            raise EngineStateError(f"Run {self.run} has not been started")
        if self.state is RunState.COMPLETED:
            raise EngineStateError(f"Run {self.run} already completed {self.t_max} generations")

        self.generation += 1
        model = self.model

        if self.generation > 1 or model.founders_learn:
            model.transmit(self._previous, self.rng)
            model.mutate(self._previous, self.rng)
        model.assess()
        self._check_defined()

        row: dict[str, Any] = {"run": self.run, "generation": self.generation}
        row.update(model.statistics())
        self.rows.append(row)

        self._previous = model.population.snapshot()
        if self.generation < self.t_max:
            model.reproduce(self._previous, self.rng)
            model.transition(self.rng)
        else:
            self.state = RunState.COMPLETED

        return row

    def run_to_completion(self) -> list[dict[str, Any]]:
        if self.state is RunState.UNINITIALIZED:
            self.start()
        while self.state is RunState.RUNNING:
            self.step()
        return self.rows

    def _check_defined(self) -> None:
        population = self.model.population
        for name in population.attributes:
            undefined = population.undefined_slots(name)
            if undefined.size:
                raise EngineStateError(
                    f"Run {self.run}, generation {self.generation}: "
                    f"{undefined.size} slots have no {name!r} value"
                )


def _execute_run(
    model_class: type[Model],
    params: ModelParams,
    run: int,
    seed: int | np.random.SeedSequence | None,
) -> list[dict[str, Any]]:
    """Run one trajectory end to end (module-level so worker processes can pickle it)."""
    started = time.time()
    sim_run = SimulationRun(model_class(params), run, RandomVariate(seed))
    rows = sim_run.run_to_completion()
    logger.info(
        f"{model_class.key} run {run} finished {len(rows)} generations "
        f"in {time.time() - started:.2f}s"
    )
    return rows


class SimulationDriver:
    """Executes ``r_max`` independent runs of a model and collects a ResultTable.

    Parameters are validated when the driver is built, so invalid
    configurations fail before any generation executes.
    """

    def __init__(
        self,
        model: str | type[Model],
        params: dict[str, Any] | ModelParams | None = None,
        seed: int | None = None,
        seeds: list[int] | None = None,
        workers: int | None = None,
        settings: EngineSettings | None = None,
    ):
        """Initialize the driver.

        Args:
            model: Model key or class
            params: Raw parameters or a validated record (defaults if None)
            seed: Master seed; run streams are spawned from it
            seeds: Explicit per-run seeds (length must equal r_max); overrides ``seed``
            workers: Worker processes for runs (None = settings.workers)
            settings: Engine-wide defaults

        Raises:
            ConfigurationError: On invalid parameters
            NumericDomainError: On a model that cannot be built (e.g. <2 categories)
        """
        self.settings = settings or EngineSettings()
        self.model_class = get_model(model) if isinstance(model, str) else model
        self.params = build_params(self.model_class, params or {})

        # Building one instance surfaces policy-level errors now, not mid-run
        probe = self.model_class(self.params)
        self.columns = probe.columns()

        if seeds is not None and len(seeds) != self.params.r_max:
            raise ConfigurationError(
                f"Got {len(seeds)} seeds for r_max={self.params.r_max} runs", fields=["seeds"]
            )
        self.seed = seed if seed is not None else self.settings.seed
        self.seeds = list(seeds) if seeds is not None else None
        self.workers = workers if workers is not None else self.settings.workers
        if self.workers < 1:
            raise ConfigurationError(
                f"workers must be >= 1, got {self.workers}", fields=["workers"]
            )
        self._table: ResultTable | None = None

    @property
    def key(self) -> str:
        return self.model_class.key

    def run_seeds(self) -> list[int | np.random.SeedSequence]:
        """The seed (or seed sequence) of every run, in run order."""
        if self.seeds is not None:
            return list(self.seeds)
        return list(np.random.SeedSequence(self.seed).spawn(self.params.r_max))

    def run(self) -> ResultTable:
        """Execute all runs and return the frozen ResultTable.

        Raises:
            EngineStateError: If called twice on the same driver
        """
        if self._table is not None:
            raise EngineStateError("Driver already ran; build a new driver for another experiment")

        started = time.time()
        logger.info(
            f"Running {self.key}: N={self.params.N} t_max={self.params.t_max} "
            f"r_max={self.params.r_max} seed={self.seed} workers={self.workers}"
        )

        jobs = [
            (self.model_class, self.params, run, seed)
            for run, seed in enumerate(self.run_seeds(), start=1)
        ]
        if self.workers > 1 and len(jobs) > 1:
            with ProcessPoolExecutor(max_workers=self.workers) as pool:
                results = list(pool.map(_execute_run, *zip(*jobs)))
        else:
            results = [_execute_run(*job) for job in jobs]

        table = ResultTable(self.columns, model=self.key)
        for rows in results:
            table.extend(rows)
        self._table = table.freeze()

        logger.info(f"{self.key}: {len(jobs)} runs completed in {time.time() - started:.2f}s")
        return self._table

    @property
    def results(self) -> ResultTable:
        if self._table is None:
            raise EngineStateError("No results yet; call run() first")
        return self._table


def simulate(
    model: str,
    seed: int | None = None,
    workers: int | None = None,
    **params: Any,
) -> ResultTable:
    """Build a driver for ``model`` with keyword parameters and run it."""
    return SimulationDriver(model, params, seed=seed, workers=workers).run()
