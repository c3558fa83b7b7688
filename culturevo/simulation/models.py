"""Model variants: parameter records and per-generation hooks.

Each model pairs a pydantic parameter record with a class that wires the
evolution policies into the driver's fixed per-generation order:

1. ``transmit``   transmission sub-step(s)
2. ``mutate``     mutation / individual learning
3. ``assess``     fitness
4. ``statistics`` summary statistics for the ResultTable
5. ``reproduce``  next generation's strategy composition
6. ``transition`` exogenous state change (environment)

A model instance holds the state of exactly one run.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from typing import Any, ClassVar

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from culturevo.errors import ConfigurationError
from culturevo.evolution.fitness import ClassReproduction, FitnessModel, check_fitness_validity
from culturevo.evolution.learning import Environment, IndividualLearning
from culturevo.evolution.mutation import (
    BiasedMutation,
    InnovationMutation,
    StrategyMutation,
    UnbiasedMutation,
)
from culturevo.evolution.population import (
    TRAIT_A,
    AttributeSpec,
    Population,
    PopulationSnapshot,
    Status,
    Strategy,
)
from culturevo.evolution.random_variate import RandomVariate
from culturevo.evolution.transmission import (
    ConformistTransmission,
    CriticalLearnerTransmission,
    DemonstratorBiasTransmission,
    DirectBiasTransmission,
    HorizontalConformity,
    UnbiasedTransmission,
    VerticalTransmission,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Parameter records
# ---------------------------------------------------------------------------


class ModelParams(BaseModel):
    """Parameters shared by every model."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    N: int = Field(default=1000, gt=0)  # population size
    t_max: int = Field(default=200, gt=0)  # generations per run
    r_max: int = Field(default=5, gt=0)  # independent runs

    def check(self) -> None:
        """Cross-field validation beyond per-field constraints."""


class UnbiasedParams(ModelParams):
    p_0: float = Field(default=0.5, ge=0.0, le=1.0)


class UnbiasedMutationParams(ModelParams):
    p_0: float = Field(default=0.5, ge=0.0, le=1.0)
    mu: float = Field(default=0.05, ge=0.0, le=1.0)


class BiasedMutationParams(ModelParams):
    p_0: float = Field(default=0.0, ge=0.0, le=1.0)
    mu_b: float = Field(default=0.05, ge=0.0, le=1.0)


class DirectBiasParams(ModelParams):
    p_0: float = Field(default=0.01, ge=0.0, le=1.0)
    s_a: float = Field(default=0.1, ge=0.0, le=1.0)
    s_b: float = Field(default=0.0, ge=0.0, le=1.0)


class ConformistParams(ModelParams):
    p_0: float = Field(default=0.5, ge=0.0, le=1.0)
    D: float = Field(default=1.0, ge=-1.0, le=1.0)  # <0 is anti-conformity


class DemonstratorBiasParams(ModelParams):
    p_0: float = Field(default=0.5, ge=0.0, le=1.0)
    p_s: float = Field(default=0.05, ge=0.0, le=1.0)  # share of high-status individuals
    p_low: float = Field(default=0.0001, ge=0.0, le=1.0)  # weight of low-status demonstrators


class VerticalHorizontalParams(ModelParams):
    p_0: float = Field(default=0.5, ge=0.0, le=1.0)
    b: float = Field(default=0.5, ge=0.0, le=1.0)  # P(A) for mixed parents
    n: int = Field(default=5, gt=0)  # peers sampled in horizontal learning
    g: float = Field(default=0.1, ge=0.0, le=1.0)  # P(horizontal learning)


class MultipleTraitsParams(ModelParams):
    m: int = Field(default=5, gt=0)  # initial number of traits
    mu: float = Field(default=0.0, ge=0.0, le=1.0)
    innovation: bool = False


class RogersParams(ModelParams):
    w: float = Field(default=1.0, gt=0.0)
    b: float = Field(default=0.5, ge=0.0)
    c: float = Field(default=0.9, ge=0.0)
    s: float = Field(default=0.0, ge=0.0)
    mu: float = Field(default=0.01, ge=0.0, le=1.0)
    p: float = Field(default=1.0, ge=0.0, le=1.0)
    u: float = Field(default=0.2, ge=0.0, le=1.0)

    def check(self) -> None:
        check_fitness_validity(self.w, self.b, self.c, self.s)


class RogersCriticalParams(RogersParams):
    def check(self) -> None:
        check_fitness_validity(self.w, self.b, self.c, self.s, critical=True)


class MigrationParams(ModelParams):
    groups: int = Field(default=2, gt=0)
    p_0: list[float] = Field(default=[0.9, 0.1])  # one per group, or a single shared value
    D: float = Field(default=0.0, ge=-1.0, le=1.0)
    m: float = Field(default=0.01, ge=0.0, le=1.0)  # migration probability

    @field_validator("p_0", mode="before")
    @classmethod
    def _shared_value(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return [value]
        return value

    @field_validator("p_0")
    @classmethod
    def _probabilities(cls, value: list[float]) -> list[float]:
        if not value:
            raise ValueError("p_0 needs at least one value")
        for p in value:
            if not 0.0 <= p <= 1.0:
                raise ValueError(f"p_0 values must lie in [0, 1], got {p}")
        return value

    def check(self) -> None:
        if len(self.p_0) not in (1, self.groups):
            raise ConfigurationError(
                f"p_0 has {len(self.p_0)} values for {self.groups} groups",
                fields=["p_0", "groups"],
            )

    def initial_frequencies(self) -> list[float]:
        if len(self.p_0) == 1:
            return self.p_0 * self.groups
        return list(self.p_0)


class DemographyParams(ModelParams):
    alpha: float = Field(default=7.0, ge=0.0)  # mean imitation shortfall
    beta: float = Field(default=1.0, gt=0.0)  # spread of imitation outcomes
    z_0: float = 0.0  # initial skill level


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class Model(ABC):
    """One run's worth of state for a model variant."""

    key: ClassVar[str]
    description: ClassVar[str]
    params_class: ClassVar[type[ModelParams]] = ModelParams

    # Whether the founding generation goes through transmission/learning
    founders_learn: ClassVar[bool] = False

    def __init__(self, params: ModelParams):
        self.params = params
        self.population: Population | None = None

    @abstractmethod
    def columns(self) -> tuple[str, ...]:
        """Statistic columns this model records."""

    @abstractmethod
    def setup(self, rng: RandomVariate) -> Population:
        """Create the founding population and any per-run state."""

    def transmit(self, previous: PopulationSnapshot, rng: RandomVariate) -> None:
        pass

    def mutate(self, previous: PopulationSnapshot, rng: RandomVariate) -> None:
        pass

    def assess(self) -> None:
        pass

    @abstractmethod
    def statistics(self) -> dict[str, float]:
        """Summary statistics of the current generation."""

    def reproduce(self, previous: PopulationSnapshot, rng: RandomVariate) -> None:
        pass

    def transition(self, rng: RandomVariate) -> None:
        pass


class TwoTraitModel(Model):
    """Base for the A/B trait models; records p, the frequency of A."""

    def columns(self) -> tuple[str, ...]:
        return ("p",)

    def founder_specs(self) -> list[AttributeSpec]:
        return [AttributeSpec.binary("trait", self.params.p_0)]

    def setup(self, rng):
        self.population = Population.initialize(self.params.N, self.founder_specs(), rng)
        return self.population

    def statistics(self):
        return {"p": self.population.proportion("trait", TRAIT_A)}


class UnbiasedModel(TwoTraitModel):
    key = "unbiased"
    description = "Unbiased oblique transmission (neutral drift)"
    params_class = UnbiasedParams

    def __init__(self, params):
        super().__init__(params)
        self.transmission = UnbiasedTransmission()

    def transmit(self, previous, rng):
        self.transmission.apply(previous, self.population, rng)


class UnbiasedMutationModel(TwoTraitModel):
    key = "unbiased_mutation"
    description = "Symmetric mutation between A and B"
    params_class = UnbiasedMutationParams

    def __init__(self, params):
        super().__init__(params)
        self.mutation = UnbiasedMutation(params.mu, n_categories=2)

    def mutate(self, previous, rng):
        self.mutation.apply(self.population, rng)


class BiasedMutationModel(TwoTraitModel):
    key = "biased_mutation"
    description = "One-directional mutation from B to A"
    params_class = BiasedMutationParams

    def __init__(self, params):
        super().__init__(params)
        self.mutation = BiasedMutation(params.mu_b)

    def mutate(self, previous, rng):
        self.mutation.apply(self.population, rng)


class DirectBiasModel(TwoTraitModel):
    key = "direct_bias"
    description = "Content-biased copying with trait-specific acceptance"
    params_class = DirectBiasParams

    def __init__(self, params):
        super().__init__(params)
        self.transmission = DirectBiasTransmission(params.s_a, params.s_b)

    def transmit(self, previous, rng):
        self.transmission.apply(previous, self.population, rng)


class ConformistModel(TwoTraitModel):
    key = "conformist"
    description = "Frequency-dependent copying from three demonstrators"
    params_class = ConformistParams

    def __init__(self, params):
        super().__init__(params)
        self.transmission = ConformistTransmission(params.D)

    def transmit(self, previous, rng):
        self.transmission.apply(previous, self.population, rng)


class DemonstratorBiasModel(TwoTraitModel):
    key = "demonstrator_bias"
    description = "Status-weighted choice of demonstrator"
    params_class = DemonstratorBiasParams

    def __init__(self, params):
        super().__init__(params)
        self.transmission = DemonstratorBiasTransmission(params.p_low)

    def columns(self):
        return ("p", "p_high")

    def founder_specs(self):
        return [
            AttributeSpec.binary("trait", self.params.p_0),
            AttributeSpec(
                name="status",
                categories=(int(Status.HIGH), int(Status.LOW)),
                weights=(self.params.p_s, 1.0 - self.params.p_s),
            ),
        ]

    def transmit(self, previous, rng):
        self.transmission.apply(previous, self.population, rng)

    def statistics(self):
        high = self.population.indices_where("status", Status.HIGH)
        p_high = 0.0
        if high.size:
            p_high = float(np.count_nonzero(self.population["trait"][high] == TRAIT_A)) / high.size
        return {"p": self.population.proportion("trait", TRAIT_A), "p_high": p_high}


class VerticalHorizontalModel(TwoTraitModel):
    key = "vertical_horizontal"
    description = "Biased inheritance from two parents, then peer conformity"
    params_class = VerticalHorizontalParams

    def __init__(self, params):
        super().__init__(params)
        self.vertical = VerticalTransmission(params.b)
        self.horizontal = HorizontalConformity(params.n, params.g)

    def transmit(self, previous, rng):
        self.vertical.apply(previous, self.population, rng)
        self.horizontal.apply(previous, self.population, rng)


class MultipleTraitsModel(Model):
    """Unbiased copying among many traits, with mutation or innovation."""

    key = "multiple_traits"
    description = "Unbiased copying of many traits with mutation or innovation"
    params_class = MultipleTraitsParams

    def __init__(self, params):
        super().__init__(params)
        self.transmission = UnbiasedTransmission()
        self.mutation = None
        if params.mu > 0 and not params.innovation:
            self.mutation = UnbiasedMutation(params.mu, n_categories=params.m)

    def columns(self):
        base = ("n_traits", "top_frequency", "entropy")
        if self.params.innovation:
            return base
        return base + tuple(f"p_{k}" for k in range(self.params.m))

    def setup(self, rng):
        spec = AttributeSpec(name="trait", categories=tuple(range(self.params.m)))
        self.population = Population.initialize(self.params.N, [spec], rng)
        if self.params.innovation:
            # per-run counter, so a fresh policy for every run
            self.mutation = InnovationMutation(self.params.mu, next_trait=self.params.m)
        return self.population

    def transmit(self, previous, rng):
        self.transmission.apply(previous, self.population, rng)

    def mutate(self, previous, rng):
        if self.mutation is not None:
            self.mutation.apply(self.population, rng)

    def statistics(self):
        _, counts = np.unique(self.population["trait"], return_counts=True)
        freqs = counts / self.population.size
        stats = {
            "n_traits": float(counts.size),
            "top_frequency": float(freqs.max()),
            "entropy": float(-(freqs * np.log2(freqs)).sum()),
        }
        if not self.params.innovation:
            stats.update(
                {
                    f"p_{k}": share
                    for k, share in self.population.proportions(
                        "trait", range(self.params.m)
                    ).items()
                }
            )
        return stats


class RogersModel(Model):
    """Rogers' paradox: individual vs social learners in a changing environment."""

    key = "rogers"
    description = "Individual vs social learners in a changing environment"
    params_class = RogersParams
    founders_learn = True
    strategies: ClassVar[tuple[Strategy, ...]] = (Strategy.INDIVIDUAL, Strategy.SOCIAL)

    def __init__(self, params):
        super().__init__(params)
        self.fitness = FitnessModel(
            params.w,
            params.b,
            params.c,
            params.s,
            critical=Strategy.CRITICAL in self.strategies,
        )
        self.reproduction = ClassReproduction(self.strategies)
        self.strategy_mutation = StrategyMutation(params.mu, self.strategies)
        self.learning = IndividualLearning(params.p)
        self.environment: Environment | None = None
        self.transmission: CriticalLearnerTransmission | None = None

    def columns(self):
        return ("p_SL", "p_IL", "W", "E")

    def setup(self, rng):
        self.environment = Environment(self.params.u)
        self.transmission = CriticalLearnerTransmission(self.environment, self.learning)
        # founders are individual learners holding a behaviour that fits no environment yet
        self.population = Population.initialize(
            self.params.N,
            [
                AttributeSpec.constant("strategy", int(Strategy.INDIVIDUAL)),
                AttributeSpec.constant("behaviour", self.environment.state - 1),
                AttributeSpec.constant("learned_individually", 0),
                AttributeSpec.constant("fitness", math.nan, dtype="float64"),
            ],
            rng,
        )
        return self.population

    def transmit(self, previous, rng):
        self.transmission.apply(previous, self.population, rng)

    def assess(self):
        self.fitness.assign(self.population, self.environment)

    def statistics(self):
        return {
            "p_SL": self.population.proportion("strategy", Strategy.SOCIAL),
            "p_IL": self.population.proportion("strategy", Strategy.INDIVIDUAL),
            "W": self.population.mean("fitness"),
            "E": float(self.environment.state),
        }

    def reproduce(self, previous, rng):
        offspring = self.reproduction.reproduce(previous, rng)
        self.population.replace_attribute("strategy", None, offspring)
        self.strategy_mutation.apply(self.population, rng)
        self.population.replace_attribute("fitness", None, math.nan)
        self.population.replace_attribute("learned_individually", None, 0)

    def transition(self, rng):
        if self.environment.maybe_change(rng):
            logger.debug(f"Environment changed to state {self.environment.state}")

    def individual_learner_line(self) -> float:
        return self.fitness.individual_learner_line(self.params.p)


class RogersCriticalModel(RogersModel):
    """Rogers' paradox with critical learners (social first, individual if unsatisfied)."""

    key = "rogers_critical"
    description = "Rogers' paradox with critical learners"
    params_class = RogersCriticalParams
    strategies = (Strategy.INDIVIDUAL, Strategy.SOCIAL, Strategy.CRITICAL)

    def columns(self):
        return ("p_SL", "p_IL", "p_CL", "W", "E")

    def statistics(self):
        stats = super().statistics()
        stats["p_CL"] = self.population.proportion("strategy", Strategy.CRITICAL)
        return stats


class MigrationModel(Model):
    """Group-structured population: within-group conformity plus migration."""

    key = "migration"
    description = "Sub-populations with within-group conformity and migration"
    params_class = MigrationParams

    def __init__(self, params):
        super().__init__(params)
        self.transmission = ConformistTransmission(params.D)

    def columns(self):
        return ("p",) + tuple(f"p_{g}" for g in range(self.params.groups)) + (
            "between_group_variance",
        )

    def setup(self, rng):
        n, groups = self.params.N, self.params.groups
        traits = np.concatenate(
            [
                rng.weighted_categorical((0, 1), (p, 1.0 - p), n)
                for p in self.params.initial_frequencies()
            ]
        )
        self.population = Population(
            n * groups,
            {"trait": traits.astype(np.int64), "group": np.repeat(np.arange(groups), n)},
        )
        return self.population

    def group_members(self, group: int) -> np.ndarray:
        return self.population.select_subset(lambda pop: pop["group"] == group)

    def transmit(self, previous, rng):
        for group in range(self.params.groups):
            members = self.group_members(group)
            pool = np.flatnonzero(previous["group"] == group)
            self.transmission.apply(previous, self.population, rng, eligible=members, pool=pool)

    def mutate(self, previous, rng):
        """Migrants leave their slots and are re-seated at random into the vacated ones."""
        migrants = np.flatnonzero(rng.bernoulli(self.params.m, self.population.size))
        if migrants.size < 2:
            return
        traits = self.population["trait"][migrants]
        self.population.replace_attribute("trait", migrants, rng.permutation(traits))

    def statistics(self):
        p = self.population.proportion("trait", TRAIT_A)
        stats: dict[str, Any] = {"p": p}
        group_p = []
        for group in range(self.params.groups):
            members = self.group_members(group)
            share = float(np.count_nonzero(self.population["trait"][members] == TRAIT_A))
            group_p.append(share / members.size)
            stats[f"p_{group}"] = group_p[-1]
        stats["between_group_variance"] = float(np.mean((np.array(group_p) - p) ** 2))
        return stats


class DemographyModel(Model):
    """Skill loss through imperfect imitation of the most skilled individual."""

    key = "demography"
    description = "Imperfect imitation of the most skilled (Gumbel) and skill loss"
    params_class = DemographyParams

    def columns(self):
        return ("z_mean", "z_max")

    def setup(self, rng):
        self.population = Population.initialize(
            self.params.N, [AttributeSpec.constant("skill", self.params.z_0, dtype="float64")], rng
        )
        return self.population

    def transmit(self, previous, rng):
        z_max = float(previous["skill"].max())
        skill = rng.gumbel(z_max - self.params.alpha, self.params.beta, self.population.size)
        self.population.replace_attribute("skill", None, skill)

    def statistics(self):
        skill = self.population["skill"]
        return {"z_mean": float(skill.mean()), "z_max": float(skill.max())}


MODELS: dict[str, type[Model]] = {
    cls.key: cls
    for cls in (
        UnbiasedModel,
        UnbiasedMutationModel,
        BiasedMutationModel,
        DirectBiasModel,
        ConformistModel,
        DemonstratorBiasModel,
        VerticalHorizontalModel,
        MultipleTraitsModel,
        RogersModel,
        RogersCriticalModel,
        MigrationModel,
        DemographyModel,
    )
}


def get_model(key: str) -> type[Model]:
    """Look up a model class by key."""
    try:
        return MODELS[key]
    except KeyError:
        raise ConfigurationError(
            f"Unknown model {key!r}; choose from {', '.join(sorted(MODELS))}", fields=["model"]
        ) from None


def build_params(model: str | type[Model], values: dict[str, Any] | ModelParams) -> ModelParams:
    """Validate raw parameter values for a model.

    Args:
        model: Model key or class
        values: Raw parameter dict, or an already-built record

    Returns:
        Validated, frozen parameter record

    Raises:
        ConfigurationError: On any field or cross-field violation
    """
    model_class = get_model(model) if isinstance(model, str) else model
    params_class = model_class.params_class

    if isinstance(values, params_class):
        params = values
    else:
        if isinstance(values, ModelParams):
            values = values.model_dump()
        try:
            params = params_class(**values)
        except ValidationError as err:
            fields = [".".join(str(part) for part in e["loc"]) for e in err.errors()]
            details = "; ".join(
                f"{'.'.join(str(part) for part in e['loc'])}: {e['msg']}" for e in err.errors()
            )
            raise ConfigurationError(
                f"Invalid parameters for {model_class.key}: {details}", fields=fields
            ) from err

    params.check()
    return params
