"""Population-update building blocks.

This package implements the per-generation mechanics:
- RandomVariate: Batched categorical, Bernoulli and Gumbel draws
- Population / PopulationSnapshot: Attribute table and frozen demonstrator pool
- Transmission policies: Unbiased, direct bias, conformist, demonstrator bias,
  critical learner, vertical/horizontal
- Mutation policies: Unbiased, biased, strategy, innovation
- FitnessModel / ClassReproduction: Rogers' paradox fitness and reproduction
- Environment / IndividualLearning: Changing environment and asocial learning
"""

from __future__ import annotations

from culturevo.evolution.fitness import ClassReproduction, FitnessModel
from culturevo.evolution.learning import Environment, IndividualLearning
from culturevo.evolution.mutation import (
    BiasedMutation,
    InnovationMutation,
    StrategyMutation,
    UnbiasedMutation,
)
from culturevo.evolution.population import (
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

__all__ = [
    "RandomVariate",
    "Population",
    "PopulationSnapshot",
    "AttributeSpec",
    "Strategy",
    "Status",
    "UnbiasedTransmission",
    "DirectBiasTransmission",
    "ConformistTransmission",
    "DemonstratorBiasTransmission",
    "CriticalLearnerTransmission",
    "VerticalTransmission",
    "HorizontalConformity",
    "UnbiasedMutation",
    "BiasedMutation",
    "StrategyMutation",
    "InnovationMutation",
    "FitnessModel",
    "ClassReproduction",
    "Environment",
    "IndividualLearning",
]
