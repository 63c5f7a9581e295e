"""Factories/registries for generation-stack components."""

from __future__ import annotations

from typing import Callable

from configs.loader import ExperimentConfig
from evolution.base import EvolutionStrategy
from evolution.ga import CrossoverStrategy, RankSurvivalStrategy
from evolution.population import FitnessAggregator, max_fitness, sum_fitness

EvolutionFactory = Callable[[ExperimentConfig], EvolutionStrategy]


_EVOLUTION_FACTORIES: dict[str, EvolutionFactory] = {}
_FITNESS_AGGREGATORS: dict[str, FitnessAggregator] = {}


def register_evolution_factory(name: str, factory: EvolutionFactory) -> None:
    _EVOLUTION_FACTORIES[str(name)] = factory


def register_fitness_aggregator(name: str, aggregator: FitnessAggregator) -> None:
    _FITNESS_AGGREGATORS[str(name)] = aggregator


def available_evolution_factories() -> list[str]:
    return sorted(_EVOLUTION_FACTORIES)


def available_fitness_aggregators() -> list[str]:
    return sorted(_FITNESS_AGGREGATORS)


def create_evolution(name: str, config: ExperimentConfig) -> EvolutionStrategy:
    factory = _EVOLUTION_FACTORIES.get(str(name))
    if factory is None:
        available = ", ".join(available_evolution_factories()) or "<none>"
        raise ValueError(f"Unknown evolution factory '{name}'. Available: {available}")
    return factory(config)


def get_fitness_aggregator(name: str) -> FitnessAggregator:
    aggregator = _FITNESS_AGGREGATORS.get(str(name))
    if aggregator is None:
        available = ", ".join(available_fitness_aggregators()) or "<none>"
        raise ValueError(f"Unknown fitness aggregator '{name}'. Available: {available}")
    return aggregator


def _clone_evolution_factory(config: ExperimentConfig) -> EvolutionStrategy:
    return RankSurvivalStrategy(mutation_rate=float(config.mutation_rate))


def _crossover_evolution_factory(config: ExperimentConfig) -> EvolutionStrategy:
    return CrossoverStrategy(
        mutation_rate=float(config.mutation_rate),
        breeding_mode=str(config.get("breeding_mode", "mix")),
    )


def _register_defaults() -> None:
    if _EVOLUTION_FACTORIES:
        return
    register_evolution_factory("clone", _clone_evolution_factory)
    register_evolution_factory("crossover", _crossover_evolution_factory)

    register_fitness_aggregator("sum", sum_fitness)
    register_fitness_aggregator("max", max_fitness)


_register_defaults()
