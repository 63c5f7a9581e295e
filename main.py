"""Simple training runner for local validation."""

from __future__ import annotations

from functools import partial
from pathlib import Path

import numpy as np

from agents.snake_agent import SnakeAgent
from configs.loader import ConfigLoader, ExperimentConfig
from core.deterministic_rng import DeterministicRNG
from data.logger import SimulationLogger
from data.seed_store import build_seeded_population, load_seed_agents, load_seed_document
from engine.component_registry import create_evolution, get_fitness_aggregator
from engine.simulator import Simulator, StopCondition
from evolution.population import Population


def _create_agent(config: ExperimentConfig, rng: np.random.Generator) -> SnakeAgent:
    return SnakeAgent.create(
        rng,
        hidden_size=int(config.get("hidden_size", 18)),
        weight_init=str(config.get("weight_init", "normal")),
        squared_turn_pressure=bool(config.get("squared_turn_pressure", False)),
    )


def _build_population(config: ExperimentConfig, rng: DeterministicRNG) -> Population:
    strategy_name = str(config.get("evolution_strategy", "clone"))
    population = Population(
        rules=config.rules(),
        strategy=create_evolution(strategy_name, config),
        rng=rng,
        population_size=config.population_size,
        games_per_generation=config.games_per_generation,
        agent_factory=partial(_create_agent, config),
        fitness=get_fitness_aggregator(str(config.get("fitness", "sum"))),
        workers=int(config.get("workers", 1)),
    )

    seed_file = config.get("seed_file")
    if seed_file is None:
        population.initialize()
        return population

    seeds = load_seed_agents(load_seed_document(seed_file))
    squared = bool(config.get("squared_turn_pressure", False))
    for seed in seeds:
        seed.squared_turn_pressure = squared
    population.seed(
        build_seeded_population(
            seeds,
            rng.stream("seed_document"),
            mutation_rate=config.mutation_rate,
            clones_per_seed=int(config.get("clones_per_seed", 9)),
            offspring_per_pair=int(config.get("offspring_per_pair", 5)),
            fresh_agents=int(config.get("fresh_agents", 20)),
            breeding_mode=str(config.get("breeding_mode", "mix")),
            agent_factory=partial(_create_agent, config),
        )
    )
    return population


def build_components(config: ExperimentConfig, logger: SimulationLogger | None = None) -> Simulator:
    """Build a simulator from experiment configuration."""
    rng = DeterministicRNG(config.seed)
    return Simulator(
        population=_build_population(config, rng),
        seed=config.seed,
        logger=logger,
        config=config.to_dict(),
    )


def early_stop(config: ExperimentConfig) -> StopCondition | None:
    """Stop condition for ``early_stop_best_score``, or None when unset."""
    threshold = config.get("early_stop_best_score", None)
    if threshold is None:
        return None
    limit = float(threshold)
    return lambda metrics: float(metrics.get("best_ever_score", 0.0)) >= limit


def main(config_path: str = "configs/example_experiment.yaml") -> None:
    """Load config, build components, and run the simulator."""
    config = ConfigLoader.load(config_path)
    logger = SimulationLogger(Path("simulation_metrics.db"))
    try:
        simulator = build_components(config=config, logger=logger)
        simulator.run(config.generations, stop_when=early_stop(config))
    finally:
        logger.close()


if __name__ == "__main__":
    main()
