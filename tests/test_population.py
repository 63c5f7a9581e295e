"""Tests for population evaluation, best-ever tracking and replacement."""

from __future__ import annotations

import numpy as np
import pytest

from agents.snake_agent import SnakeAgent
from core.deterministic_rng import DeterministicRNG
from environment.snake import SnakeRules
from evolution.ga import RankSurvivalStrategy
from evolution.population import Population, max_fitness, sum_fitness

SMALL_RULES = SnakeRules(field_width=9, field_height=9, grow_length=2, start_length=3, max_turns=40)


def _population(seed: int = 3, **kwargs) -> Population:
    options = {"population_size": 10, "games_per_generation": 1}
    options.update(kwargs)
    return Population(SMALL_RULES, RankSurvivalStrategy(mutation_rate=0.4), DeterministicRNG(seed), **options)


def test_single_scoring_agent_becomes_best_and_always_survives(monkeypatch) -> None:
    population = _population()
    population.initialize()
    star = population.agents[4]
    monkeypatch.setattr(
        "evolution.population.play_episode",
        lambda agent, game, rng: 5 if agent is star else 0,
    )

    result = population.run_generation()

    assert result.generation == 0
    assert result.scores[4] == 5.0
    assert result.best_score == 5.0
    assert result.best_species == star.species_name
    assert population.best_agent is star
    assert star in population.strategy.last_parents
    assert len(population.agents) == 10
    assert population.generation == 1


def test_equal_scores_keep_lowest_index_as_best(monkeypatch) -> None:
    population = _population()
    population.initialize()
    first, second = population.agents[2], population.agents[7]
    monkeypatch.setattr(
        "evolution.population.play_episode",
        lambda agent, game, rng: 3 if agent in (first, second) else 0,
    )

    population.evaluate()

    assert population.best_agent is first


def test_fitness_aggregators() -> None:
    assert sum_fitness([1, 0, 4]) == 5.0
    assert max_fitness([1, 0, 4]) == 4.0
    assert max_fitness([]) == 0.0


def test_evaluation_uses_configured_aggregator(monkeypatch) -> None:
    population = _population(games_per_generation=3, fitness=max_fitness)
    population.initialize()
    counter = iter(range(1000))
    monkeypatch.setattr("evolution.population.play_episode", lambda agent, game, rng: next(counter) % 3)

    scores = population.evaluate()

    assert all(score == 2.0 for score in scores)


def test_parallel_evaluation_matches_sequential() -> None:
    sequential = _population(seed=11, population_size=6, games_per_generation=3)
    parallel = _population(seed=11, population_size=6, games_per_generation=3, workers=4)
    sequential.initialize()
    parallel.initialize()

    assert sequential.evaluate() == parallel.evaluate()
    sequential.advance()
    parallel.advance()
    for left, right in zip(sequential.agents, parallel.agents):
        np.testing.assert_array_equal(left.brain.parameters(), right.brain.parameters())


def test_seed_adopts_agents_and_resizes() -> None:
    population = _population()
    rng = np.random.default_rng(0)
    agents = [SnakeAgent(species_name="SEEDSEED")] + [SnakeAgent.create(rng) for _ in range(3)]

    population.seed(agents)

    assert population.population_size == 4
    assert all(agent.is_initialized for agent in population.agents)


def test_players_are_independent_clones(monkeypatch) -> None:
    population = _population(population_size=3)
    population.initialize()
    monkeypatch.setattr("evolution.population.play_episode", lambda agent, game, rng: 1)
    population.evaluate()

    players = population.players()

    assert [score for _, score in players] == [1.0, 1.0, 1.0]
    assert all(clone is not agent for (clone, _), agent in zip(players, population.agents))
    assert population.ranked()[0].score == 1.0


def test_evaluate_requires_initialization() -> None:
    with pytest.raises(RuntimeError, match="not been initialized"):
        _population().evaluate()


def test_invalid_sizes_are_rejected() -> None:
    with pytest.raises(ValueError, match="population_size"):
        _population(population_size=0)
    with pytest.raises(ValueError, match="games_per_generation"):
        _population(games_per_generation=0)


def test_last_players_keep_the_scores_of_the_replaced_generation(monkeypatch) -> None:
    population = _population(population_size=5)
    population.initialize()
    evaluated = population.agents
    apples = {id(agent): index for index, agent in enumerate(evaluated)}
    monkeypatch.setattr("evolution.population.play_episode", lambda agent, game, rng: apples[id(agent)])

    assert all(score == 0.0 for _, score in population.last_players())

    population.run_generation()
    players = population.last_players()

    assert population.scores == [0.0] * 5
    assert [score for _, score in players] == [4.0, 3.0, 2.0, 1.0, 0.0]
    assert players[0][0] is not evaluated[4]
    assert players[0][0].brain.distance(evaluated[4].brain) == 0.0
    assert players[0][0].species_name == evaluated[4].species_name
