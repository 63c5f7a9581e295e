"""Population of evolved snake agents: evaluation, bookkeeping, replacement."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Sequence

import numpy as np

from agents.controller import play_episode
from agents.snake_agent import SnakeAgent
from core.deterministic_rng import DeterministicRNG
from environment.snake import SnakeGame, SnakeRules
from evolution.base import EvolutionStrategy

LOGGER = logging.getLogger(__name__)

FitnessAggregator = Callable[[Sequence[int]], float]
AgentFactory = Callable[[np.random.Generator], SnakeAgent]
GameFactory = Callable[[np.random.Generator], SnakeGame]


def sum_fitness(apples: Sequence[int]) -> float:
    return float(sum(apples))


def max_fitness(apples: Sequence[int]) -> float:
    return float(max(apples)) if apples else 0.0


@dataclass
class ScoredAgent:
    agent: SnakeAgent
    score: float = 0.0


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of one evaluate-then-replace cycle."""

    generation: int
    scores: list[float]
    best_score: float
    best_species: str
    survivors: int
    mutation_ratio: float


class Population:
    """Fixed-size population evaluated over a batch of episodes per agent.

    Each agent plays with its own generator derived from ``(generation,
    index)``, so results are reproducible whether evaluation runs sequentially
    or on a thread pool.
    """

    def __init__(
        self,
        rules: SnakeRules,
        strategy: EvolutionStrategy,
        rng: DeterministicRNG,
        population_size: int = 100,
        games_per_generation: int = 100,
        agent_factory: AgentFactory | None = None,
        game_factory: GameFactory | None = None,
        fitness: FitnessAggregator = sum_fitness,
        workers: int = 1,
    ) -> None:
        if population_size <= 0:
            raise ValueError("population_size must be > 0")
        if games_per_generation <= 0:
            raise ValueError("games_per_generation must be > 0")

        self.rules = rules
        self.strategy = strategy
        self.rng = rng
        self.population_size = int(population_size)
        self.games_per_generation = int(games_per_generation)
        self.agent_factory: AgentFactory = agent_factory or (lambda seed_rng: SnakeAgent.create(seed_rng))
        self.game_factory: GameFactory = game_factory or (lambda game_rng: SnakeGame(self.rules, game_rng))
        self.fitness = fitness
        self.workers = max(1, int(workers))

        self.generation = 0
        self._entries: list[ScoredAgent] = []
        # Evaluated entries of the generation most recently replaced, best first.
        self.last_ranked: list[ScoredAgent] = []
        self._best_lock = threading.Lock()
        self.best_agent: SnakeAgent | None = None
        self.best_score = 0.0
        self._best_index = 0
        self._best_generation = 0

    # -- setup -------------------------------------------------------------

    def initialize(self) -> None:
        """Seed the population with fresh, initialized agents."""
        seeding_rng = self.rng.stream("seeding")
        self._adopt([self.agent_factory(seeding_rng) for _ in range(self.population_size)])

    def seed(self, agents: Sequence[SnakeAgent]) -> None:
        """Adopt externally built agents; the population size follows them."""
        if not agents:
            raise ValueError("Cannot seed a population with no agents.")
        seeding_rng = self.rng.stream("seeding")
        for agent in agents:
            agent.initialize(seeding_rng)
        if len(agents) != self.population_size:
            LOGGER.info("Population size set to %d by seeded agents", len(agents))
        self.population_size = len(agents)
        self._adopt(list(agents))

    def _adopt(self, agents: list[SnakeAgent]) -> None:
        self._entries = [ScoredAgent(agent=agent) for agent in agents]
        self.best_agent = agents[0]
        self.best_score = 0.0
        self._best_index = 0
        self._best_generation = self.generation

    # -- views -------------------------------------------------------------

    @property
    def agents(self) -> list[SnakeAgent]:
        return [entry.agent for entry in self._entries]

    @property
    def scores(self) -> list[float]:
        return [entry.score for entry in self._entries]

    @property
    def best_species(self) -> str:
        return self.best_agent.species_name if self.best_agent is not None else ""

    def players(self) -> list[tuple[SnakeAgent, float]]:
        """Independent clones of every agent with their current scores."""
        return [(entry.agent.clone(), entry.score) for entry in self._entries]

    def ranked(self) -> list[ScoredAgent]:
        return sorted(self._entries, key=lambda entry: entry.score, reverse=True)

    def last_players(self) -> list[tuple[SnakeAgent, float]]:
        """Clones of the last evaluated generation with the scores it earned.

        Falls back to :meth:`players` before any generation has been replaced.
        """
        if not self.last_ranked:
            return self.players()
        return [(entry.agent.clone(), entry.score) for entry in self.last_ranked]

    # -- generation cycle --------------------------------------------------

    def evaluate(self) -> list[float]:
        """Play every agent's batch of episodes and return the scores."""
        if not self._entries:
            raise RuntimeError("Population has not been initialized.")
        for entry in self._entries:
            entry.score = 0.0

        indices = range(len(self._entries))
        if self.workers > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                list(pool.map(self._evaluate_agent, indices))
        else:
            for index in indices:
                self._evaluate_agent(index)
        return self.scores

    def _evaluate_agent(self, index: int) -> None:
        entry = self._entries[index]
        agent_rng = self.rng.derive(f"generation:{self.generation}:agent:{index}")
        apples = [
            play_episode(entry.agent, self.game_factory(agent_rng), agent_rng)
            for _ in range(self.games_per_generation)
        ]
        entry.score = self.fitness(apples)
        self._record_best(index, entry)

    def _record_best(self, index: int, entry: ScoredAgent) -> None:
        with self._best_lock:
            improved = entry.score > self.best_score
            # Equal scores in the same generation resolve to the lowest index.
            tie_won = (
                entry.score == self.best_score
                and self._best_generation == self.generation
                and index < self._best_index
            )
            if improved or tie_won:
                self.best_agent = entry.agent
                self.best_score = entry.score
                self._best_index = index
                self._best_generation = self.generation

    def advance(self) -> list[SnakeAgent]:
        """Replace the population using the strategy, then shuffle and reset."""
        agents = self.agents
        next_agents = self.strategy.evolve(agents, self.scores, self.rng.stream("selection"))
        if len(next_agents) != self.population_size:
            raise ValueError("Evolution strategy must preserve population size.")

        self.last_ranked = [ScoredAgent(agent=entry.agent, score=entry.score) for entry in self.ranked()]
        order = self.rng.stream("shuffle").permutation(len(next_agents))
        self._entries = [ScoredAgent(agent=next_agents[int(position)]) for position in order]
        self.generation += 1
        return self.agents

    def run_generation(self) -> GenerationResult:
        scores = self.evaluate()
        generation = self.generation
        self.advance()
        result = GenerationResult(
            generation=generation,
            scores=scores,
            best_score=self.best_score,
            best_species=self.best_species,
            survivors=len(self.strategy.last_parents),
            mutation_ratio=float(self.strategy.last_mutation_ratio),
        )
        LOGGER.debug(
            "Generation %d: max=%.1f best_ever=%.1f (%s) survivors=%d",
            generation,
            max(scores) if scores else 0.0,
            result.best_score,
            result.best_species,
            result.survivors,
        )
        return result
