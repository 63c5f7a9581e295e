"""Rank-survival genetic algorithm with fitness-proportionate refill."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from agents.genome import BreedingMode
from agents.snake_agent import SnakeAgent
from evolution.base import EvolutionStrategy

ScoredParent = tuple[SnakeAgent, float]


def select_survivors(
    population: Sequence[SnakeAgent],
    fitness: Sequence[float],
    rng: np.random.Generator,
) -> list[ScoredParent]:
    """Cull by rank: the agent at rank ``i`` of ``N`` dies with chance ``i / N``.

    Rank 0 always survives, so the result is never empty for a non-empty
    population. Ties keep their population order.
    """
    if len(population) != len(fitness):
        raise ValueError("Population and fitness lengths must match.")

    count = len(population)
    ranked = sorted(range(count), key=lambda index: fitness[index], reverse=True)
    survivors: list[ScoredParent] = []
    for rank, index in enumerate(ranked):
        death_chance = rank / count
        if float(rng.random()) >= death_chance:
            survivors.append((population[index], float(fitness[index])))
    return survivors


def roulette_pick(parents: Sequence[ScoredParent], rng: np.random.Generator) -> SnakeAgent:
    """Pick a parent with probability proportional to its score.

    When every parent scored zero the pick is uniform.
    """
    if not parents:
        raise ValueError("Cannot pick from an empty parent pool.")
    total = sum(score for _, score in parents)
    if total <= 0.0:
        return parents[int(rng.integers(len(parents)))][0]

    roll = float(rng.random()) * total
    running = 0.0
    for agent, score in parents:
        running += score
        if running > roll:
            return agent
    return max(parents, key=lambda parent: parent[1])[0]


class RankSurvivalStrategy(EvolutionStrategy):
    """Survivors carry over unchanged; the rest are mutated clones of survivors."""

    def __init__(self, mutation_rate: float = 0.4) -> None:
        self.mutation_rate = mutation_rate
        self.last_parents: list[SnakeAgent] = []
        self.last_mutation_ratio: float = 0.0

    def evolve(
        self,
        population: Sequence[SnakeAgent],
        fitness: Sequence[float],
        rng: np.random.Generator,
    ) -> list[SnakeAgent]:
        if not population:
            self.last_parents = []
            return []

        parents = select_survivors(population, fitness, rng)
        self.last_parents = [agent for agent, _ in parents]
        next_population = list(self.last_parents)

        while len(next_population) < len(population):
            next_population.append(self._offspring(parents, rng))

        children = len(next_population) - len(parents)
        self.last_mutation_ratio = float(children) / float(len(next_population))
        return next_population

    def _offspring(self, parents: Sequence[ScoredParent], rng: np.random.Generator) -> SnakeAgent:
        child = roulette_pick(parents, rng).clone()
        child.mutate(self.mutation_rate, rng)
        return child


class CrossoverStrategy(RankSurvivalStrategy):
    """Older refill variant: children are bred from two roulette-picked parents."""

    def __init__(self, mutation_rate: float = 0.4, breeding_mode: BreedingMode | str = BreedingMode.MIX) -> None:
        super().__init__(mutation_rate=mutation_rate)
        self.breeding_mode = BreedingMode(breeding_mode)

    def _offspring(self, parents: Sequence[ScoredParent], rng: np.random.Generator) -> SnakeAgent:
        mother = roulette_pick(parents, rng)
        father = roulette_pick(parents, rng)
        child = mother.breed_with(father, self.breeding_mode, rng)
        child.mutate(self.mutation_rate, rng)
        return child
