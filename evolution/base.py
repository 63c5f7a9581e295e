"""Evolution strategy contracts."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np

from agents.snake_agent import SnakeAgent


class EvolutionStrategy(ABC):
    """Abstract interface for generational replacement algorithms.

    Strategies receive the evaluated population and return the members of the
    next generation. They never evaluate agents themselves.
    """

    last_parents: list[SnakeAgent]
    last_mutation_ratio: float

    @abstractmethod
    def evolve(
        self,
        population: Sequence[SnakeAgent],
        fitness: Sequence[float],
        rng: np.random.Generator,
    ) -> list[SnakeAgent]:
        """Generate the next population from current agents and fitness values.

        Args:
            population (Sequence[SnakeAgent]): Current generation agents.
            fitness (Sequence[float]): Fitness scores aligned by index with
                ``population``.
            rng (np.random.Generator): Random source for every draw.

        Returns:
            list[SnakeAgent]: Next generation population, unshuffled.

        Invariants:
            - Output population size must equal input population size.
            - Must not mutate input sequence containers in place.
            - Must not mutate the brains of surviving parents.
        """
