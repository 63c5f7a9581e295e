"""Genome contracts for evolutionary operators."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod

import numpy as np


class BreedingMode(str, enum.Enum):
    """How two parent genomes are combined into one child."""

    BLEND = "blend"
    MIX = "mix"


class Genome(ABC):
    """Abstract genome representation used by evolutionary strategies.

    Genomes are owned by exactly one agent. Cloning and crossover always build
    new genomes; mutation is applied in place to a genome the caller owns.
    Every random draw comes from the generator passed in by the caller.
    """

    @abstractmethod
    def clone(self) -> "Genome":
        """Return an independent deep copy of this genome.

        Invariants:
            - The copy shares no mutable storage with the original.
        """

    @abstractmethod
    def crossover(self, other: "Genome", mode: BreedingMode, rng: np.random.Generator) -> "Genome":
        """Create an offspring genome from this genome and ``other``.

        Args:
            other (Genome): The second parent genome.
            mode (BreedingMode): Element combination rule.
            rng (np.random.Generator): Random source for stochastic modes.

        Returns:
            Genome: A newly created offspring genome.

        Invariants:
            - Must not mutate either parent genome.
            - Must reject parents with incompatible shapes.
        """

    @abstractmethod
    def mutate(self, rate: float, rng: np.random.Generator) -> None:
        """Perturb this genome in place.

        Args:
            rate (float): Upper bound of the per-element mutation probability.
            rng (np.random.Generator): Random source for every draw.
        """

    @abstractmethod
    def distance(self, other: "Genome") -> float:
        """Measure distance between this genome and ``other``.

        Invariants:
            - Distance must be deterministic for equivalent inputs.
            - Distance must be non-negative.
        """
