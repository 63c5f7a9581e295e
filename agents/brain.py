"""Fixed-topology feed-forward network used as the snake policy genome."""

from __future__ import annotations

import enum
from dataclasses import dataclass

import numpy as np

from agents.genome import BreedingMode, Genome

LEAK = 0.01
SEED_STDDEV = 0.2


class DimensionMismatchError(ValueError):
    """Raised when two brains with different topologies are bred."""


class ProvenanceTag(enum.IntEnum):
    """How a brain came to exist. Values are persisted in brain records."""

    SEED = 0
    MUTATED_CLONE = 1
    CROSSOVER_BLEND = 2
    CROSSOVER_MIX = 3


class WeightInit(str, enum.Enum):
    """Distribution used for freshly seeded weights."""

    NORMAL = "normal"
    UNIFORM = "uniform"


@dataclass(frozen=True)
class Activations:
    """Layer values from one forward pass, kept for introspection only."""

    inputs: np.ndarray
    hidden: np.ndarray
    output: np.ndarray


def leaky_relu(values: np.ndarray) -> np.ndarray:
    return np.where(values >= 0.0, values, LEAK * values)


class Brain(Genome):
    """Two-layer perceptron: ``leaky_relu(leaky_relu(x @ W1 + B1) @ W2 + B2)``.

    Weights are stored as float64 arrays: ``w1`` (input x hidden), ``b1``
    (hidden), ``w2`` (hidden x output) and ``b2`` (output).
    """

    def __init__(
        self,
        w1: np.ndarray,
        b1: np.ndarray,
        w2: np.ndarray,
        b2: np.ndarray,
        provenance: ProvenanceTag = ProvenanceTag.SEED,
    ) -> None:
        self.w1 = np.array(w1, dtype=np.float64)
        self.b1 = np.array(b1, dtype=np.float64).reshape(-1)
        self.w2 = np.array(w2, dtype=np.float64)
        self.b2 = np.array(b2, dtype=np.float64).reshape(-1)
        self.provenance = ProvenanceTag(provenance)

        if self.w1.ndim != 2 or self.w2.ndim != 2:
            raise ValueError("Weight matrices must be two-dimensional.")
        input_size, hidden_size = self.w1.shape
        if min(input_size, hidden_size, self.w2.shape[1]) <= 0:
            raise ValueError("Brain layer sizes must be positive.")
        if self.w2.shape[0] != hidden_size or self.b1.shape != (hidden_size,):
            raise ValueError("Hidden layer shapes are inconsistent.")
        if self.b2.shape != (self.w2.shape[1],):
            raise ValueError("Output bias shape does not match output size.")

    @classmethod
    def random(
        cls,
        input_size: int,
        hidden_size: int,
        output_size: int,
        rng: np.random.Generator,
        init: WeightInit | str = WeightInit.NORMAL,
    ) -> "Brain":
        """Build a seed brain with randomly drawn weights."""
        if min(input_size, hidden_size, output_size) <= 0:
            raise ValueError("Brain layer sizes must be positive.")
        init = WeightInit(init)

        def draw(*shape: int) -> np.ndarray:
            if init is WeightInit.UNIFORM:
                return rng.uniform(-1.0, 1.0, size=shape)
            return rng.normal(0.0, SEED_STDDEV, size=shape)

        return cls(
            w1=draw(input_size, hidden_size),
            b1=draw(hidden_size),
            w2=draw(hidden_size, output_size),
            b2=draw(output_size),
            provenance=ProvenanceTag.SEED,
        )

    @property
    def input_size(self) -> int:
        return int(self.w1.shape[0])

    @property
    def hidden_size(self) -> int:
        return int(self.w1.shape[1])

    @property
    def output_size(self) -> int:
        return int(self.w2.shape[1])

    @property
    def shape(self) -> tuple[int, int, int]:
        return (self.input_size, self.hidden_size, self.output_size)

    @property
    def parameter_count(self) -> int:
        return int(self.w1.size + self.b1.size + self.w2.size + self.b2.size)

    def parameters(self) -> np.ndarray:
        """Flat copy of every weight and bias, in mutation order."""
        return np.concatenate([self.b1, self.b2, self.w1.ravel(), self.w2.ravel()])

    def _arrays(self) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        return (self.b1, self.b2, self.w1, self.w2)

    # -- forward pass ------------------------------------------------------

    def forward(self, inputs: np.ndarray | list[float]) -> Activations:
        values = np.asarray(inputs, dtype=np.float64).reshape(-1)
        if values.shape != (self.input_size,):
            raise ValueError(f"Expected {self.input_size} inputs, got {values.size}.")
        hidden = leaky_relu(values @ self.w1 + self.b1)
        output = leaky_relu(hidden @ self.w2 + self.b2)
        return Activations(inputs=values, hidden=hidden, output=output)

    def compute(self, inputs: np.ndarray | list[float]) -> np.ndarray:
        return self.forward(inputs).output

    # -- genetic operators -------------------------------------------------

    def clone(self) -> "Brain":
        return Brain(
            w1=self.w1.copy(),
            b1=self.b1.copy(),
            w2=self.w2.copy(),
            b2=self.b2.copy(),
            provenance=ProvenanceTag.MUTATED_CLONE,
        )

    def crossover(self, other: Genome, mode: BreedingMode, rng: np.random.Generator) -> "Brain":
        if not isinstance(other, Brain):
            raise TypeError("Brain crossover requires another Brain.")
        if self.shape != other.shape:
            raise DimensionMismatchError(f"Cannot breed brain {self.shape} with brain {other.shape}.")

        mode = BreedingMode(mode)
        if mode is BreedingMode.BLEND:
            combine = _blend
            provenance = ProvenanceTag.CROSSOVER_BLEND
        else:
            combine = _mixer(rng)
            provenance = ProvenanceTag.CROSSOVER_MIX

        return Brain(
            w1=combine(self.w1, other.w1),
            b1=combine(self.b1, other.b1),
            w2=combine(self.w2, other.w2),
            b2=combine(self.b2, other.b2),
            provenance=provenance,
        )

    def mutate(self, rate: float, rng: np.random.Generator) -> None:
        effective_rate = float(rng.random()) * float(rate)
        for array in self._arrays():
            selected = rng.random(array.shape) < effective_rate
            if not selected.any():
                continue
            method = rng.integers(0, 4, size=array.shape)
            jitter = rng.uniform(-0.2, 0.2, size=array.shape)
            replacement = rng.uniform(-1.0, 1.0, size=array.shape)
            scale = rng.uniform(0.8, 1.2, size=array.shape)

            perturbed = np.select(
                [method == 0, method == 1, method == 2],
                [array + jitter, replacement, array * scale],
                default=-array,
            )
            array[selected] = np.clip(perturbed[selected], -1.0, 1.0)

    def distance(self, other: Genome) -> float:
        """Mean absolute difference over all weights and biases."""
        if not isinstance(other, Brain):
            raise TypeError("Brain distance requires another Brain.")
        if self.shape != other.shape:
            raise DimensionMismatchError(f"Cannot compare brain {self.shape} with brain {other.shape}.")
        return float(np.mean(np.abs(self.parameters() - other.parameters())))


def _blend(left: np.ndarray, right: np.ndarray) -> np.ndarray:
    return left * 0.5 + right * 0.5


def _mixer(rng: np.random.Generator):
    def mix(left: np.ndarray, right: np.ndarray) -> np.ndarray:
        take_left = rng.random(left.shape) < 0.5
        return np.where(take_left, left, right)

    return mix
