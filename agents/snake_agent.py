"""Evolved snake player: brain ownership, lineage tags and move selection."""

from __future__ import annotations

import itertools
import string
import threading
import uuid

import numpy as np

from agents.brain import Brain, ProvenanceTag, WeightInit
from agents.genome import BreedingMode
from environment.geometry import Direction, RelativeMove
from environment.snake import VISION_SIZE, SnakeGame

INPUT_SIZE = 1 + VISION_SIZE
HIDDEN_SIZE = 18
OUTPUT_SIZE = len(RelativeMove)

SPECIES_NAME_LENGTH = 8
SPECIES_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase
INDECISION_THRESHOLD = 0.001

_id_counter = itertools.count(1)
_id_lock = threading.Lock()


def next_agent_id() -> int:
    with _id_lock:
        return next(_id_counter)


def generate_species_name(rng: np.random.Generator) -> str:
    indices = rng.integers(0, len(SPECIES_ALPHABET), size=SPECIES_NAME_LENGTH)
    return "".join(SPECIES_ALPHABET[int(index)] for index in indices)


class SnakeAgent:
    """Policy wrapper around an exclusively owned :class:`Brain`.

    The agent remembers its last absolute heading so that the brain's relative
    outputs (straight, left, right) can be turned into a concrete direction.
    """

    def __init__(
        self,
        species_name: str,
        brain: Brain | None = None,
        name: str | None = None,
        hidden_size: int = HIDDEN_SIZE,
        weight_init: WeightInit | str = WeightInit.NORMAL,
        squared_turn_pressure: bool = False,
    ) -> None:
        self.agent_id = next_agent_id()
        self.name = name if name is not None else str(uuid.uuid4())
        self.species_name = species_name
        self.brain = brain
        self.hidden_size = int(hidden_size)
        self.weight_init = WeightInit(weight_init)
        self.squared_turn_pressure = bool(squared_turn_pressure)
        self.last_movement = Direction.RIGHT
        self.decision = np.zeros(OUTPUT_SIZE, dtype=np.float64)

    @classmethod
    def create(cls, rng: np.random.Generator, **kwargs) -> "SnakeAgent":
        """Build and initialize a brand-new agent with a fresh lineage."""
        agent = cls(species_name=generate_species_name(rng), **kwargs)
        agent.initialize(rng)
        return agent

    @property
    def is_initialized(self) -> bool:
        return self.brain is not None

    @property
    def provenance(self) -> ProvenanceTag | None:
        return self.brain.provenance if self.brain is not None else None

    def initialize(self, rng: np.random.Generator) -> None:
        """Seed the brain if absent. Re-initializing is a no-op."""
        if self.brain is not None:
            return
        self.brain = Brain.random(INPUT_SIZE, self.hidden_size, OUTPUT_SIZE, rng, init=self.weight_init)

    def _require_brain(self) -> Brain:
        if self.brain is None:
            raise RuntimeError(f"Agent {self.agent_id} has not been initialized.")
        return self.brain

    # -- lineage -----------------------------------------------------------

    def _offspring(self, brain: Brain, species_name: str) -> "SnakeAgent":
        return SnakeAgent(
            species_name=species_name,
            brain=brain,
            hidden_size=brain.hidden_size,
            weight_init=self.weight_init,
            squared_turn_pressure=self.squared_turn_pressure,
        )

    def clone(self) -> "SnakeAgent":
        """Asexual copy; the lineage tag is inherited."""
        return self._offspring(self._require_brain().clone(), self.species_name)

    def breed_with(self, other: "SnakeAgent", mode: BreedingMode, rng: np.random.Generator) -> "SnakeAgent":
        """Sexual offspring; the child starts a lineage of its own."""
        brain = self._require_brain().crossover(other._require_brain(), mode, rng)
        return self._offspring(brain, generate_species_name(rng))

    def mutate(self, rate: float, rng: np.random.Generator) -> None:
        self._require_brain().mutate(rate, rng)

    # -- decisions ---------------------------------------------------------

    def begin_episode(self, game: SnakeGame) -> None:
        """Align the remembered heading with a freshly reset game."""
        self.last_movement = game.heading

    def sense(self, game: SnakeGame) -> np.ndarray:
        pressure = game.turns_since_eating / game.rules.max_turns
        if self.squared_turn_pressure:
            pressure *= pressure
        return np.asarray([pressure, *game.vision()], dtype=np.float64)

    def get_movement(self, game: SnakeGame, rng: np.random.Generator) -> Direction:
        output = self._require_brain().compute(self.sense(game))
        self.decision = output.copy()

        if output.max() < 0.0:
            weights = output - output.min()
        else:
            weights = np.maximum(output, 0.0)

        total = float(weights.sum())
        options = list(RelativeMove)
        if total < INDECISION_THRESHOLD:
            choice = options[int(rng.integers(len(options)))]
        else:
            roll = float(rng.random()) * total
            running = 0.0
            choice = options[int(np.argmax(weights))]
            for option, weight in zip(options, weights):
                running += float(weight)
                if running > roll:
                    choice = option
                    break

        self.last_movement = choice.resolve(self.last_movement)
        return self.last_movement

    def __repr__(self) -> str:
        return f"SnakeAgent(id={self.agent_id}, species={self.species_name!r}, name={self.name!r})"
