"""Player controllers: a tagged variant over human and evolved players."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable

import numpy as np

from agents.snake_agent import SnakeAgent
from environment.geometry import Direction
from environment.snake import SnakeGame


class ControllerKind(str, enum.Enum):
    HUMAN = "human"
    EVOLVED = "evolved"


@dataclass
class PlayerController:
    """Either a human-steered player or an evolved agent.

    Human input arrives through :meth:`steer`; keyboard polling lives outside
    this package.
    """

    kind: ControllerKind
    agent: SnakeAgent | None = None
    desired: Direction = Direction.RIGHT

    @classmethod
    def human(cls) -> "PlayerController":
        return cls(kind=ControllerKind.HUMAN)

    @classmethod
    def evolved(cls, agent: SnakeAgent) -> "PlayerController":
        return cls(kind=ControllerKind.EVOLVED, agent=agent)

    @property
    def is_human(self) -> bool:
        return self.kind is ControllerKind.HUMAN

    def _require_agent(self) -> SnakeAgent:
        if self.agent is None:
            raise ValueError("Evolved controller has no agent.")
        return self.agent

    def initialize(self, rng: np.random.Generator) -> None:
        if self.is_human:
            self.desired = Direction.RIGHT
        else:
            self._require_agent().initialize(rng)

    def steer(self, direction: Direction) -> None:
        if not self.is_human:
            raise ValueError("Only human controllers can be steered.")
        self.desired = Direction(direction)

    def begin_episode(self, game: SnakeGame) -> None:
        if self.is_human:
            self.desired = game.heading
        else:
            self._require_agent().begin_episode(game)

    def get_movement(self, game: SnakeGame, rng: np.random.Generator) -> Direction:
        if self.is_human:
            # A reversal request is dropped; the snake keeps going.
            if not game.is_legal_move(self.desired):
                return game.heading
            return self.desired
        return self._require_agent().get_movement(game, rng)


StepCallback = Callable[[SnakeGame, Direction], None]


def play_episode(
    player: PlayerController | SnakeAgent,
    game: SnakeGame,
    rng: np.random.Generator,
    on_step: StepCallback | None = None,
) -> int:
    """Drive ``player`` until ``game`` is terminal and return apples eaten."""
    player.begin_episode(game)
    while not game.is_terminal:
        move = player.get_movement(game, rng)
        game.move(move)
        if on_step is not None:
            on_step(game, move)
    return game.apples_eaten
