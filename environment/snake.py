"""Deterministic snake episode: movement, growth, collisions and vision."""

from __future__ import annotations

import enum
import math
from collections import Counter, deque
from dataclasses import dataclass

import numpy as np

from environment.base import Episode, EpisodeState
from environment.geometry import Direction, Point, add, relative_axes

VISION_RAYS = 7
VISION_FEATURES = 3
VISION_SIZE = VISION_RAYS * VISION_FEATURES

_PLACEMENT_ATTEMPTS = 32


class IllegalMoveError(ValueError):
    """Raised when a move would reverse the snake onto its own neck."""


class TileState(str, enum.Enum):
    """Contents of a single field cell."""

    EMPTY = "empty"
    APPLE = "apple"
    SNAKE = "snake"
    VOID = "void"


@dataclass(frozen=True)
class SnakeRules:
    """Immutable rule set shared by every episode of an experiment."""

    field_width: int = 21
    field_height: int = 21
    grow_length: int = 5
    start_length: int = 10
    max_turns: int = 21 * 21

    def __post_init__(self) -> None:
        if self.field_width < 3 or self.field_height < 3:
            raise ValueError("field_width and field_height must be >= 3")
        if self.grow_length < 0:
            raise ValueError("grow_length must be >= 0")
        if self.start_length < 1:
            raise ValueError("start_length must be >= 1")
        if self.start_length > self.field_width // 2 + 1:
            raise ValueError("start_length must fit between the left wall and the field centre")
        if self.max_turns < 1:
            raise ValueError("max_turns must be >= 1")

    @property
    def center(self) -> Point:
        return (self.field_width // 2, self.field_height // 2)


class SnakeGame(Episode):
    """Single snake game instance driven one move at a time.

    The body is a FIFO queue (oldest cell first). Each move enqueues the new
    head and dequeues from the tail until the body is no longer than the target
    length, so growth after an apple happens one cell per turn.
    """

    def __init__(self, rules: SnakeRules, rng: np.random.Generator) -> None:
        self.rules = rules
        self.rng = rng
        self._body: deque[Point] = deque()
        self._occupied: Counter[Point] = Counter()
        self._apple: Point | None = None
        self._heading = Direction.RIGHT
        self._alive = True
        self.apples_eaten = 0
        self.target_length = rules.start_length
        self.total_turns = 0
        self.turns_since_eating = 0
        self.reset()

    # -- lifecycle ---------------------------------------------------------

    def reset(self) -> None:
        head_x, head_y = self.rules.center
        self._body.clear()
        self._occupied.clear()
        for offset in range(self.rules.start_length - 1, -1, -1):
            self._push((head_x - offset, head_y))

        self._heading = Direction.RIGHT
        self._alive = True
        self.apples_eaten = 0
        self.target_length = self.rules.start_length
        self.total_turns = 0
        self.turns_since_eating = 0
        self._apple = self._random_free_cell()

    @property
    def state(self) -> EpisodeState:
        if not self._alive:
            return EpisodeState.DEAD
        if self.turns_since_eating >= self.rules.max_turns:
            return EpisodeState.TIMED_OUT
        return EpisodeState.ALIVE

    @property
    def score(self) -> int:
        return self.apples_eaten

    # -- read-only views ---------------------------------------------------

    @property
    def alive(self) -> bool:
        return self._alive

    @property
    def apple(self) -> Point | None:
        return self._apple

    @property
    def head(self) -> Point:
        return self._body[-1]

    @property
    def heading(self) -> Direction:
        return self._heading

    @property
    def snake(self) -> tuple[Point, ...]:
        """Body cells, oldest (tail) first."""
        return tuple(self._body)

    def in_bounds(self, point: Point) -> bool:
        x, y = point
        return 0 <= x < self.rules.field_width and 0 <= y < self.rules.field_height

    def tile(self, point: Point) -> TileState:
        if point == self._apple:
            return TileState.APPLE
        if not self.in_bounds(point):
            return TileState.VOID
        if self._occupied[point] > 0:
            return TileState.SNAKE
        return TileState.EMPTY

    # -- transitions -------------------------------------------------------

    def place_apple(self, point: Point) -> None:
        """Move the apple to ``point``; used to stage deterministic scenarios."""
        if not self.in_bounds(point) or self._occupied[point] > 0:
            raise ValueError(f"Apple must be placed on a free in-bounds cell, got {point}.")
        self._apple = point

    def is_legal_move(self, direction: Direction) -> bool:
        """The only illegal move is a 180 degree reversal."""
        return direction is not self._heading.opposite

    def move(self, direction: Direction) -> None:
        if not self.is_legal_move(direction):
            raise IllegalMoveError(f"Cannot reverse from {self._heading.value} to {direction.value}.")
        if self.is_terminal:
            return

        new_head = add(self.head, direction.vector)
        self.total_turns += 1
        self.turns_since_eating += 1

        ate = False
        tile = self.tile(new_head)
        if tile is TileState.APPLE:
            ate = True
            self.apples_eaten += 1
            self.target_length += self.rules.grow_length
            self.turns_since_eating = 0
        elif tile in {TileState.SNAKE, TileState.VOID}:
            self._alive = False

        self._push(new_head)
        while len(self._body) > self.target_length:
            self._pop_tail()

        self._heading = direction
        if ate:
            self._apple = self._random_free_cell()

    # -- sensing -----------------------------------------------------------

    def observe(self) -> list[float]:
        return self.vision()

    def vision(self) -> list[float]:
        """Ray-cast proximities (apple, snake, wall) along seven relative rays.

        Straight behind is not sampled. Values are ``sqrt(1 / distance)`` for
        the first hit of each kind, 0.0 when nothing was seen.
        """
        forward, left, right, behind = relative_axes(self._heading)
        rays = (
            forward,
            add(forward, left),
            left,
            add(behind, left),
            add(forward, right),
            right,
            add(behind, right),
        )
        values: list[float] = []
        for ray in rays:
            values.extend(self._look(ray))
        return values

    def _look(self, step: Point) -> tuple[float, float, float]:
        apple = snake = 0.0
        position = self.head
        distance = 0
        while True:
            position = add(position, step)
            distance += 1
            if position == self._apple:
                apple = math.sqrt(1.0 / distance)
                continue
            if not self.in_bounds(position):
                return apple, snake, math.sqrt(1.0 / distance)
            if snake == 0.0 and self._occupied[position] > 0:
                snake = math.sqrt(1.0 / distance)

    # -- internals ---------------------------------------------------------

    def _push(self, point: Point) -> None:
        self._body.append(point)
        self._occupied[point] += 1

    def _pop_tail(self) -> None:
        tail = self._body.popleft()
        self._occupied[tail] -= 1
        if self._occupied[tail] <= 0:
            del self._occupied[tail]

    def _random_free_cell(self) -> Point | None:
        width, height = self.rules.field_width, self.rules.field_height
        for _ in range(_PLACEMENT_ATTEMPTS):
            candidate = (int(self.rng.integers(width)), int(self.rng.integers(height)))
            if self._occupied[candidate] == 0:
                return candidate

        free = [
            (x, y)
            for y in range(height)
            for x in range(width)
            if self._occupied[(x, y)] == 0
        ]
        if not free:
            return None
        return free[int(self.rng.integers(len(free)))]
