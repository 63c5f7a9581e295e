"""Grid directions and relative turning helpers for the snake field."""

from __future__ import annotations

import enum

Point = tuple[int, int]


class Direction(str, enum.Enum):
    """Absolute movement directions. ``y`` grows downward."""

    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"

    @property
    def vector(self) -> Point:
        return _VECTORS[self]

    @property
    def opposite(self) -> "Direction":
        return _OPPOSITES[self]

    def turn_left(self) -> "Direction":
        """Rotate 90 degrees counter-clockwise as seen on screen."""
        return _LEFT_TURNS[self]

    def turn_right(self) -> "Direction":
        """Rotate 90 degrees clockwise as seen on screen."""
        return _RIGHT_TURNS[self]


class RelativeMove(enum.IntEnum):
    """Brain output slots, relative to the current heading."""

    STRAIGHT = 0
    LEFT = 1
    RIGHT = 2

    def resolve(self, heading: Direction) -> Direction:
        if self is RelativeMove.LEFT:
            return heading.turn_left()
        if self is RelativeMove.RIGHT:
            return heading.turn_right()
        return heading


_VECTORS: dict[Direction, Point] = {
    Direction.UP: (0, -1),
    Direction.DOWN: (0, 1),
    Direction.LEFT: (-1, 0),
    Direction.RIGHT: (1, 0),
}

_OPPOSITES: dict[Direction, Direction] = {
    Direction.UP: Direction.DOWN,
    Direction.DOWN: Direction.UP,
    Direction.LEFT: Direction.RIGHT,
    Direction.RIGHT: Direction.LEFT,
}

_LEFT_TURNS: dict[Direction, Direction] = {
    Direction.UP: Direction.LEFT,
    Direction.LEFT: Direction.DOWN,
    Direction.DOWN: Direction.RIGHT,
    Direction.RIGHT: Direction.UP,
}

_RIGHT_TURNS: dict[Direction, Direction] = {value: key for key, value in _LEFT_TURNS.items()}


def add(point: Point, offset: Point) -> Point:
    return (point[0] + offset[0], point[1] + offset[1])


def relative_axes(heading: Direction) -> tuple[Point, Point, Point, Point]:
    """Return ``(forward, left, right, behind)`` unit vectors for ``heading``."""
    fx, fy = heading.vector
    return (fx, fy), (fy, -fx), (-fy, fx), (-fx, -fy)
