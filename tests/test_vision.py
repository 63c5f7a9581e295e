"""Tests for ray-cast vision features."""

from __future__ import annotations

import math

import numpy as np

from environment.geometry import Direction
from environment.snake import VISION_SIZE, SnakeGame, SnakeRules

FORWARD_APPLE = 0
FORWARD_WALL = 2


def _lone_head() -> SnakeGame:
    game = SnakeGame(SnakeRules(start_length=1), np.random.default_rng(1))
    game.place_apple((0, 0))
    return game


def test_vision_has_three_features_per_ray() -> None:
    game = _lone_head()
    vision = game.observe()

    assert len(vision) == VISION_SIZE == 21
    assert all(0.0 <= value <= 1.0 for value in vision)


def test_walls_are_reported_at_inverse_square_root_distance() -> None:
    game = _lone_head()
    vision = game.vision()

    assert vision[FORWARD_WALL] == math.sqrt(1.0 / 11)
    # left of RIGHT is UP: rows 9..0 then the wall
    assert vision[2 * 3 + 2] == math.sqrt(1.0 / 11)


def test_apple_proximity_strictly_decreases_with_distance() -> None:
    game = _lone_head()
    readings = []
    for x in range(11, 20):
        game.place_apple((x, 10))
        readings.append(game.vision()[FORWARD_APPLE])

    assert readings[0] == 1.0
    assert all(near > far for near, far in zip(readings, readings[1:]))


def test_ray_continues_past_apple_to_the_wall() -> None:
    game = _lone_head()
    game.place_apple((13, 10))
    vision = game.vision()

    assert vision[FORWARD_APPLE] == math.sqrt(1.0 / 3)
    assert vision[FORWARD_WALL] == math.sqrt(1.0 / 11)


def test_body_is_seen_along_diagonal_ray() -> None:
    game = SnakeGame(SnakeRules(start_length=10), np.random.default_rng(2))
    game.place_apple((20, 20))
    game.move(Direction.UP)

    vision = game.vision()

    # behind-left of UP points down-left onto the old body row
    assert vision[3 * 3 + 1] == 1.0
    # straight ahead is clear
    assert vision[1] == 0.0


def test_body_proximity_drops_as_the_segment_moves_away() -> None:
    game = SnakeGame(SnakeRules(start_length=10), np.random.default_rng(2))
    game.place_apple((20, 20))
    readings = []
    for _ in range(4):
        game.move(Direction.UP)
        # the nearest body cell on the behind-left ray is one step farther each move
        readings.append(game.vision()[3 * 3 + 1])

    assert readings[0] == 1.0
    assert all(near > far > 0.0 for near, far in zip(readings, readings[1:]))
