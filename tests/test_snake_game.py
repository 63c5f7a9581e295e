"""Tests for snake episode movement, growth, collisions and termination."""

from __future__ import annotations

import numpy as np
import pytest

from environment.base import EpisodeState
from environment.geometry import Direction, RelativeMove
from environment.snake import IllegalMoveError, SnakeGame, SnakeRules, TileState


def _game(**rules) -> SnakeGame:
    return SnakeGame(SnakeRules(**rules), np.random.default_rng(0))


def test_reset_places_horizontal_body_with_head_at_center() -> None:
    game = _game(start_length=4)

    assert game.head == (10, 10)
    assert game.snake == ((7, 10), (8, 10), (9, 10), (10, 10))
    assert game.heading is Direction.RIGHT
    assert game.state is EpisodeState.ALIVE
    assert game.apple is not None
    assert game.tile(game.apple) is TileState.APPLE
    assert game.apple not in game.snake


def test_eating_apple_straight_ahead_resets_hunger_and_grows_gradually() -> None:
    game = _game(start_length=10, grow_length=3)
    game.place_apple((11, 10))

    game.move(Direction.RIGHT)

    assert game.apples_eaten == 1
    assert len(game.snake) == 11
    assert game.target_length == 13
    assert game.turns_since_eating == 0
    assert game.score == 1
    assert game.apple != (11, 10)


def test_body_is_fifo_and_reaches_grown_length() -> None:
    game = _game(start_length=3, grow_length=2)

    for _ in range(2):
        game.place_apple((game.head[0] + 1, 10))
        game.move(Direction.RIGHT)
    game.place_apple((0, 0))
    for _ in range(4):
        game.move(Direction.RIGHT)

    assert game.apples_eaten == 2
    assert len(game.snake) == 3 + 2 * 2
    assert game.snake == tuple((x, 10) for x in range(10, 17))
    assert game.snake[0] == (10, 10)


def test_reversal_is_the_only_illegal_move_for_every_heading() -> None:
    game = _game(start_length=1)
    game.place_apple((0, 0))

    for heading in (Direction.RIGHT, Direction.UP, Direction.LEFT, Direction.DOWN):
        if game.heading is not heading:
            game.move(heading)
        assert game.heading is heading
        for direction in Direction:
            assert game.is_legal_move(direction) is (direction is not heading.opposite)
        assert game.alive


def test_reversal_raises_and_leaves_state_untouched() -> None:
    game = _game(start_length=5)
    before = game.snake

    with pytest.raises(IllegalMoveError, match="reverse"):
        game.move(Direction.LEFT)

    assert game.snake == before
    assert game.total_turns == 0


def test_hitting_the_wall_kills_the_snake() -> None:
    game = _game(field_width=5, field_height=5, start_length=1, max_turns=25)
    game.place_apple((0, 0))

    game.move(Direction.RIGHT)
    game.move(Direction.RIGHT)
    assert game.alive
    game.move(Direction.RIGHT)

    assert game.state is EpisodeState.DEAD
    assert game.is_terminal
    assert game.head == (5, 2)


def test_running_into_own_body_kills_the_snake() -> None:
    game = _game(start_length=10)
    game.place_apple((20, 20))

    game.move(Direction.UP)
    game.move(Direction.LEFT)
    game.move(Direction.DOWN)

    assert game.state is EpisodeState.DEAD


def test_hunger_limit_times_out_and_later_moves_are_ignored() -> None:
    game = _game(start_length=1, max_turns=3)
    game.place_apple((0, 0))

    for _ in range(3):
        game.move(Direction.RIGHT)
    assert game.state is EpisodeState.TIMED_OUT

    game.move(Direction.RIGHT)
    assert game.total_turns == 3
    assert game.head == (13, 10)


def test_place_apple_rejects_occupied_or_outside_cells() -> None:
    game = _game(start_length=3)

    with pytest.raises(ValueError, match="free in-bounds"):
        game.place_apple(game.head)
    with pytest.raises(ValueError, match="free in-bounds"):
        game.place_apple((-1, 0))


def test_reset_restores_initial_state() -> None:
    game = _game(start_length=3)
    game.place_apple((11, 10))
    game.move(Direction.RIGHT)
    game.move(Direction.UP)

    game.reset()

    assert game.apples_eaten == 0
    assert game.total_turns == 0
    assert game.target_length == 3
    assert game.snake == ((8, 10), (9, 10), (10, 10))


def test_rules_validate_dimensions() -> None:
    with pytest.raises(ValueError, match="start_length"):
        SnakeRules(field_width=9, field_height=9, start_length=6)
    with pytest.raises(ValueError, match="max_turns"):
        SnakeRules(max_turns=0)


def test_relative_moves_resolve_against_heading() -> None:
    assert RelativeMove.STRAIGHT.resolve(Direction.UP) is Direction.UP
    assert RelativeMove.LEFT.resolve(Direction.RIGHT) is Direction.UP
    assert RelativeMove.RIGHT.resolve(Direction.RIGHT) is Direction.DOWN
    for heading in Direction:
        assert heading.turn_left().turn_right() is heading
        assert heading.turn_left().turn_left() is heading.opposite
