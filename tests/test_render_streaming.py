"""Tests for render-state capture and JSON serialization."""

from __future__ import annotations

import json

import numpy as np
import pytest

from agents.snake_agent import SnakeAgent
from core.deterministic_rng import DeterministicRNG
from core.render_state import capture
from environment.geometry import Direction
from environment.snake import SnakeGame, SnakeRules
from evolution.ga import RankSurvivalStrategy
from evolution.population import Population
from streaming import state_serializer
from streaming.state_serializer import serialize_state, write_frames


def _game() -> SnakeGame:
    game = SnakeGame(SnakeRules(field_width=9, field_height=9, start_length=3), np.random.default_rng(0))
    game.place_apple((8, 8))
    return game


def test_capture_copies_game_agent_and_population() -> None:
    game = _game()
    agent = SnakeAgent.create(np.random.default_rng(1))
    population = Population(game.rules, RankSurvivalStrategy(), DeterministicRNG(2), population_size=2)
    population.initialize()

    frame = capture(game, agent, population, generation_index=3, step_index=1)
    game.move(Direction.UP)

    assert frame.game.snake == [(2, 4), (3, 4), (4, 4)]
    assert frame.game.heading == "right"
    assert frame.game.apple == (8, 8)
    assert frame.agent is not None and frame.agent.species == agent.species_name
    assert frame.agent.provenance == 0
    assert frame.population is not None and frame.population.generation == 0


def test_serialize_state_is_plain_sorted_json() -> None:
    frame = capture(_game())

    payload = json.loads(serialize_state(frame))

    assert payload["agent"] is None
    assert payload["game"]["snake"] == [[2, 4], [3, 4], [4, 4]]
    assert payload["game"]["state"] == "alive"
    assert serialize_state(frame) == serialize_state(frame)


def test_serializer_converts_enums_and_arrays() -> None:
    payload = json.loads(serialize_state({"heading": Direction.UP, "decision": np.array([0.5, 1.0])}))

    assert payload == {"heading": "up", "decision": [0.5, 1.0]}


def test_oversized_frames_are_rejected(monkeypatch) -> None:
    monkeypatch.setattr(state_serializer, "MAX_FRAME_BYTES", 10)

    with pytest.raises(ValueError, match="exceeds max size"):
        serialize_state(capture(_game()))


def test_write_frames_emits_one_line_per_frame(tmp_path) -> None:
    game = _game()
    frames = [capture(game, step_index=0)]
    game.move(Direction.RIGHT)
    frames.append(capture(game, step_index=1))

    count = write_frames(tmp_path / "out" / "frames.jsonl", frames)

    lines = (tmp_path / "out" / "frames.jsonl").read_text(encoding="utf-8").splitlines()
    assert count == 2
    assert [json.loads(line)["step_index"] for line in lines] == [0, 1]
