"""Immutable render-state contracts for replay frames and visualization."""

from __future__ import annotations

import time
from dataclasses import dataclass

from agents.snake_agent import SnakeAgent
from environment.snake import SnakeGame
from evolution.population import Population


@dataclass(frozen=True)
class GameSnapshot:
    """Everything a renderer needs to draw one playing field."""

    field_width: int
    field_height: int
    apple: tuple[int, int] | None
    snake: list[tuple[int, int]]
    heading: str
    state: str
    apples_eaten: int
    total_turns: int


@dataclass(frozen=True)
class AgentSnapshot:
    agent_id: int
    name: str
    species: str
    provenance: int | None
    decision: list[float]


@dataclass(frozen=True)
class PopulationSnapshot:
    generation: int
    best_score: float
    best_species: str
    best_agent_id: int | None


@dataclass(frozen=True)
class RenderState:
    """Top-level immutable render frame."""

    generation_index: int
    step_index: int
    game: GameSnapshot
    agent: AgentSnapshot | None
    population: PopulationSnapshot | None
    timestamp: float


def capture(
    game: SnakeGame,
    agent: SnakeAgent | None = None,
    population: Population | None = None,
    generation_index: int = 0,
    step_index: int = 0,
) -> RenderState:
    """Copy the observable state of ``game`` (and optional owners) into a frame."""
    game_snapshot = GameSnapshot(
        field_width=game.rules.field_width,
        field_height=game.rules.field_height,
        apple=game.apple,
        snake=list(game.snake),
        heading=game.heading.value,
        state=game.state.value,
        apples_eaten=game.apples_eaten,
        total_turns=game.total_turns,
    )

    agent_snapshot = None
    if agent is not None:
        provenance = agent.provenance
        agent_snapshot = AgentSnapshot(
            agent_id=agent.agent_id,
            name=agent.name,
            species=agent.species_name,
            provenance=int(provenance) if provenance is not None else None,
            decision=[float(value) for value in agent.decision],
        )

    population_snapshot = None
    if population is not None:
        best = population.best_agent
        population_snapshot = PopulationSnapshot(
            generation=population.generation,
            best_score=float(population.best_score),
            best_species=population.best_species,
            best_agent_id=best.agent_id if best is not None else None,
        )

    return RenderState(
        generation_index=generation_index,
        step_index=step_index,
        game=game_snapshot,
        agent=agent_snapshot,
        population=population_snapshot,
        timestamp=time.time(),
    )
