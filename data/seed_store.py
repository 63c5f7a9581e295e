"""Seed documents for bootstrapping a population, and population export."""

from __future__ import annotations

import itertools
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Sequence

import numpy as np

from agents.brain import DimensionMismatchError
from agents.genome import BreedingMode
from agents.snake_agent import SnakeAgent
from data.brain_record import load_agent, save_agent

LOGGER = logging.getLogger(__name__)

INDEX_FILE_NAME = "population.json"


@dataclass(frozen=True)
class SeedRecord:
    """One entry of a seed document."""

    data_file: Path
    name: str
    species: str


def load_seed_document(path: str | Path) -> list[SeedRecord]:
    """Parse a JSON list of ``{DataFile, PlayerName, Species}`` records.

    Relative ``DataFile`` paths resolve against the document's directory.
    """
    document_path = Path(path)
    payload = json.loads(document_path.read_text(encoding="utf-8"))
    if not isinstance(payload, list):
        raise ValueError("Seed document must contain a list of records.")

    records: list[SeedRecord] = []
    for position, item in enumerate(payload):
        if not isinstance(item, dict):
            raise ValueError(f"Seed record {position} must be a mapping.")
        missing = [key for key in ("DataFile", "PlayerName", "Species") if key not in item]
        if missing:
            raise ValueError(f"Seed record {position} is missing keys: {', '.join(missing)}")
        data_file = Path(str(item["DataFile"]))
        if not data_file.is_absolute():
            data_file = document_path.parent / data_file
        records.append(SeedRecord(data_file=data_file, name=str(item["PlayerName"]), species=str(item["Species"])))
    return records


def load_seed_agents(records: Sequence[SeedRecord]) -> list[SnakeAgent]:
    """Deserialize each referenced agent, applying the document's display names."""
    agents: list[SnakeAgent] = []
    for record in records:
        agent = load_agent(record.data_file)
        agent.name = record.name
        agent.species_name = record.species
        agents.append(agent)
    return agents


def build_seeded_population(
    seeds: Sequence[SnakeAgent],
    rng: np.random.Generator,
    mutation_rate: float,
    clones_per_seed: int = 9,
    offspring_per_pair: int = 5,
    fresh_agents: int = 20,
    breeding_mode: BreedingMode | str = BreedingMode.MIX,
    agent_factory: Callable[[np.random.Generator], SnakeAgent] | None = None,
) -> list[SnakeAgent]:
    """Compose a founding population around ``seeds``.

    Every seed is kept together with ``clones_per_seed`` mutated clones. Each
    ordered pair of distinct seeds contributes ``offspring_per_pair`` bred
    children; incompatible pairs are logged and skipped. ``fresh_agents``
    brand-new agents are appended for diversity, built by ``agent_factory``
    (default :meth:`SnakeAgent.create`).
    """
    population: list[SnakeAgent] = []
    for seed in seeds:
        population.append(seed)
        for _ in range(clones_per_seed):
            child = seed.clone()
            child.mutate(mutation_rate, rng)
            population.append(child)

    for first, second in itertools.permutations(seeds, 2):
        try:
            population.extend(first.breed_with(second, breeding_mode, rng) for _ in range(offspring_per_pair))
        except DimensionMismatchError as exc:
            LOGGER.warning("Skipping crossover of %s with %s: %s", first.name, second.name, exc)

    create = agent_factory or SnakeAgent.create
    population.extend(create(rng) for _ in range(fresh_agents))
    return population


def export_population(directory: str | Path, scored_agents: Sequence[tuple[SnakeAgent, float]]) -> Path:
    """Write every agent record plus a score-ordered JSON index.

    The index uses the same keys that :func:`load_seed_document` reads, so an
    exported population can seed a later run.
    """
    base = Path(directory)
    base.mkdir(parents=True, exist_ok=True)
    ordered = sorted(scored_agents, key=lambda pair: pair[1], reverse=True)

    index: list[dict[str, Any]] = []
    for position, (agent, score) in enumerate(ordered):
        file_name = f"player{position}.bin"
        save_agent(agent, base / file_name)
        index.append(
            {
                "DataFile": file_name,
                "PlayerId": str(agent.agent_id),
                "PlayerName": agent.name,
                "Score": str(score),
                "Species": agent.species_name,
            }
        )

    index_path = base / INDEX_FILE_NAME
    tmp_path = index_path.with_suffix(index_path.suffix + ".tmp")
    tmp_path.write_text(json.dumps(index, indent=2), encoding="utf-8")
    tmp_path.replace(index_path)
    LOGGER.info("Exported %d agents to %s", len(index), base)
    return index_path
