"""Tests for seed documents, seeded population composition and export."""

from __future__ import annotations

import json

import numpy as np
import pytest

from agents.brain import ProvenanceTag
from agents.snake_agent import SnakeAgent
from data.brain_record import save_agent
from data.seed_store import (
    build_seeded_population,
    export_population,
    load_seed_agents,
    load_seed_document,
)


def _write_document(tmp_path, agents: list[SnakeAgent]) -> str:
    records = []
    for index, agent in enumerate(agents):
        save_agent(agent, tmp_path / "seeds" / f"seed{index}.bin")
        records.append({"DataFile": f"seeds/seed{index}.bin", "PlayerName": f"Seed {index}", "Species": f"SPECIES{index}"})
    path = tmp_path / "seeds.json"
    path.write_text(json.dumps(records), encoding="utf-8")
    return str(path)


def test_document_paths_resolve_relative_to_document(tmp_path) -> None:
    rng = np.random.default_rng(0)
    path = _write_document(tmp_path, [SnakeAgent.create(rng), SnakeAgent.create(rng)])

    records = load_seed_document(path)
    agents = load_seed_agents(records)

    assert [record.data_file for record in records] == [
        tmp_path / "seeds" / "seed0.bin",
        tmp_path / "seeds" / "seed1.bin",
    ]
    assert [agent.name for agent in agents] == ["Seed 0", "Seed 1"]
    assert [agent.species_name for agent in agents] == ["SPECIES0", "SPECIES1"]


def test_document_records_require_all_keys(tmp_path) -> None:
    path = tmp_path / "broken.json"
    path.write_text(json.dumps([{"DataFile": "a.bin", "PlayerName": "x"}]), encoding="utf-8")

    with pytest.raises(ValueError, match="missing keys: Species"):
        load_seed_document(path)


def test_seeded_population_composition() -> None:
    rng = np.random.default_rng(1)
    seeds = [SnakeAgent.create(rng), SnakeAgent.create(rng)]

    population = build_seeded_population(seeds, rng, mutation_rate=0.4)

    assert len(population) == 2 + 2 * 9 + 2 * 5 + 20
    assert population[0] is seeds[0]
    assert population[10] is seeds[1]
    provenances = [agent.provenance for agent in population]
    assert provenances.count(ProvenanceTag.MUTATED_CLONE) == 18
    assert provenances.count(ProvenanceTag.CROSSOVER_MIX) == 10
    assert provenances.count(ProvenanceTag.SEED) == 22


def test_incompatible_seed_pairs_are_skipped() -> None:
    rng = np.random.default_rng(2)
    seeds = [SnakeAgent.create(rng), SnakeAgent.create(rng, hidden_size=12)]

    population = build_seeded_population(seeds, rng, mutation_rate=0.4, fresh_agents=5)

    assert len(population) == 2 + 2 * 9 + 5


def test_export_writes_score_ordered_index_that_can_seed(tmp_path) -> None:
    rng = np.random.default_rng(3)
    low, high = SnakeAgent.create(rng), SnakeAgent.create(rng)

    index_path = export_population(tmp_path / "export", [(low, 1.0), (high, 7.0)])
    index = json.loads(index_path.read_text(encoding="utf-8"))

    assert [entry["DataFile"] for entry in index] == ["player0.bin", "player1.bin"]
    assert index[0]["PlayerName"] == high.name
    assert index[0]["Score"] == "7.0"
    reloaded = load_seed_agents(load_seed_document(index_path))
    np.testing.assert_array_equal(reloaded[0].brain.parameters(), high.brain.parameters())
    assert reloaded[1].species_name == low.species_name
