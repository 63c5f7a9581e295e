"""Tests for SQLite-backed experiment logger and simulator hook integration."""

from __future__ import annotations

import sqlite3

from core.deterministic_rng import DeterministicRNG
from data.logger import SimulationLogger
from engine.simulator import Simulator
from environment.snake import SnakeRules
from evolution.ga import RankSurvivalStrategy
from evolution.population import Population


def test_logger_persists_metadata_and_metrics(tmp_path) -> None:
    db_path = tmp_path / "metrics.db"
    logger = SimulationLogger(db_path)

    experiment_id = logger.start_experiment(
        config={"population_size": 2, "generations": 1, "mutation_rate": 0.4},
        seed=42,
    )
    logger.log_metrics(
        experiment_id=experiment_id,
        generation_index=0,
        metrics={"mean_fitness": 0.5, "max_fitness": 1.0, "best_ever_score": 1.0, "diversity": 0.2},
        best_species="AbCd1234",
    )
    assert logger.latest_experiment_id() == experiment_id
    assert logger.fetch_config(experiment_id) == {"population_size": 2, "generations": 1, "mutation_rate": 0.4}
    assert logger.fetch_config("missing") is None
    rows = logger.fetch_metrics(experiment_id)
    logger.close()

    conn = sqlite3.connect(db_path)
    metadata_count = conn.execute("SELECT COUNT(*) FROM experiment_metadata").fetchone()[0]
    metrics_count = conn.execute("SELECT COUNT(*) FROM generation_metrics").fetchone()[0]
    conn.close()

    assert metadata_count == 1
    assert metrics_count == 1
    assert rows[0]["best_species"] == "AbCd1234"
    assert rows[0]["survivors"] == 0.0


def test_latest_experiment_is_none_for_empty_database(tmp_path) -> None:
    logger = SimulationLogger(tmp_path / "empty.db")

    assert logger.latest_experiment_id() is None
    logger.close()


def test_simulator_on_generation_end_logs_placeholder_metrics(tmp_path) -> None:
    db_path = tmp_path / "sim.db"
    logger = SimulationLogger(db_path)

    population = Population(SnakeRules(), RankSurvivalStrategy(), DeterministicRNG(7), population_size=2)
    simulator = Simulator(
        population=population,
        seed=7,
        logger=logger,
        config={"population_size": 2, "generations": 1, "mutation_rate": 0.4, "seed": 7},
    )

    simulator.last_generation_metrics = {"mean_fitness": 0.3, "max_fitness": 0.9}
    simulator.on_generation_end(0)
    logger.close()

    conn = sqlite3.connect(db_path)
    row = conn.execute(
        "SELECT mean_fitness, max_fitness, diversity, mutation_stats, best_species FROM generation_metrics"
    ).fetchone()
    conn.close()

    assert row is not None
    assert row[0] == 0.3
    assert row[1] == 0.9
    assert row[2] == 0.0
    assert row[3] == 0.0
    assert row[4] == ""
