"""SQLite store for training runs and their per-generation metrics."""

from __future__ import annotations

import hashlib
import json
import platform
import sqlite3
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Mapping

METRIC_KEYS: tuple[str, ...] = (
    "mean_fitness",
    "max_fitness",
    "best_ever_score",
    "survivors",
    "diversity",
    "mutation_stats",
)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS experiment_metadata (
    experiment_id TEXT PRIMARY KEY,
    config_hash TEXT NOT NULL,
    seed INTEGER NOT NULL,
    config_json TEXT NOT NULL,
    runtime_metadata TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS generation_metrics (
    experiment_id TEXT NOT NULL,
    generation_index INTEGER NOT NULL,
    mean_fitness REAL NOT NULL,
    max_fitness REAL NOT NULL,
    best_ever_score REAL NOT NULL,
    survivors REAL NOT NULL,
    diversity REAL NOT NULL,
    mutation_stats REAL NOT NULL,
    best_species TEXT NOT NULL,
    PRIMARY KEY (experiment_id, generation_index),
    FOREIGN KEY (experiment_id) REFERENCES experiment_metadata (experiment_id) ON DELETE CASCADE
);
"""

_ROW_COLUMNS: tuple[str, ...] = ("generation_index", *METRIC_KEYS, "best_species")


@dataclass(frozen=True)
class GenerationMetrics:
    """One ``generation_metrics`` row."""

    generation_index: int
    mean_fitness: float = 0.0
    max_fitness: float = 0.0
    best_ever_score: float = 0.0
    survivors: float = 0.0
    diversity: float = 0.0
    mutation_stats: float = 0.0
    best_species: str = ""

    @classmethod
    def from_mapping(cls, generation_index: int, metrics: Mapping[str, float], best_species: str = "") -> "GenerationMetrics":
        """Missing metric keys are recorded as 0.0."""
        return cls(
            generation_index=int(generation_index),
            best_species=str(best_species),
            **{key: float(metrics.get(key, 0.0)) for key in METRIC_KEYS},
        )


class SimulationLogger:
    """Persist run metadata and per-generation metrics in SQLite."""

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self.connection = sqlite3.connect(self.db_path)
        self.connection.row_factory = sqlite3.Row
        with self.connection:
            self.connection.executescript(_SCHEMA)

    def close(self) -> None:
        self.connection.close()

    def start_experiment(self, config: Mapping[str, Any], seed: int, metadata: Mapping[str, Any] | None = None) -> str:
        """Register a run and return its id.

        The id mixes a hash of ``(config, seed)`` with a nonce, so repeating a
        run records a second experiment instead of overwriting the first.
        """
        config_json = json.dumps(dict(config), sort_keys=True, default=str)
        config_hash = hashlib.sha256(config_json.encode("utf-8")).hexdigest()
        run_key = hashlib.sha256(f"{config_hash}:{seed}".encode("utf-8")).hexdigest()
        experiment_id = hashlib.sha256(f"{run_key}:{time.time_ns()}".encode("utf-8")).hexdigest()[:16]

        runtime = {
            "python_version": platform.python_version(),
            "platform": platform.platform(),
            "run_key": run_key,
        }
        runtime.update(dict(metadata or {}))

        with self.connection:
            self.connection.execute(
                "INSERT OR IGNORE INTO experiment_metadata "
                "(experiment_id, config_hash, seed, config_json, runtime_metadata) VALUES (?, ?, ?, ?, ?)",
                (experiment_id, config_hash, int(seed), config_json, json.dumps(runtime, sort_keys=True, default=str)),
            )
        return experiment_id

    def log_metrics(
        self,
        experiment_id: str,
        generation_index: int,
        metrics: Mapping[str, float],
        best_species: str = "",
    ) -> None:
        row = asdict(GenerationMetrics.from_mapping(generation_index, metrics, best_species))
        columns = ", ".join(_ROW_COLUMNS)
        placeholders = ", ".join("?" for _ in range(len(_ROW_COLUMNS) + 1))
        with self.connection:
            self.connection.execute(
                f"INSERT OR REPLACE INTO generation_metrics (experiment_id, {columns}) VALUES ({placeholders})",
                (experiment_id, *(row[column] for column in _ROW_COLUMNS)),
            )

    def fetch_metrics(self, experiment_id: str) -> list[dict[str, Any]]:
        """Rows for one experiment, oldest generation first."""
        rows = self.connection.execute(
            f"SELECT {', '.join(_ROW_COLUMNS)} FROM generation_metrics "
            "WHERE experiment_id = ? ORDER BY generation_index ASC",
            (experiment_id,),
        ).fetchall()
        return [dict(row) for row in rows]

    def fetch_config(self, experiment_id: str) -> dict[str, Any] | None:
        row = self.connection.execute(
            "SELECT config_json FROM experiment_metadata WHERE experiment_id = ?",
            (experiment_id,),
        ).fetchone()
        return json.loads(row["config_json"]) if row is not None else None

    def latest_experiment_id(self) -> str | None:
        row = self.connection.execute(
            "SELECT experiment_id FROM experiment_metadata ORDER BY created_at DESC, rowid DESC LIMIT 1"
        ).fetchone()
        return str(row["experiment_id"]) if row is not None else None
