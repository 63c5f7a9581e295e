"""Experiment configuration: YAML/JSON files into validated, frozen objects."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping

import yaml

from environment.snake import SnakeRules

_REQUIRED_KEYS: tuple[str, ...] = (
    "population_size",
    "generations",
    "mutation_rate",
    "seed",
)

DEFAULT_GAMES_PER_GENERATION = 100

# (coercion, check, message) for the typed fields.
_CHECKS: dict[str, tuple[Callable[[Any], Any], Callable[[Any], bool], str]] = {
    "population_size": (int, lambda value: value > 0, "must be > 0"),
    "generations": (int, lambda value: value >= 0, "must be >= 0"),
    "mutation_rate": (float, lambda value: 0.0 <= value <= 1.0, "must be in [0.0, 1.0]"),
    "seed": (int, lambda value: True, ""),
    "games_per_generation": (int, lambda value: value > 0, "must be > 0"),
}


@dataclass(frozen=True)
class ExperimentConfig:
    """One training run.

    The typed fields are the ones every run needs; anything else in the file
    (field size, brain options, strategy names, seed document) is kept in
    ``extras`` and read through :meth:`get`.
    """

    population_size: int
    generations: int
    mutation_rate: float
    seed: int
    games_per_generation: int = DEFAULT_GAMES_PER_GENERATION
    extras: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        if key in _CHECKS:
            return getattr(self, key)
        return self.extras.get(key, default)

    def to_dict(self) -> dict[str, Any]:
        payload = {key: getattr(self, key) for key in _CHECKS}
        payload.update(self.extras)
        return payload

    def rules(self) -> SnakeRules:
        """Game rules for this run; the field defaults to 21x21."""
        width = int(self.get("field_width", 21))
        height = int(self.get("field_height", 21))
        return SnakeRules(
            field_width=width,
            field_height=height,
            grow_length=int(self.get("grow_length", 5)),
            start_length=int(self.get("start_length", 10)),
            max_turns=int(self.get("max_turns", width * height)),
        )


class ConfigLoader:
    """Load and validate experiment configuration files (YAML or JSON)."""

    @staticmethod
    def load(path: str | Path) -> ExperimentConfig:
        """Load exactly one experiment from a file holding a single mapping."""
        payload = _read_payload(path)
        if not isinstance(payload, Mapping):
            raise ValueError("Single config file must contain a mapping object.")
        return _build(payload)

    @staticmethod
    def load_many(path: str | Path) -> list[ExperimentConfig]:
        """Load a batch.

        The file may hold one mapping, a list of mappings, or a mapping with an
        ``experiments`` list.
        """
        payload = _read_payload(path)
        if isinstance(payload, Mapping):
            payload = payload.get("experiments", [payload])
        if not isinstance(payload, list):
            raise ValueError("'experiments' must be a list of mappings.")
        return [_build(item) for item in payload]

    @staticmethod
    def from_mapping(payload: Mapping[str, Any]) -> ExperimentConfig:
        return _build(payload)


def _read_payload(path: str | Path) -> Any:
    config_path = Path(path)
    suffix = config_path.suffix.lower()
    if suffix not in {".json", ".yaml", ".yml"}:
        raise ValueError(f"Unsupported config extension: {suffix}")

    content = config_path.read_text(encoding="utf-8")
    if suffix == ".json":
        return json.loads(content)
    return yaml.safe_load(content)


def _build(payload: Any) -> ExperimentConfig:
    if not isinstance(payload, Mapping):
        raise ValueError("Experiment config must be a mapping.")
    missing = [key for key in _REQUIRED_KEYS if key not in payload]
    if missing:
        raise ValueError(f"Missing required config keys: {', '.join(missing)}")

    values: dict[str, Any] = {}
    for key, (coerce, check, message) in _CHECKS.items():
        value = coerce(payload.get(key, DEFAULT_GAMES_PER_GENERATION))
        if not check(value):
            raise ValueError(f"{key} {message}")
        values[key] = value

    config = ExperimentConfig(
        extras={key: value for key, value in payload.items() if key not in _CHECKS},
        **values,
    )
    # Surface bad field settings at load time rather than mid-run.
    config.rules()
    return config
