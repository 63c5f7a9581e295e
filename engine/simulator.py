"""Training loop driver: evaluate, replace, log, repeat."""

from __future__ import annotations

import enum
import logging
import threading
from typing import Any, Callable, Mapping, Sequence

from agents.snake_agent import SnakeAgent
from data.logger import SimulationLogger
from evolution.population import GenerationResult, Population

LOGGER = logging.getLogger(__name__)

StopCondition = Callable[[Mapping[str, float]], bool]


class SimulatorState(str, enum.Enum):
    """Execution control states for generation stepping."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class SimulatorExecutionError(RuntimeError):
    """Raised when one simulator lifecycle phase fails."""


class Simulator:
    """Drives a :class:`Population` through successive generations.

    A generation is a barrier: every agent finishes all of its episodes before
    the population is replaced and the next evaluation starts.
    """

    def __init__(
        self,
        population: Population,
        seed: int | None = None,
        logger: SimulationLogger | None = None,
        config: Mapping[str, Any] | None = None,
    ) -> None:
        """Initialize simulator dependencies and logging state."""
        self.population = population
        self.seed = seed

        self.logger = logger
        self.config = dict(config or {})
        self.experiment_id: str | None = None
        if self.logger is not None:
            safe_seed = int(seed if seed is not None else 0)
            self.experiment_id = self.logger.start_experiment(
                config=self.config,
                seed=safe_seed,
                metadata={"simulator_seed": safe_seed, "simulator_version": "0.1.0"},
            )

        self.generation_index: int = 0
        self.last_result: GenerationResult | None = None
        self.last_generation_metrics: dict[str, float] | None = None

        self._state = SimulatorState.IDLE
        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()

    def run_generation(self) -> GenerationResult:
        """Evaluate the current population, replace it, and compute metrics."""
        result = self._safe_call("population.run_generation", self.population.run_generation)
        self.last_result = result
        self.last_generation_metrics = self._compute_metrics(result, self.population.agents)
        return result

    def _compute_metrics(self, result: GenerationResult, population: Sequence[SnakeAgent]) -> dict[str, float]:
        scores = result.scores
        return {
            "mean_fitness": float(sum(scores) / len(scores)) if scores else 0.0,
            "max_fitness": float(max(scores)) if scores else 0.0,
            "best_ever_score": float(result.best_score),
            "survivors": float(result.survivors),
            "diversity": float(self._compute_genome_diversity(list(population))),
            "mutation_stats": float(result.mutation_ratio),
        }

    def _compute_genome_diversity(self, population: list[SnakeAgent]) -> float:
        """Compute mean pairwise brain distance for diversity tracking."""
        brains = [agent.brain for agent in population if agent.brain is not None]
        if len(brains) < 2:
            return 0.0

        total = 0.0
        pairs = 0
        for i in range(len(brains)):
            for j in range(i + 1, len(brains)):
                if brains[i].shape != brains[j].shape:
                    continue
                total += brains[i].distance(brains[j])
                pairs += 1
        return total / pairs if pairs else 0.0

    def control_state(self) -> str:
        """Return current execution control state."""
        with self._state_lock:
            return str(self._state.value)

    def stop(self) -> None:
        """Stop after the generation currently being evaluated."""
        self._stop_event.set()
        with self._state_lock:
            self._state = SimulatorState.STOPPED

    def run(self, generations: int, stop_when: StopCondition | None = None) -> None:
        """Run the training loop for up to ``generations`` generations.

        ``stop_when`` is checked with each generation's metrics after they
        are logged; returning True ends the run early.
        """
        if generations < 0:
            raise ValueError("generations must be non-negative")

        self._stop_event.clear()
        with self._state_lock:
            self._state = SimulatorState.RUNNING

        try:
            for _ in range(generations):
                if self._stop_event.is_set():
                    break
                self.generation_index = self.population.generation
                self.run_generation()
                self.on_generation_end(self.generation_index)
                if stop_when is not None and stop_when(self.last_generation_metrics or {}):
                    LOGGER.info("Stopping early after generation %d", self.generation_index)
                    break
        finally:
            with self._state_lock:
                if self._state != SimulatorState.STOPPED:
                    self._state = SimulatorState.IDLE

    def on_generation_end(self, generation_index: int) -> None:
        """Report a completed generation and persist its metrics if logging."""
        metrics = self.last_generation_metrics or {}
        best_species = self.last_result.best_species if self.last_result is not None else ""
        LOGGER.info(
            "Generation %d: mean=%.2f max=%.1f best_ever=%.1f (%s)",
            generation_index,
            metrics.get("mean_fitness", 0.0),
            metrics.get("max_fitness", 0.0),
            metrics.get("best_ever_score", 0.0),
            best_species,
        )
        if self.logger is None or self.experiment_id is None:
            return

        self._safe_call(
            "logger.log_metrics",
            self.logger.log_metrics,
            experiment_id=self.experiment_id,
            generation_index=generation_index,
            metrics=metrics,
            best_species=best_species,
        )

    @staticmethod
    def _safe_call(label: str, fn: Any, *args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except Exception as exc:
            raise SimulatorExecutionError(f"{label} failed: {exc}") from exc
