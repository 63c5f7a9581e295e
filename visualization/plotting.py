"""Training curves rendered from the SQLite metrics log."""

from __future__ import annotations

from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402

from data.logger import SimulationLogger  # noqa: E402

FITNESS_SERIES: tuple[tuple[str, str], ...] = (
    ("mean_fitness", "-"),
    ("max_fitness", "-"),
    ("best_ever_score", "--"),
)


def plot_experiment(db_path: str | Path, experiment_id: str, output_path: str | Path) -> Path:
    """Save fitness and diversity curves for ``experiment_id`` as an image."""
    logger = SimulationLogger(db_path)
    try:
        rows = logger.fetch_metrics(experiment_id)
        config = logger.fetch_config(experiment_id) or {}
    finally:
        logger.close()
    if not rows:
        raise ValueError(f"No metrics recorded for experiment '{experiment_id}'.")

    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    generations = [int(row["generation_index"]) for row in rows]

    fig, (fitness_ax, diversity_ax) = plt.subplots(2, 1, figsize=(8, 6), sharex=True)
    for key, style in FITNESS_SERIES:
        fitness_ax.plot(generations, [float(row[key]) for row in rows], style, label=key)
    fitness_ax.set_ylabel(f"apples ({config.get('fitness', 'sum')})")
    fitness_ax.set_title(f"{experiment_id}: best species {rows[-1]['best_species'] or '-'}")
    fitness_ax.legend()

    diversity_ax.plot(generations, [float(row["diversity"]) for row in rows], color="tab:green", label="diversity")
    diversity_ax.set_ylabel("mean weight distance")
    diversity_ax.set_xlabel("generation")
    diversity_ax.legend()

    fig.tight_layout()
    fig.savefig(output)
    plt.close(fig)
    return output
