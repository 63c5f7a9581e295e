"""Command-line entry points for training, batching, plotting, and replay."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

# Allow `python cli/main.py ...` execution from IDEs by adding repo root to sys.path.
if __package__ in {None, ""}:
    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))

from agents.controller import PlayerController, play_episode
from configs.loader import ConfigLoader, ExperimentConfig
from core.deterministic_rng import DeterministicRNG
from core.render_state import RenderState, capture
from data.brain_record import load_agent
from data.logger import SimulationLogger
from data.seed_store import export_population
from environment.snake import SnakeGame, SnakeRules
from main import build_components, early_stop
from streaming.state_serializer import write_frames
from visualization.plotting import plot_experiment

LOGGER = logging.getLogger(__name__)


def _run_single(config: ExperimentConfig, db_path: Path, export_dir: Path | None = None) -> str:
    logger = SimulationLogger(db_path)
    experiment_id: str | None = None
    try:
        simulator = build_components(config=config, logger=logger)
        simulator.run(config.generations, stop_when=early_stop(config))
        experiment_id = simulator.experiment_id
        if export_dir is not None:
            export_population(export_dir, simulator.population.last_players())
    finally:
        logger.close()
    if experiment_id is None:
        raise RuntimeError("Expected experiment id when logger is configured.")
    return experiment_id


def _replay(args: argparse.Namespace) -> int:
    agent = load_agent(args.agent)
    player = PlayerController.evolved(agent)
    rules = SnakeRules(
        field_width=args.width,
        field_height=args.height,
        grow_length=args.grow,
        start_length=args.start_length,
        max_turns=args.max_turns if args.max_turns is not None else args.width * args.height,
    )
    rng = DeterministicRNG(args.seed)
    frames: list[RenderState] = []

    total = 0
    for game_index in range(args.games):
        game_rng = rng.derive(f"replay:{game_index}")
        game = SnakeGame(rules, game_rng)
        on_step = None
        if args.frames is not None:
            frames.append(capture(game, agent, generation_index=game_index, step_index=0))

            def on_step(current: SnakeGame, _move, index: int = game_index) -> None:
                frames.append(capture(current, agent, generation_index=index, step_index=current.total_turns))

        apples = play_episode(player, game, game_rng, on_step=on_step)
        total += apples
        LOGGER.info("Game %d: %d apples in %d turns (%s)", game_index, apples, game.total_turns, game.state.value)

    if args.frames is not None:
        count = write_frames(args.frames, frames)
        LOGGER.info("Wrote %d frames to %s", count, args.frames)
    print(f"{agent.species_name} {agent.name}: {total} apples over {args.games} games")
    return 0


def run_cli(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="snake-evo")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = parser.add_subparsers(dest="command", required=True)

    run_cmd = sub.add_parser("run")
    run_cmd.add_argument("--config", default="configs/example_experiment.yaml")
    run_cmd.add_argument("--db", default="simulation_metrics.db")
    run_cmd.add_argument("--export", default=None, help="Directory for the final population.")

    batch_cmd = sub.add_parser("batch")
    batch_cmd.add_argument("--config", default="configs/example_batch.yaml")
    batch_cmd.add_argument("--db", default="simulation_metrics.db")

    plot_cmd = sub.add_parser("plot")
    plot_cmd.add_argument("--experiment", default=None, help="Defaults to the latest experiment.")
    plot_cmd.add_argument("--db", default="simulation_metrics.db")
    plot_cmd.add_argument("--out", default="artifacts/metrics.png")

    replay_cmd = sub.add_parser("replay")
    replay_cmd.add_argument("--agent", required=True, help="Binary agent record (.bin).")
    replay_cmd.add_argument("--games", type=int, default=1)
    replay_cmd.add_argument("--seed", type=int, default=0)
    replay_cmd.add_argument("--width", type=int, default=21)
    replay_cmd.add_argument("--height", type=int, default=21)
    replay_cmd.add_argument("--grow", type=int, default=5)
    replay_cmd.add_argument("--start-length", type=int, default=10)
    replay_cmd.add_argument("--max-turns", type=int, default=None, help="Hunger limit; defaults to width*height.")
    replay_cmd.add_argument("--frames", default=None, help="Write JSON-lines frames to this path.")

    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level))

    if args.command == "run":
        config = ConfigLoader.load(args.config)
        export_dir = Path(args.export) if args.export else None
        exp_id = _run_single(config, Path(args.db), export_dir)
        print(exp_id)
        return 0

    if args.command == "batch":
        configs = ConfigLoader.load_many(args.config)
        for config in configs:
            exp_id = _run_single(config, Path(args.db))
            print(exp_id)
        return 0

    if args.command == "plot":
        experiment_id = args.experiment
        if experiment_id is None:
            logger = SimulationLogger(args.db)
            experiment_id = logger.latest_experiment_id()
            logger.close()
            if experiment_id is None:
                parser.error(f"no experiments recorded in {args.db}")
        path = plot_experiment(args.db, experiment_id, args.out)
        print(path)
        return 0

    if args.command == "replay":
        if args.games < 1:
            parser.error("--games must be >= 1")
        return _replay(args)

    return 1


if __name__ == "__main__":
    raise SystemExit(run_cli())
