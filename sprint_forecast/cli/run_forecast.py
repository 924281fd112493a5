import argparse
import sys

from ..config import Config
from ..connectors.sprint_csv_connector import read_sprint_history
from ..ingest.params import build_parameters
from ..pipeline.orchestrator import run_forecast
from ..sim.monte_carlo import SimulationError
from ..utils.logging_utils import get_logger
from ..viz.report import format_summary, print_cumulative_table

log = get_logger()


def _positive_int(s: str) -> int:
    v = int(s)
    if v < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {v}")
    return v


QUESTIONS = {
    "target": "What is the target number of story points for the project? ",
    "allocation": ("What is the percentage of story points allocated for this project "
                   "over the entire sprint (from 0.0 to 1.0)? "),
    "growth": "For every 10 tasks, how many new tasks are created/added to the sprint? ",
}


def _ask(key: str, value, no_prompt: bool, default):
    """Flag value if given, else an interactive answer, else the default."""
    if value is not None:
        return value
    if no_prompt:
        return default
    try:
        return input(QUESTIONS[key]).strip()
    except EOFError:
        return default


def build_arg_parser(cfg: Config) -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        description="Sprint Forecast — how many sprints until the target is done (Monte Carlo)"
    )
    # Sprint history
    ap.add_argument("--history", type=str, default=cfg.history_path,
                    help=f"CSV with one row per past sprint (default {cfg.history_path})")
    ap.add_argument("--column", type=str, default=cfg.velocity_column,
                    help=f"Column holding completed story points (default {cfg.velocity_column})")

    # Parameters (prompted when missing)
    ap.add_argument("--target", type=str, help="Target story points")
    ap.add_argument("--allocation", type=str, help="Share of each sprint spent on the project, 0.0-1.0")
    ap.add_argument("--growth", type=str, help="New tasks added for every 10 tasks")
    ap.add_argument("--no-prompt", action="store_true", help="Use defaults instead of prompting")

    # Simulation
    ap.add_argument("--trials", type=_positive_int, default=cfg.monte_carlo_trials,
                    help=f"Number of simulated runs (default {cfg.monte_carlo_trials})")
    ap.add_argument("--max-rounds", type=_positive_int, default=cfg.max_rounds_per_trial,
                    help="Sprints after which a trial is abandoned (default: at least 1000, "
                         "raised to fit the slowest positive velocity)")
    ap.add_argument("--seed", type=int, default=cfg.random_state, help="Random seed")
    ap.add_argument("--jobs", type=int, default=cfg.n_jobs, help="Worker processes (-1 = all CPUs)")
    ap.add_argument("--lenient", action="store_true",
                    help="Count trials that hit --max-rounds as not finished instead of failing the run")

    # Output
    ap.add_argument("--out", type=str, default=None, help="Folder for CSV/PNG exports")
    return ap


def main(argv=None) -> int:
    cfg = Config()
    args = build_arg_parser(cfg).parse_args(argv)
    cfg.history_path = args.history
    cfg.velocity_column = args.column
    cfg.monte_carlo_trials = args.trials
    cfg.max_rounds_per_trial = args.max_rounds
    cfg.random_state = args.seed
    cfg.n_jobs = args.jobs

    history = read_sprint_history(cfg.history_path, column=cfg.velocity_column)
    if not history.ok:
        log.error("Continuing with an empty sprint history; only a target of 0 can be forecast.")
    pool = history.pool_or_empty()

    params = build_parameters(
        _ask("target", args.target, args.no_prompt, cfg.default_target),
        _ask("allocation", args.allocation, args.no_prompt, cfg.default_allocation),
        _ask("growth", args.growth, args.no_prompt, cfg.default_growth_per_10),
        trials=cfg.monte_carlo_trials,
        defaults={"target": cfg.default_target, "allocation": cfg.default_allocation,
                  "growth": cfg.default_growth_per_10},
    )

    try:
        res = run_forecast(pool, params, cfg, outdir=args.out, strict=not args.lenient)
    except SimulationError as e:
        log.error(f"Simulation failed: {e}")
        return 2

    print_cumulative_table(res["cumulative"])
    log.info("=== SUMMARY ===")
    for line in format_summary(res["summary"]).splitlines():
        log.info(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
