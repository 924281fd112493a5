"""
Monte Carlo core: one simulated sprint run, and the N-trial experiment around it.

A trial draws a historical velocity (uniform, with replacement) per round and
burns `velocity * allocation` off the remaining target until nothing is left.
The number of rounds it took is the trial result.
"""
from __future__ import annotations
import math
import os
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..ingest.params import SimulationParameters
from ..utils.logging_utils import get_logger

log = get_logger()

DEFAULT_MAX_ROUNDS = 1000


class SimulationError(RuntimeError):
    """Base class for failures of the simulation core."""


class EmptyVelocityPoolError(SimulationError, ValueError):
    def __str__(self):
        return "velocity pool is empty: no historical sprint to sample from"


class NonTerminatingSimulationError(SimulationError):
    """Sampled velocity can never reduce the remaining work."""


class RoundLimitExceeded(NonTerminatingSimulationError):
    def __init__(self, max_rounds: int, remaining: float):
        super().__init__(max_rounds, remaining)
        self.max_rounds = max_rounds
        self.remaining = remaining

    def __str__(self):
        return (f"trial abandoned after {self.max_rounds} rounds "
                f"with {self.remaining:g} work units still remaining")


@dataclass(frozen=True)
class TrialBatch:
    """Raw distribution of completed trials plus the count of abandoned ones."""

    rounds: np.ndarray
    failed: int = 0
    max_rounds: int = 0  # cap each trial ran under

    @property
    def completed(self) -> int:
        return int(self.rounds.size)

    @property
    def requested(self) -> int:
        return self.completed + self.failed


def _as_pool(pool) -> np.ndarray:
    return np.asarray(pool, dtype=np.int64).ravel()


def simulate_sprint(target: float,
                    pool: Sequence[int],
                    allocation: float,
                    rng: np.random.Generator,
                    max_rounds: int = DEFAULT_MAX_ROUNDS) -> int:
    """
    Run one trial and return how many rounds it took to drive the remaining
    work to <= 0.

    `allocation` is assumed already clamped into [0, 1]. The check runs before
    each draw, so a target of 0 finishes in 0 rounds.

    Raises EmptyVelocityPoolError if a draw is needed from an empty pool and
    RoundLimitExceeded once `max_rounds` draws did not finish the target.
    """
    remaining = float(target)
    if remaining <= 0:
        return 0
    pool = _as_pool(pool)
    if pool.size == 0:
        raise EmptyVelocityPoolError()
    n = pool.size
    rounds = 0
    while remaining > 0:
        if rounds >= max_rounds:
            raise RoundLimitExceeded(max_rounds, remaining)
        remaining -= float(pool[rng.integers(n)]) * allocation
        rounds += 1
    return rounds


def check_terminates(params: SimulationParameters, pool: np.ndarray) -> None:
    """Reject inputs for which no trial can ever finish."""
    if params.target <= 0:
        return
    if pool.size == 0:
        raise EmptyVelocityPoolError()
    if not np.any(pool > 0):
        raise NonTerminatingSimulationError(
            f"every historical velocity is 0; target {params.target} can never be reached")
    if params.allocation <= 0:
        raise NonTerminatingSimulationError(
            f"allocation is {params.allocation}; target {params.target} can never be reached")


def _run_chunk(target: int, pool: np.ndarray, allocation: float, n: int,
               rng: np.random.Generator, max_rounds: int, strict: bool) -> Tuple[List[int], int]:
    out: List[int] = []
    failed = 0
    for _ in range(n):
        try:
            out.append(simulate_sprint(target, pool, allocation, rng, max_rounds))
        except RoundLimitExceeded:
            if strict:
                raise
            failed += 1
    return out, failed


def round_cap(params: SimulationParameters, pool: np.ndarray,
              max_rounds: Optional[int] = None) -> int:
    """
    Per-trial round cap. An explicit `max_rounds` is used as given; otherwise the
    cap is DEFAULT_MAX_ROUNDS, raised so that drawing the smallest positive
    velocity every sprint still finishes.
    """
    if max_rounds is not None:
        return int(max_rounds)
    positive = pool[pool > 0]
    if params.target <= 0 or positive.size == 0 or params.allocation <= 0:
        return DEFAULT_MAX_ROUNDS
    slowest = math.ceil(params.target / (params.allocation * float(positive.min())))
    # +1 absorbs float drift in the running remainder
    return max(DEFAULT_MAX_ROUNDS, slowest + 1)


def _resolve_jobs(n_jobs: int, trials: int) -> int:
    if n_jobs is None or n_jobs == 0:
        n_jobs = 1
    if n_jobs < 0:
        n_jobs = os.cpu_count() or 1
    return max(1, min(n_jobs, trials))


def run_trials(params: SimulationParameters,
               pool: Sequence[int],
               rng: Optional[np.random.Generator] = None,
               seed: Optional[int] = None,
               max_rounds: Optional[int] = None,
               n_jobs: int = 1,
               strict: bool = True) -> TrialBatch:
    """
    Run `params.trials` independent trials.

    With `n_jobs > 1` (or -1 for every CPU) the trials are split over a process
    pool; each worker gets its own generator spawned from `rng`, so a fixed
    seed and worker count always give the same distribution.

    `max_rounds=None` picks the cap with `round_cap`. With `strict=False`,
    trials hitting the cap are counted in `TrialBatch.failed` instead of
    aborting the experiment.
    """
    pool = _as_pool(pool)
    check_terminates(params, pool)
    max_rounds = round_cap(params, pool, max_rounds)
    if rng is None:
        rng = np.random.default_rng(seed)

    jobs = _resolve_jobs(n_jobs, params.trials)
    if jobs == 1:
        rounds, failed = _run_chunk(params.target, pool, params.allocation,
                                    params.trials, rng, max_rounds, strict)
    else:
        sizes = [len(c) for c in np.array_split(np.arange(params.trials), jobs)]
        child_rngs = rng.spawn(jobs)
        log.info(f"Running {params.trials:,} trials on {jobs} workers")
        rounds, failed = [], 0
        with ProcessPoolExecutor(max_workers=jobs) as ex:
            futures = [ex.submit(_run_chunk, params.target, pool, params.allocation,
                                 size, child, max_rounds, strict)
                       for size, child in zip(sizes, child_rngs)]
            for f in futures:
                part, part_failed = f.result()
                rounds.extend(part)
                failed += part_failed

    if failed:
        log.warning(f"{failed:,} of {params.trials:,} trials hit the {max_rounds}-round cap "
                    f"and count as not finished")
    return TrialBatch(rounds=np.asarray(rounds, dtype=np.int64), failed=failed,
                      max_rounds=max_rounds)
