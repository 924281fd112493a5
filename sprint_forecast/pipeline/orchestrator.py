# sprint_forecast/pipeline/orchestrator.py
from __future__ import annotations
import os
from typing import Any, Dict, Optional, Sequence

import numpy as np

from ..analysis.confidence import confidence_summary, cumulative_table, frequency_table
from ..config import Config
from ..ingest.params import SimulationParameters
from ..sim.monte_carlo import run_trials
from ..utils.logging_utils import ensure_dirs, get_logger

log = get_logger()


def _pool_stats(pool: np.ndarray) -> Dict[str, Any]:
    if pool.size == 0:
        return {"Sprints in history": 0}
    return {
        "Sprints in history": int(pool.size),
        "Velocity mean": round(float(pool.mean()), 2),
        "Velocity min": int(pool.min()),
        "Velocity max": int(pool.max()),
    }


def _export(outdir: str, cumulative, rounds, levels) -> Dict[str, Optional[str]]:
    from ..viz.charts import save_confidence_chart, save_rounds_fan_chart
    from ..viz.report import export_cumulative_csv

    figdir = os.path.join(outdir, "fig")
    expdir = os.path.join(outdir, "exports")
    ensure_dirs(outdir, figdir, expdir)
    paths: Dict[str, Optional[str]] = {"csv": None, "confidence_chart": None, "fan_chart": None}
    try:
        paths["csv"] = export_cumulative_csv(cumulative, os.path.join(expdir, "confidence_table.csv"))
    except OSError as e:
        log.warning(f"Export CSV failed: {e}")
    try:
        paths["confidence_chart"] = save_confidence_chart(cumulative, os.path.join(figdir, "confidence.png"),
                                                           levels=levels)
        paths["fan_chart"] = save_rounds_fan_chart(rounds, os.path.join(figdir, "sprints_fan.png"))
    except Exception as e:
        log.warning(f"Charts failed: {e}")
    return paths


def run_forecast(pool: Sequence[int],
                 params: SimulationParameters,
                 config: Optional[Config] = None,
                 outdir: Optional[str] = None,
                 strict: bool = True) -> Dict[str, Any]:
    """
    Simulate `params.trials` sprint sequences over the velocity pool and build
    the confidence tables. Simulation errors propagate to the caller.
    """
    cfg = config or Config()
    pool = np.asarray(pool, dtype=np.int64).ravel()
    log.info(f"Simulating {params.trials:,} trials: target={params.target}, "
             f"allocation={params.allocation:.2f}, history={pool.size} sprints")

    # 1) Trials
    batch = run_trials(params, pool, seed=cfg.random_state,
                       max_rounds=cfg.max_rounds_per_trial, n_jobs=cfg.n_jobs, strict=strict)

    # 2) Aggregation
    freq = frequency_table(batch.rounds)
    # abandoned trials stay in the denominator, so the table can end below 100%
    cumulative = cumulative_table(freq, total=batch.requested)

    # 3) Summary
    summary: Dict[str, Any] = {"Effective target": params.target,
                               "Allocation": round(params.allocation, 2),
                               "Trials": batch.requested,
                               "Failed trials": batch.failed}
    summary.update(_pool_stats(pool))
    levels = confidence_summary(batch.rounds, cfg.confidence_levels, total=batch.requested)
    summary.update({f"Sprints ({k})": v if v is not None else f"not reached within {batch.max_rounds}"
                    for k, v in levels.items()})

    res: Dict[str, Any] = {"batch": batch, "frequency": freq,
                           "cumulative": cumulative, "summary": summary}

    # 4) Exports
    if outdir:
        res.update(_export(outdir, cumulative, batch.rounds, cfg.confidence_levels))
    return res
