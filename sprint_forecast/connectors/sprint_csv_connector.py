"""
Sprint history connector. Reads a CSV export with one row per finished sprint and
returns the completed story points per sprint, in file order, as the velocity pool.

The outcome is a VelocityLoadResult: either ok with a pool, or failed with a
reason. What to do on failure (stop, or run on an empty pool) is the caller's call.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional

import numpy as np
import pandas as pd

from ..ingest.schema_autodetect import guess_column
from ..utils.logging_utils import get_logger

log = get_logger()

DEFAULT_COLUMN = "completed_story_points"
INT64_MAX = np.iinfo(np.int64).max


class SprintHistoryError(ValueError):
    pass


@dataclass(frozen=True)
class VelocityLoadResult:
    pool: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int64))
    error: Optional[str] = None
    source: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    def pool_or_empty(self) -> np.ndarray:
        return self.pool if self.ok else np.zeros(0, dtype=np.int64)


def velocity_from_frame(df: pd.DataFrame, column: str = DEFAULT_COLUMN) -> np.ndarray:
    col = guess_column(column, list(df.columns))
    if col is None:
        raise SprintHistoryError(f"no '{column}' column (found: {', '.join(map(str, df.columns))})")
    if col != column:
        log.warning(f"No '{column}' column; using '{col}' as completed story points")
    txt = df[col].astype(str).str.strip()
    digits = txt.str.fullmatch(r"\d+").fillna(False).astype(bool)
    # no float round-trip; still has to fit in int64
    too_big = txt.map(lambda v: v.isdecimal() and int(v) > INT64_MAX).astype(bool)
    bad = ~digits | too_big
    if bad.any():
        first = int(np.flatnonzero(bad.to_numpy())[0])
        # +2: header line, 1-based
        raise SprintHistoryError(
            f"line {first + 2}: '{df[col].iloc[first]}' is not a non-negative whole number")
    return np.array([int(v) for v in txt], dtype=np.int64)


def read_sprint_history(path: str, column: str = DEFAULT_COLUMN,
                        sep: str = ",", encoding: str = "utf-8") -> VelocityLoadResult:
    try:
        df = pd.read_csv(path, sep=sep, encoding=encoding, dtype=str)
        pool = velocity_from_frame(df, column)
    except (OSError, UnicodeDecodeError, pd.errors.ParserError,
            pd.errors.EmptyDataError, SprintHistoryError) as e:
        log.error(f"Failed to read sprint history [{path}]: {e}")
        return VelocityLoadResult(error=str(e), source=str(path))
    log.info(f"Loaded {len(pool)} sprints from {path}")
    return VelocityLoadResult(pool=pool, source=str(path))
