# sprint_forecast/analysis/confidence.py
from __future__ import annotations
from typing import Dict, Iterable, Optional

import numpy as np
import pandas as pd

COLUMNS = ["Sprint", "Total", "Confidence"]


def frequency_table(raw) -> pd.Series:
    """Number of trials that finished in exactly N sprints, indexed by N ascending."""
    arr = np.asarray(raw, dtype=np.int64).ravel()
    if arr.size == 0:
        return pd.Series([], index=pd.Index([], dtype=np.int64, name="Sprint"),
                         dtype=np.int64, name="Count")
    keys, counts = np.unique(arr, return_counts=True)
    return pd.Series(counts.astype(np.int64),
                     index=pd.Index(keys, dtype=np.int64, name="Sprint"), name="Count")


def cumulative_table(freq: pd.Series, total: Optional[int] = None) -> pd.DataFrame:
    """
    Running count of trials finished within N sprints, plus that count as a
    percentage of `total` (defaults to every trial in `freq`).
    """
    if freq is None or len(freq) == 0:
        return pd.DataFrame({"Sprint": pd.Series([], dtype=np.int64),
                             "Total": pd.Series([], dtype=np.int64),
                             "Confidence": pd.Series([], dtype=float)})
    f = freq.sort_index()
    cum = f.cumsum().astype(np.int64)
    n = int(f.sum()) if total is None else int(total)
    out = pd.DataFrame({
        "Sprint": f.index.to_numpy(dtype=np.int64),
        "Total": cum.to_numpy(),
        "Confidence": cum.to_numpy(dtype=float) * 100.0 / float(n) if n > 0 else 0.0,
    })
    return out[COLUMNS].reset_index(drop=True)


def confidence_table(raw, total: Optional[int] = None) -> pd.DataFrame:
    return cumulative_table(frequency_table(raw), total)


def confidence_summary(raw, levels: Iterable[float] = (50, 85, 95),
                       total: Optional[int] = None) -> Dict[str, Optional[int]]:
    """
    Smallest sprint count reaching each confidence level, e.g. {'P85': 7}.

    With `total` larger than len(raw) (abandoned trials), a level the finished
    trials never reach maps to None.
    """
    table = confidence_table(raw, total)
    if table.empty and not total:
        return {}
    out: Dict[str, Optional[int]] = {}
    for lvl in levels:
        # tolerance for 100.0 built from a float division
        hit = table.loc[table["Confidence"] >= float(lvl) - 1e-9, "Sprint"]
        out[f"P{lvl:g}"] = int(hit.iloc[0]) if not hit.empty else None
    return out
