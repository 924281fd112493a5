# sprint_forecast/viz/report.py
from __future__ import annotations
import os
import sys
from typing import Dict, Optional, TextIO

import pandas as pd

HEADER = "Sprint\tTotal\t| Confidence (%)"


def format_cumulative_table(table: pd.DataFrame) -> str:
    lines = [HEADER]
    if table is None or table.empty:
        lines.append("(no completed trials)")
        return "\n".join(lines)
    for sprint, total, pct in table[["Sprint", "Total", "Confidence"]].itertuples(index=False):
        lines.append(f"{int(sprint):<7}\t{int(total):<6}\t| {float(pct):.2f}%")
    return "\n".join(lines)


def format_summary(summary: Dict[str, object]) -> str:
    if not summary:
        return ""
    return "\n".join(f"{k}: {v}" for k, v in summary.items())


def print_cumulative_table(table: pd.DataFrame, out: Optional[TextIO] = None) -> None:
    out = out or sys.stdout
    print(format_cumulative_table(table), file=out)


def export_cumulative_csv(table: pd.DataFrame, path: str) -> str:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    t = table.copy()
    t["Confidence"] = t["Confidence"].round(2)
    t.to_csv(path, index=False, encoding="utf-8-sig")
    return path
