# sprint_forecast/viz/charts.py
from __future__ import annotations
import os
from itertools import cycle
import numpy as np
import pandas as pd
import matplotlib as mpl
mpl.use("Agg")
import matplotlib.pyplot as plt

# ====== THEME (Executive Dark) ======
PALETTE = {
    "bg":      "#0B1021",
    "panel":   "#12172B",
    "grid":    "#2B3150",
    "text":    "#EAF0FF",
    "muted":   "#A7B0C8",
    "primary": "#5B8FF9",
    "accent":  "#5AD8A6",
    "warn":    "#F6BD16",
    "danger":  "#F4664A",
}

def _apply_theme():
    plt.rcParams.update({
        "figure.facecolor": PALETTE["bg"],
        "axes.facecolor":   PALETTE["panel"],
        "savefig.facecolor":PALETTE["bg"],
        "axes.edgecolor":   PALETTE["grid"],
        "axes.labelcolor":  PALETTE["text"],
        "axes.titlecolor":  PALETTE["text"],
        "xtick.color":      PALETTE["muted"],
        "ytick.color":      PALETTE["muted"],
        "grid.color":       PALETTE["grid"],
        "text.color":       PALETTE["text"],
        "font.size":        11,
        "axes.titleweight": "bold",
        "axes.grid":        True,
        "grid.linestyle":   "--",
        "grid.linewidth":   0.6,
        "legend.frameon":   False,
    })

def _save(figpath: str):
    os.makedirs(os.path.dirname(figpath) or ".", exist_ok=True)
    plt.tight_layout()
    plt.savefig(figpath, dpi=220, bbox_inches="tight")
    plt.close("all")
    return figpath

def save_confidence_chart(table: pd.DataFrame, out_path: str, levels=(50, 85, 95)):
    """Trials finished per sprint count (bars) with cumulative confidence (line)."""
    if table is None or table.empty:
        return None
    _apply_theme()
    fig, ax = plt.subplots(figsize=(8.5, 5.2))
    x = table["Sprint"].astype(int).values
    total = table["Total"].astype(float).values
    per_sprint = np.diff(np.concatenate([[0.0], total]))
    ax.bar(x, per_sprint, color=PALETTE["primary"], alpha=0.85, label="Trials finished")
    ax.set_xlabel("Sprints"); ax.set_ylabel("Trials")
    ax2 = ax.twinx()
    ax2.plot(x, table["Confidence"].values, marker="o", linewidth=2.2,
             color=PALETTE["accent"], label="Confidence (%)")
    ax2.set_ylim(0, 102); ax2.set_ylabel("Confidence (%)"); ax2.grid(False)
    for lvl, col in zip(levels, cycle([PALETTE["muted"], PALETTE["warn"], PALETTE["danger"]])):
        ax2.axhline(lvl, linestyle="--", color=col, linewidth=1.2)
        ax2.annotate(f"{lvl:g}%", (x[0], lvl), textcoords="offset points", xytext=(2, 3), color=col)
    ax.set_title("Sprint Forecast — Monte Carlo Confidence")
    return _save(out_path)

def save_rounds_fan_chart(rounds: np.ndarray, out_path: str):
    arr = np.asarray(rounds, dtype=float)
    if arr.size == 0:
        return None
    _apply_theme()
    plt.figure(figsize=(8.5, 5.2))
    bins = np.arange(arr.min(), arr.max() + 2) - 0.5
    plt.hist(arr, bins=bins, density=True, color=PALETTE["warn"], alpha=0.95)
    p50, p85, p95 = np.quantile(arr, [0.5, 0.85, 0.95])
    for v, name, col in [(p50, "P50", PALETTE["accent"]),
                         (p85, "P85", PALETTE["muted"]),
                         (p95, "P95", PALETTE["danger"])]:
        plt.axvline(v, linestyle="--", color=col, linewidth=2.0, label=f"{name}={v:.1f}")
    plt.legend()
    plt.title("Sprints to Complete (Monte Carlo)")
    plt.xlabel("Sprints"); plt.ylabel("Density")
    return _save(out_path)
