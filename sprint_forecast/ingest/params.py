# sprint_forecast/ingest/params.py
from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Optional

from ..utils.logging_utils import get_logger

log = get_logger()

DEFAULT_TARGET = 0
DEFAULT_ALLOCATION = 1.0
DEFAULT_GROWTH_PER_10 = 3


@dataclass(frozen=True)
class SimulationParameters:
    target: int          # effective target, growth already applied
    allocation: float    # in [0, 1]
    trials: int

    def __post_init__(self):
        if self.target < 0:
            raise ValueError(f"target must be >= 0, got {self.target}")
        if not 0.0 <= self.allocation <= 1.0:
            raise ValueError(f"allocation must be in [0, 1], got {self.allocation}")
        if self.trials < 1:
            raise ValueError(f"trials must be >= 1, got {self.trials}")


def _parse_non_negative_int(raw, default: int, label: str) -> int:
    try:
        v = int(str(raw).strip())
        if v < 0:
            raise ValueError
        return v
    except (TypeError, ValueError):
        log.warning(f"Could not read {label} from {raw!r}; using default {default}")
        return default


def parse_target(raw, default: int = DEFAULT_TARGET) -> int:
    return _parse_non_negative_int(raw, default, "target story points")


def parse_growth(raw, default: int = DEFAULT_GROWTH_PER_10) -> int:
    return _parse_non_negative_int(raw, default, "new tasks per 10 tasks")


def clamp_allocation(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


def parse_allocation(raw, default: float = DEFAULT_ALLOCATION) -> float:
    """Parse the share of a sprint spent on this project, clamped into [0, 1]."""
    try:
        v = float(str(raw).strip())
        if math.isnan(v):
            raise ValueError
    except (TypeError, ValueError):
        log.warning(f"Could not read allocation from {raw!r}; using default {default}")
        v = default
    clamped = clamp_allocation(v)
    if clamped != v:
        log.warning(f"Allocation {v} clamped to {clamped}")
    return clamped


def effective_target(target: int, growth_per_10: int) -> int:
    """Target inflated by scope growth, rounded half away from zero."""
    grown = target + target * (growth_per_10 / 10.0)
    return int(math.floor(grown + 0.5))


def build_parameters(target, allocation, growth, trials: int,
                     defaults: Optional[dict] = None) -> SimulationParameters:
    """Raw (string or numeric) user inputs -> validated SimulationParameters."""
    d = defaults or {}
    t = parse_target(target, d.get("target", DEFAULT_TARGET))
    a = parse_allocation(allocation, d.get("allocation", DEFAULT_ALLOCATION))
    g = parse_growth(growth, d.get("growth", DEFAULT_GROWTH_PER_10))
    eff = effective_target(t, g)
    log.info(f"Target {t} + growth {g}/10 -> effective target {eff}; allocation {a:.2f}")
    return SimulationParameters(target=eff, allocation=a, trials=int(trials))
