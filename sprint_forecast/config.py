from dataclasses import dataclass, field
from typing import Optional, Tuple

@dataclass
class Config:
    random_state: Optional[int] = None  # None -> fresh OS entropy every run
    n_jobs: int = 1
    monte_carlo_trials: int = 10000
    max_rounds_per_trial: Optional[int] = None  # None -> derived from target and slowest velocity
    default_target: int = 0
    default_allocation: float = 1.0
    default_growth_per_10: int = 3
    history_path: str = "sprints.csv"
    velocity_column: str = "completed_story_points"
    confidence_levels: Tuple[int, ...] = field(default_factory=lambda: (50, 85, 95))
    report_title: str = "Sprint Forecast — Monte Carlo Confidence"
