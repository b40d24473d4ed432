"""
Run configuration for walk-forward evaluation, stability scoring and
portfolio aggregation.

Config validation runs at construction time (fail fast with clear errors).
"""
from dataclasses import dataclass, field
from typing import List, Optional

from ..shared.defaults import (
    WF_TRAIN_YEARS, WF_TEST_YEARS, WF_START_YEAR, WF_END_YEAR,
    MIN_TRAIN_BARS, MIN_TEST_BARS, MIN_SELECTION_TRADES,
    WEIGHT_MEDIAN, WEIGHT_MINIMUM, WEIGHT_STDDEV, WEIGHT_OVERFIT,
    INITIAL_CAPITAL, DRAWDOWN_THRESHOLD_PCT,
)

SELECTION_METRICS = ("composite", "total_return")
PRESETS = ("default", "optimized")


@dataclass
class WalkForwardConfig:
    """Configuration for a walk-forward run."""
    # Windowing
    train_years: int = WF_TRAIN_YEARS
    test_years: int = WF_TEST_YEARS
    start_year: int = WF_START_YEAR
    end_year: int = WF_END_YEAR

    # Eligibility
    min_train_bars: int = MIN_TRAIN_BARS  # Instruments with fewer train bars are excluded from the cell
    min_test_bars: int = MIN_TEST_BARS  # Test slices with fewer bars are excluded from aggregation
    min_selection_trades: int = MIN_SELECTION_TRADES

    # Best-train selection
    selection_metric: str = "composite"  # "composite" or "total_return"
    preset: str = "default"  # Fallback combo when nothing qualifies: "default" or "optimized"
    timeframe: str = "daily"

    # Output
    evaluate_full_grid: bool = True  # Emit one record per combo for stability scoring

    # Simulation
    initial_capital: float = INITIAL_CAPITAL
    force_close: bool = False

    # Execution
    max_workers: int = 1  # 1 = sequential

    # Strategy ids to evaluate (None = whole catalogue)
    strategies: Optional[List[str]] = None

    def __post_init__(self):
        if self.train_years < 1:
            raise ValueError(f"train_years must be >= 1, got {self.train_years}")
        if self.test_years < 1:
            raise ValueError(f"test_years must be >= 1, got {self.test_years}")
        if self.start_year > self.end_year:
            raise ValueError(
                f"start_year ({self.start_year}) must be <= end_year ({self.end_year})"
            )
        if self.min_train_bars < 1:
            raise ValueError(f"min_train_bars must be >= 1, got {self.min_train_bars}")
        if self.min_test_bars < 1:
            raise ValueError(f"min_test_bars must be >= 1, got {self.min_test_bars}")
        if self.min_selection_trades < 0:
            raise ValueError(f"min_selection_trades must be >= 0, got {self.min_selection_trades}")
        if self.selection_metric not in SELECTION_METRICS:
            raise ValueError(
                f"selection_metric must be one of {SELECTION_METRICS}, got {self.selection_metric!r}"
            )
        if self.preset not in PRESETS:
            raise ValueError(f"preset must be one of {PRESETS}, got {self.preset!r}")
        if self.timeframe not in ("daily", "weekly"):
            raise ValueError(f"timeframe must be 'daily' or 'weekly', got {self.timeframe!r}")
        if self.initial_capital <= 0:
            raise ValueError(f"initial_capital must be > 0, got {self.initial_capital}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")


@dataclass(frozen=True)
class ScoringWeights:
    """Weights of the normalized stability metrics in the composite score."""
    median: float = WEIGHT_MEDIAN
    minimum: float = WEIGHT_MINIMUM
    stddev: float = WEIGHT_STDDEV
    overfit: float = WEIGHT_OVERFIT

    def __post_init__(self):
        for name in ("median", "minimum", "stddev", "overfit"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"Scoring weight '{name}' must be >= 0, got {value}")
        if self.median + self.minimum + self.stddev + self.overfit <= 0:
            raise ValueError("Scoring weights must sum to > 0")


@dataclass
class PortfolioConfig:
    """Configuration for building strategy equities and the combined portfolio."""
    strategies: List[str] = field(default_factory=list)  # Strategy ids (empty = whole catalogue)
    preset: str = "optimized"
    timeframe: str = "daily"
    initial_capital: float = INITIAL_CAPITAL
    drawdown_threshold: float = DRAWDOWN_THRESHOLD_PCT
    force_close: bool = False  # Close trailing open positions at the last bar

    def __post_init__(self):
        if self.preset not in PRESETS:
            raise ValueError(f"preset must be one of {PRESETS}, got {self.preset!r}")
        if self.timeframe not in ("daily", "weekly"):
            raise ValueError(f"timeframe must be 'daily' or 'weekly', got {self.timeframe!r}")
        if self.initial_capital <= 0:
            raise ValueError(f"initial_capital must be > 0, got {self.initial_capital}")
        if self.drawdown_threshold <= 0:
            raise ValueError(f"drawdown_threshold must be > 0, got {self.drawdown_threshold}")


@dataclass
class RunConfig:
    """A complete run: data source, walk-forward, scoring and portfolio settings."""
    name: str = "run"
    description: str = ""
    data_dir: Optional[str] = None
    symbols: Optional[List[str]] = None  # None = every CSV in data_dir
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    output_dir: str = "results"
    walk_forward: WalkForwardConfig = field(default_factory=WalkForwardConfig)
    scoring: ScoringWeights = field(default_factory=ScoringWeights)
    portfolio: PortfolioConfig = field(default_factory=PortfolioConfig)
