"""
Walk-forward types: windows, per-combo grid records, per-window
selection records, test trades and the bundled result.

Extracted to keep walk_forward.py focused on evaluation logic. The
stability scorer and result sinks import these types without pulling
in WalkForwardEvaluator.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

import pandas as pd


@dataclass(frozen=True)
class WFWindow:
    """One train/test split of calendar years."""
    id: int
    train_start: pd.Timestamp
    train_end: pd.Timestamp
    test_start: pd.Timestamp
    test_end: pd.Timestamp
    train_label: str  # e.g. "2016-2018"
    test_label: str  # e.g. "2019"

    @property
    def label(self) -> str:
        return f"{self.train_label}->{self.test_label}"


@dataclass(frozen=True)
class WFRecord:
    """One (strategy, combo, window) cell aggregated across instruments."""
    strategy_id: str
    strategy_name: str
    combo_label: str
    combo_values: Dict[str, float]
    window_id: int
    train_label: str
    test_label: str
    train_return: float  # Median over instruments
    test_return: float  # Median over instruments
    test_win_rate: float  # Median
    test_trades: int  # Sum
    test_max_drawdown: float  # Median
    test_sharpe: float  # Median
    test_profit_factor: float  # Median of values clamped to +/-999
    instruments: int  # Instruments with a test result


@dataclass(frozen=True)
class SelectionRecord:
    """Best-train combo for one (strategy, window) and its out-of-sample result."""
    strategy_id: str
    strategy_name: str
    window_id: int
    train_label: str
    test_label: str
    combo_label: str
    combo_values: Dict[str, float]
    selected_by_score: bool  # False for a sole combo or the fallback combo
    train_trades: int
    train_win_rate: float  # Pooled wins / trades * 100
    train_return: float  # Sum over instruments
    train_median_return: float  # Median over instruments that traded
    test_trades: int
    test_win_rate: float
    test_return: float
    test_median_return: float
    win_rate_delta: float  # test - train
    return_delta: float  # test - train
    instruments: int


@dataclass(frozen=True)
class TradeRecord:
    """One out-of-sample round trip of a selected combo."""
    window: str
    strategy_id: str
    strategy_name: str
    symbol: str
    entry_date: pd.Timestamp
    exit_date: pd.Timestamp
    entry_price: float
    exit_price: float
    return_pct: float
    win: bool


@dataclass
class WalkForwardResult:
    """Results from a walk-forward run."""
    windows: List[WFWindow]
    grid_records: List[WFRecord] = field(default_factory=list)
    selection_records: List[SelectionRecord] = field(default_factory=list)
    trade_records: List[TradeRecord] = field(default_factory=list)
    failed_cells: int = 0
