"""
Walk-forward evaluation.

Slides fixed calendar-year train/test windows over the data. For every
(strategy, window) cell:
1. Each instrument is sliced into train and test frames
2. Every parameter combo is backtested on the train slices and the best
   one is selected by the configured train score
3. The selected combo is run out-of-sample on the test slices
4. Optionally every combo is also run on the test slices so the stability
   scorer can compare combos across windows

Cells are independent and run through a concurrent.futures executor;
results are collected in submission order so output is deterministic.
"""
import logging
import time
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from ..data.loader import slice_frame
from ..grid_test.grid_search import ParamCombo, ParamGrid, make_label
from ..shared.defaults import (
    WF_START_YEAR, WF_END_YEAR, SELECTION_RATIO_CAP, SELECTION_RETURN_CAP, INFINITY_CAP,
)
from ..shared.stats import median, clamp_infinite
from ..strategies.base import StrategyDef
from ..strategies.presets import get_preset_params
from .backtest import BacktestSimulator
from .backtest_types import BacktestResult, BacktestStats
from .config import WalkForwardConfig
from .walk_forward_types import (
    WFWindow, WFRecord, SelectionRecord, TradeRecord, WalkForwardResult,
)

logger = logging.getLogger(__name__)


def generate_windows(
    train_years: int,
    test_years: int,
    start_year: int = WF_START_YEAR,
    end_year: int = WF_END_YEAR,
) -> List[WFWindow]:
    """
    Sliding calendar-year windows, advancing one year at a time.

    A window is emitted while its test period ends on or before `end_year`.
    """
    windows = []
    window_id = 1
    y = start_year
    while y + train_years + test_years - 1 <= end_year:
        train_end = y + train_years - 1
        test_start = train_end + 1
        test_end = test_start + test_years - 1
        windows.append(WFWindow(
            id=window_id,
            train_start=pd.Timestamp(f"{y}-01-01"),
            train_end=pd.Timestamp(f"{train_end}-12-31"),
            test_start=pd.Timestamp(f"{test_start}-01-01"),
            test_end=pd.Timestamp(f"{test_end}-12-31"),
            train_label=f"{y}" if train_years == 1 else f"{y}-{train_end}",
            test_label=f"{test_start}" if test_years == 1 else f"{test_start}-{test_end}",
        ))
        window_id += 1
        y += 1
    return windows


def selection_score(stats: Sequence[BacktestStats], metric: str, min_trades: int) -> Optional[float]:
    """
    Train score of one combo over the train slices, or None if rejected.

    composite: pooled win rate + min(wins/losses, 5) * 2 + min(max(sum return, 0), 100) * 0.1
    total_return: summed train return
    """
    wins = sum(s.winning_trades for s in stats)
    losses = sum(s.losing_trades for s in stats)
    total_return = sum(s.total_return_pct for s in stats)
    trades = wins + losses
    if trades < min_trades or trades == 0:
        return None
    if metric == "total_return":
        return total_return
    win_rate = wins / trades * 100
    count_ratio = wins / losses if losses > 0 else (INFINITY_CAP if wins > 0 else 0.0)
    return (
        win_rate
        + min(count_ratio, SELECTION_RATIO_CAP) * 2
        + min(max(total_return, 0.0), SELECTION_RETURN_CAP) * 0.1
    )


@dataclass
class _CellTask:
    """Everything one (strategy, window) cell needs; pickled into workers."""
    strategy: StrategyDef
    window: WFWindow
    combos: List[ParamCombo]
    fallback: ParamCombo
    slices: List[Tuple[str, pd.DataFrame, Optional[pd.DataFrame]]]  # (symbol, train, test or None)
    config: WalkForwardConfig


@dataclass
class _CellResult:
    grid_records: List[WFRecord]
    selection: Optional[SelectionRecord]
    trades: List[TradeRecord]


def _pooled(results: List[BacktestResult]) -> Tuple[int, float, float, float]:
    """(trades, pooled win rate, summed return, median return of instruments that traded)."""
    wins = sum(r.stats.winning_trades for r in results)
    trades = sum(r.stats.total_trades for r in results)
    total = sum(r.stats.total_return_pct for r in results)
    med = median(r.stats.total_return_pct for r in results if r.stats.total_trades > 0)
    return trades, (wins / trades * 100 if trades > 0 else 0.0), total, med


def _evaluate_cell(task: _CellTask) -> _CellResult:
    """
    Evaluate one (strategy, window) cell.

    This is a module-level function so it can be pickled for ProcessPoolExecutor.
    """
    strategy, window, config = task.strategy, task.window, task.config
    simulator = BacktestSimulator(config.initial_capital, force_close=config.force_close)

    train_cache: Dict[str, List[BacktestResult]] = {}

    def train_results(combo: ParamCombo) -> List[BacktestResult]:
        if combo.label not in train_cache:
            train_cache[combo.label] = [
                simulator.run_strategy(train, strategy, combo.values) for _, train, _ in task.slices
            ]
        return train_cache[combo.label]

    def test_results(combo: ParamCombo) -> List[Tuple[str, BacktestResult]]:
        return [
            (symbol, simulator.run_strategy(test, strategy, combo.values))
            for symbol, _, test in task.slices if test is not None
        ]

    grid_records = []
    if config.evaluate_full_grid:
        for combo in task.combos:
            tested = [r for _, r in test_results(combo)]
            if not tested:
                continue
            grid_records.append(WFRecord(
                strategy_id=strategy.id,
                strategy_name=strategy.name,
                combo_label=combo.label,
                combo_values=dict(combo.values),
                window_id=window.id,
                train_label=window.train_label,
                test_label=window.test_label,
                train_return=median(r.stats.total_return_pct for r in train_results(combo)),
                test_return=median(r.stats.total_return_pct for r in tested),
                test_win_rate=median(r.stats.win_rate for r in tested),
                test_trades=sum(r.stats.total_trades for r in tested),
                test_max_drawdown=median(r.stats.max_drawdown_pct for r in tested),
                test_sharpe=median(r.stats.sharpe_ratio for r in tested),
                test_profit_factor=median(clamp_infinite(r.stats.profit_factor) for r in tested),
                instruments=len(tested),
            ))

    # Best-train selection; ties keep the earlier combo
    selected = task.combos[0] if len(task.combos) == 1 else task.fallback
    selected_by_score = False
    if len(task.combos) > 1:
        best_score = None
        for combo in task.combos:
            score = selection_score(
                [r.stats for r in train_results(combo)],
                config.selection_metric,
                config.min_selection_trades,
            )
            if score is not None and (best_score is None or score > best_score):
                best_score = score
                selected = combo
        selected_by_score = best_score is not None
        if not selected_by_score:
            logger.debug(
                f"{strategy.id} {window.label}: no combo reached {config.min_selection_trades} "
                f"train trades, using {selected.label}"
            )

    tested = test_results(selected)
    if not tested:
        logger.debug(f"{strategy.id} {window.label}: no instrument has test data, selection skipped")
        return _CellResult(grid_records, None, [])

    train_trades, train_wr, train_ret, train_med = _pooled(train_results(selected))
    test_trades, test_wr, test_ret, test_med = _pooled([r for _, r in tested])

    selection = SelectionRecord(
        strategy_id=strategy.id,
        strategy_name=strategy.name,
        window_id=window.id,
        train_label=window.train_label,
        test_label=window.test_label,
        combo_label=selected.label,
        combo_values=dict(selected.values),
        selected_by_score=selected_by_score,
        train_trades=train_trades,
        train_win_rate=train_wr,
        train_return=train_ret,
        train_median_return=train_med,
        test_trades=test_trades,
        test_win_rate=test_wr,
        test_return=test_ret,
        test_median_return=test_med,
        win_rate_delta=test_wr - train_wr,
        return_delta=test_ret - train_ret,
        instruments=len(task.slices),
    )

    trades = [
        TradeRecord(
            window=window.test_label,
            strategy_id=strategy.id,
            strategy_name=strategy.name,
            symbol=symbol,
            entry_date=t.entry_date,
            exit_date=t.exit_date,
            entry_price=t.entry_price,
            exit_price=t.exit_price,
            return_pct=t.return_pct,
            win=t.is_win,
        )
        for symbol, result in tested
        for t in result.trades
    ]
    return _CellResult(grid_records, selection, trades)


class WalkForwardEvaluator:
    """Runs walk-forward evaluation over a universe of instruments."""

    def __init__(self, config: Optional[WalkForwardConfig] = None):
        self.config = config or WalkForwardConfig()
        self.windows = generate_windows(
            self.config.train_years,
            self.config.test_years,
            self.config.start_year,
            self.config.end_year,
        )

    def _fallback_combo(self, strategy: StrategyDef) -> ParamCombo:
        if self.config.preset == "default" or not strategy.params:
            return ParamGrid.default_combo(strategy)
        values = get_preset_params(strategy.id, self.config.preset, self.config.timeframe)
        default = ParamGrid.default_combo(strategy)
        if values == default.values:
            return default
        return ParamCombo(make_label(list(strategy.params), values), values)

    def _window_slices(
        self, universe: Dict[str, pd.DataFrame], window: WFWindow,
    ) -> List[Tuple[str, pd.DataFrame, Optional[pd.DataFrame]]]:
        """Train/test slices of every instrument with enough train history."""
        slices = []
        for symbol in sorted(universe):
            frame = universe[symbol]
            train = slice_frame(frame, window.train_start, window.train_end)
            if len(train) < self.config.min_train_bars:
                logger.debug(f"{symbol} {window.label}: {len(train)} train bars, excluded")
                continue
            test = slice_frame(frame, window.test_start, window.test_end)
            slices.append((symbol, train, test if len(test) >= self.config.min_test_bars else None))
        return slices

    def build_tasks(
        self, universe: Dict[str, pd.DataFrame], strategies: Sequence[StrategyDef],
    ) -> List[_CellTask]:
        slices_by_window = {w.id: self._window_slices(universe, w) for w in self.windows}
        tasks = []
        for strategy in strategies:
            combos = ParamGrid.generate(strategy)
            fallback = self._fallback_combo(strategy)
            if not combos:
                combos = [fallback]
            for window in self.windows:
                slices = slices_by_window[window.id]
                if not slices:
                    logger.debug(f"{strategy.id} {window.label}: no eligible instruments, skipped")
                    continue
                tasks.append(_CellTask(strategy, window, combos, fallback, slices, self.config))
        return tasks

    def run(
        self, universe: Dict[str, pd.DataFrame], strategies: Sequence[StrategyDef],
    ) -> WalkForwardResult:
        """
        Evaluate every (strategy, window) cell.

        Args:
            universe: Symbol -> price frame (ascending DatetimeIndex)
            strategies: Strategy definitions to evaluate

        Returns:
            WalkForwardResult with windows, grid, selection and trade records
        """
        result = WalkForwardResult(windows=list(self.windows))
        tasks = self.build_tasks(universe, strategies)
        logger.info(
            f"Walk-forward: {len(strategies)} strategies x {len(self.windows)} windows "
            f"= {len(tasks)} cells over {len(universe)} instruments"
        )
        t0 = time.time()

        for cell in self._execute(tasks):
            if cell is None:
                result.failed_cells += 1
                continue
            result.grid_records.extend(cell.grid_records)
            if cell.selection is not None:
                result.selection_records.append(cell.selection)
            result.trade_records.extend(cell.trades)

        logger.info(
            f"Walk-forward completed in {time.time() - t0:.1f}s: "
            f"{len(result.selection_records)} selections, {len(result.grid_records)} grid records, "
            f"{len(result.trade_records)} test trades, {result.failed_cells} failed cells"
        )
        return result

    def _execute(self, tasks: List[_CellTask]) -> List[Optional[_CellResult]]:
        """Run tasks, returning results in submission order (None for a failed cell)."""
        if self.config.max_workers <= 1 or len(tasks) <= 1:
            results = []
            for task in tasks:
                try:
                    results.append(_evaluate_cell(task))
                except Exception as e:
                    logger.warning(f"Cell {task.strategy.id} {task.window.label} failed: {e}")
                    results.append(None)
            return results

        results = []
        with ProcessPoolExecutor(max_workers=self.config.max_workers) as executor:
            futures = [executor.submit(_evaluate_cell, task) for task in tasks]
            for task, future in zip(tasks, futures):
                try:
                    results.append(future.result())
                except Exception as e:
                    logger.warning(f"Cell {task.strategy.id} {task.window.label} failed: {e}")
                    results.append(None)
        return results
