"""
Tests for drawdown / return correlations and drawdown periods.
"""
import pandas as pd
import pytest

from wflab.evaluation.correlation import (
    drawdown_correlations,
    find_drawdown_periods,
    pearson,
    return_correlations,
)
from wflab.evaluation.portfolio import drawdown_series
from wflab.evaluation.portfolio_types import StrategyEquity


def make_equity(strategy_id, values, start='2021-01-04') -> StrategyEquity:
    index = pd.date_range(start, periods=len(values), freq='D')
    equity = pd.Series(values, index=index, dtype=float)
    return StrategyEquity(strategy_id, strategy_id, equity, drawdown_series(equity, 100.0), initial_capital=100.0)


def with_drawdowns(strategy_id, drawdowns, start='2021-01-01') -> StrategyEquity:
    index = pd.date_range(start, periods=len(drawdowns), freq='D')
    dd = pd.Series(drawdowns, index=index, dtype=float)
    return StrategyEquity(strategy_id, strategy_id, 100.0 - dd, dd, initial_capital=100.0)


class TestPearson:
    def test_self_correlation(self):
        x = [1.0, 3.0, 2.0, 5.0]
        assert pearson(x, x) == 1.0

    def test_symmetry(self):
        x = [1.0, 3.0, 2.0, 5.0, 4.0]
        y = [2.0, 1.0, 4.0, 3.0, 6.0]
        assert pearson(x, y) == pearson(y, x)

    def test_anti_correlation(self):
        assert pearson([1.0, 2.0, 3.0], [3.0, 2.0, 1.0]) == -1.0

    def test_degenerate_inputs(self):
        assert pearson([1.0], [2.0]) == 0.0
        assert pearson([1.0, 1.0, 1.0], [1.0, 2.0, 3.0]) == 0.0

    def test_rounded(self):
        value = pearson([1.0, 2.0, 3.0, 4.0], [1.0, 3.0, 2.0, 4.0])
        assert value == round(value, 6)


class TestDrawdownCorrelations:
    def test_identical_curves(self):
        values = [100.0, 90.0, 85.0, 95.0, 100.0, 93.0]
        results = drawdown_correlations([make_equity("a", values), make_equity("b", values)], threshold=5.0)
        assert len(results) == 1
        r = results[0]
        assert (r.strategy_a, r.strategy_b) == ("a", "b")
        assert r.correlation == 1.0
        # Drawdowns: 0, 10, 15, 5, 0, 7 -> three days strictly above 5%
        assert r.co_stress_days == 3
        assert r.co_stress_pct == 50.0

    def test_pairs(self):
        equities = [make_equity(s, [100.0, 95.0, 100.0]) for s in ("a", "b", "c")]
        pairs = [(r.strategy_a, r.strategy_b) for r in drawdown_correlations(equities)]
        assert pairs == [("a", "b"), ("a", "c"), ("b", "c")]

    def test_common_dates_only(self):
        a = make_equity("a", [100.0, 90.0, 95.0, 100.0])
        b = make_equity("b", [100.0, 100.0], start='2021-01-10')
        r = drawdown_correlations([a, b])[0]
        assert r.co_stress_days == 0
        assert r.co_stress_pct == 0.0
        assert r.correlation == 0.0


class TestReturnCorrelations:
    def test_opposite_moves(self):
        a = make_equity("a", [100.0, 110.0, 99.0, 108.9])
        b = make_equity("b", [100.0, 90.0, 99.0, 89.1])
        assert return_correlations([a, b])[0].correlation == -1.0

    def test_self(self):
        values = [100.0, 102.0, 101.0, 105.0]
        r = return_correlations([make_equity("a", values), make_equity("b", values)])[0]
        assert r.correlation == 1.0
        assert r.co_stress_days == 0


class TestDrawdownPeriods:
    def test_recovered_and_open_periods(self):
        se = with_drawdowns("a", [0, 6, 8, 3, 1, 0, 7])
        periods = find_drawdown_periods(se, threshold=5.0)
        assert len(periods) == 2

        first, second = periods
        dates = se.drawdown_pct.index
        assert (first.start, first.bottom, first.end) == (dates[1], dates[2], dates[4])
        assert first.depth == 8.0
        assert first.duration_days == 3
        assert first.recovered

        assert second.start == dates[6]
        assert second.end == dates[6]
        assert not second.recovered

    def test_shallow_drawdowns_ignored(self):
        se = with_drawdowns("a", [0, 2, 4.9, 1, 0])
        assert find_drawdown_periods(se, threshold=5.0) == []

    def test_recovery_needs_drop_below_ratio(self):
        se = with_drawdowns("a", [5, 2, 1.6, 1.4])
        periods = find_drawdown_periods(se, threshold=5.0)
        assert len(periods) == 1
        assert periods[0].end == se.drawdown_pct.index[3]
        assert periods[0].depth == 5.0
