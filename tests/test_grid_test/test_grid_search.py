"""Tests for wflab.grid_test.grid_search (value sampling, labels, grid expansion)."""
import pytest

from wflab.grid_test.grid_search import (
    ParamCombo,
    ParamGrid,
    abbreviate_key,
    generate_values,
    make_label,
    max_values_per_param,
)
from wflab.strategies.base import ParamDef
from wflab.strategies.registry import get_strategy, list_strategies


class TestMaxValuesPerParam:
    @pytest.mark.parametrize("num_params,expected", [(1, 8), (2, 8), (3, 5), (4, 5), (5, 4), (6, 4)])
    def test_caps(self, num_params, expected):
        assert max_values_per_param(num_params) == expected


class TestGenerateValues:
    def test_fixed_param(self):
        assert generate_values(ParamDef("atrPeriod", "ATR", 14), 8) == [14]

    def test_short_range_is_complete(self):
        param = ParamDef("trailPct", "Trail", 5, 3, 7)
        assert generate_values(param, 8) == [3, 4, 5, 6, 7]

    def test_fractional_step_is_inclusive(self):
        param = ParamDef("volumeMultiple", "Volume", 2, 1.5, 3, 0.5)
        assert generate_values(param, 8) == [1.5, 2.0, 2.5, 3.0]

    def test_subsampled_range_keeps_bounds_and_default(self):
        param = ParamDef("shortPeriod", "Short MA", 5, 2, 50)
        values = generate_values(param, 8)
        assert values == [2, 5, 9, 16, 23, 29, 36, 50]

    @pytest.mark.parametrize("max_count", [3, 4, 5, 8])
    def test_cap_is_enforced(self, max_count):
        param = ParamDef("longPeriod", "Long MA", 25, 5, 200)
        values = generate_values(param, max_count)
        assert len(values) <= max_count
        assert values[0] == 5 and values[-1] == 200
        assert 25 in values
        assert values == sorted(set(values))


class TestLabels:
    @pytest.mark.parametrize("key,expected", [
        ("shortPeriod", "S"),
        ("longPeriod", "L"),
        ("signalPeriod", "Sig"),
        ("stopLossPct", "SL"),
        ("takeProfitPct", "TP"),
        ("trailPct", "Tr"),
        ("dipPct", "Dip"),
        ("recoveryPct", "Rec"),
        ("oversold", "OS"),
        ("overbought", "OB"),
        ("rsiThreshold", "RSI"),
        ("volumeMultiple", "Vol"),
        ("atrPeriod", "ATR"),
    ])
    def test_abbreviate_key(self, key, expected):
        assert abbreviate_key(key) == expected

    def test_make_label(self):
        strategy = get_strategy("macd_signal")
        assert make_label(list(strategy.params), strategy.default_params()) == "S12/L26/Sig9"

    def test_fractional_value(self):
        params = [ParamDef("volumeMultiple", "Volume", 2, 1.5, 5, 0.5)]
        assert make_label(params, {"volumeMultiple": 1.5}) == "Vol1.5"


class TestParamGrid:
    def test_ma_cross_grid(self):
        strategy = get_strategy("ma_cross")
        combos = ParamGrid.generate(strategy)
        # 8 x 8 candidates minus the 12 with short >= long
        assert len(combos) == 52
        assert all(c.values["shortPeriod"] < c.values["longPeriod"] for c in combos)
        assert len({c.label for c in combos}) == len(combos)

    def test_declaration_order(self):
        combos = ParamGrid.generate(get_strategy("ma_cross"))
        assert combos[0] == ParamCombo("S2/L5", {"shortPeriod": 2, "longPeriod": 5})

    def test_fixed_params_do_not_shrink_the_cap(self):
        combos = ParamGrid.generate(get_strategy("dip_buy"))
        assert len(combos) == 64
        assert len({c.values["dipPct"] for c in combos}) == 8
        assert len({c.values["recoveryPct"] for c in combos}) == 8
        assert {c.values["stopLossPct"] for c in combos} == {get_strategy("dip_buy").params[2].default}

    def test_parameterless_strategy(self):
        assert ParamGrid.generate(get_strategy("bb_mean_reversion")) == [ParamCombo("default", {})]

    def test_default_combo(self):
        combo = ParamGrid.default_combo(get_strategy("ma_cross"))
        assert combo == ParamCombo("S5/L25", {"shortPeriod": 5, "longPeriod": 25})

    @pytest.mark.parametrize("strategy", list_strategies(), ids=lambda s: s.id)
    def test_every_combo_valid_and_bounded(self, strategy):
        combos = ParamGrid.generate(strategy)
        assert combos
        cap = max_values_per_param(sum(1 for p in strategy.params if not p.is_fixed))
        for param in strategy.params:
            assert len({c.values[param.key] for c in combos}) <= cap
        assert all(strategy.is_valid(c.values) for c in combos)
