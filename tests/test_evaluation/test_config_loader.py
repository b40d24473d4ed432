"""
Tests for run configuration validation and YAML loading.
"""
from pathlib import Path

import pytest
import yaml

from wflab.evaluation.config import (
    PortfolioConfig,
    RunConfig,
    ScoringWeights,
    WalkForwardConfig,
)
from wflab.evaluation.config_loader import load_config_from_yaml, save_config_to_yaml

BASELINE = Path(__file__).resolve().parents[2] / "configs" / "baseline.yaml"


def write_yaml(path, data):
    with open(path, 'w') as f:
        yaml.safe_dump(data, f)
    return path


class TestWalkForwardConfig:
    def test_defaults(self):
        config = WalkForwardConfig()
        assert (config.train_years, config.test_years) == (3, 1)
        assert (config.start_year, config.end_year) == (2016, 2025)
        assert config.min_selection_trades == 3
        assert config.selection_metric == "composite"
        assert not config.force_close

    @pytest.mark.parametrize("kwargs", [
        {"train_years": 0},
        {"test_years": 0},
        {"start_year": 2026, "end_year": 2025},
        {"selection_metric": "sharpe"},
        {"preset": "best"},
        {"timeframe": "hourly"},
        {"initial_capital": 0},
        {"max_workers": 0},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            WalkForwardConfig(**kwargs)


class TestScoringWeights:
    def test_defaults(self):
        weights = ScoringWeights()
        assert (weights.median, weights.minimum, weights.stddev, weights.overfit) == (0.4, 0.3, 0.2, 0.1)

    def test_negative_weight(self):
        with pytest.raises(ValueError):
            ScoringWeights(median=-0.1)

    def test_all_zero(self):
        with pytest.raises(ValueError):
            ScoringWeights(median=0, minimum=0, stddev=0, overfit=0)


class TestPortfolioConfig:
    def test_invalid_threshold(self):
        with pytest.raises(ValueError):
            PortfolioConfig(drawdown_threshold=0)


class TestLoadConfig:
    def test_baseline_file(self):
        config = load_config_from_yaml(BASELINE)
        assert config.name == "baseline"
        assert config.data_dir == "data/prices"
        assert config.symbols is None
        assert config.start_date == "2016-01-01"
        assert config.walk_forward.strategies is None
        assert config.walk_forward.max_workers == 4
        assert config.portfolio.strategies == ["macd_trail", "dip_buy", "cwh_trail", "bb_mean_reversion"]

    def test_minimal_file_uses_defaults(self, tmp_path):
        path = write_yaml(tmp_path / "minimal.yaml", {"data": {"dir": "prices"}})
        config = load_config_from_yaml(path)
        assert config.name == "minimal"
        assert config.walk_forward == WalkForwardConfig()
        assert config.scoring == ScoringWeights()
        assert config.portfolio.preset == "optimized"
        assert config.output_dir == "results"

    def test_portfolio_inherits_strategies(self, tmp_path):
        path = write_yaml(tmp_path / "c.yaml", {"strategies": ["ma_cross", "dip_buy"]})
        config = load_config_from_yaml(path)
        assert config.walk_forward.strategies == ["ma_cross", "dip_buy"]
        assert config.portfolio.strategies == ["ma_cross", "dip_buy"]

    def test_timeframe_applies_to_both(self, tmp_path):
        path = write_yaml(tmp_path / "c.yaml", {"data": {"timeframe": "weekly"}})
        config = load_config_from_yaml(path)
        assert config.walk_forward.timeframe == "weekly"
        assert config.portfolio.timeframe == "weekly"

    def test_single_symbol_string(self, tmp_path):
        path = write_yaml(tmp_path / "c.yaml", {"data": {"symbols": "7203"}})
        assert load_config_from_yaml(path).symbols == ["7203"]

    def test_unknown_strategy(self, tmp_path):
        path = write_yaml(tmp_path / "c.yaml", {"strategies": ["ma_cross", "bogus"]})
        with pytest.raises(ValueError, match="bogus"):
            load_config_from_yaml(path)

    def test_invalid_value(self, tmp_path):
        path = write_yaml(tmp_path / "c.yaml", {"walk_forward": {"selection_metric": "sharpe"}})
        with pytest.raises(ValueError):
            load_config_from_yaml(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config_from_yaml(tmp_path / "nope.yaml")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        with pytest.raises(ValueError):
            load_config_from_yaml(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            load_config_from_yaml(path)


class TestSaveConfig:
    def test_round_trip(self, tmp_path):
        config = RunConfig(
            name="rt",
            description="round trip",
            data_dir="prices",
            symbols=["AAA", "BBB"],
            start_date="2016-01-01",
            output_dir="out",
            walk_forward=WalkForwardConfig(train_years=2, max_workers=3, strategies=["ma_cross"]),
            scoring=ScoringWeights(median=0.5, minimum=0.25, stddev=0.15, overfit=0.1),
            portfolio=PortfolioConfig(strategies=["dip_buy"], preset="default", drawdown_threshold=8.0),
        )
        path = tmp_path / "nested" / "rt.yaml"
        save_config_to_yaml(config, path)
        assert load_config_from_yaml(path) == config
