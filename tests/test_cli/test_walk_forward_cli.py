"""
End-to-end tests for the walk-forward and portfolio command-line entry points.
"""
import numpy as np
import pandas as pd
import pytest

from cli import portfolio as portfolio_cli
from cli import walk_forward as walk_forward_cli


def write_wave(path, period, phase=0.0):
    dates = pd.date_range('2016-01-01', '2020-12-31', freq='B')
    t = np.arange(len(dates))
    closes = 100 + 10 * np.sin(2 * np.pi * t / period + phase) + 0.02 * t
    df = pd.DataFrame({
        'Open': closes - 0.2,
        'High': closes + 1.0,
        'Low': closes - 1.0,
        'Close': closes,
        'Volume': 1_000_000.0,
    }, index=dates)
    df.index.name = 'Date'
    df.to_csv(path)


@pytest.fixture(scope="module")
def data_dir(tmp_path_factory):
    path = tmp_path_factory.mktemp("prices")
    write_wave(path / "AAA.csv", 40)
    write_wave(path / "BBB.csv", 33, phase=1.0)
    return path


WF_ARGS = ["--train-years", "2", "--test-years", "1", "--start-year", "2016", "--end-year", "2020"]


class TestWalkForwardCLI:
    def test_list_strategies(self, capsys):
        assert walk_forward_cli.main(["--list-strategies"]) == 0
        out = capsys.readouterr().out
        assert "ma_cross" in out
        assert "bb_breakdown_gap" in out

    def test_end_to_end(self, data_dir, tmp_path):
        out = tmp_path / "results"
        code = walk_forward_cli.main([
            "--data-dir", str(data_dir), "--strategies", "ma_cross", "bb_mean_reversion",
            "--output-dir", str(out), *WF_ARGS,
        ])
        assert code == 0
        for name in ("selections.csv", "grid_records.csv", "trades.csv", "scores.csv", "walk_forward_report.md"):
            assert (out / name).exists(), name

        selections = pd.read_csv(out / "selections.csv")
        assert len(selections) == 2 * 3
        scores = pd.read_csv(out / "scores.csv")
        assert set(scores.loc[scores["rank"] == 1, "strategy_id"]) == {"ma_cross", "bb_mean_reversion"}

    def test_config_file_with_overrides(self, data_dir, tmp_path):
        config = tmp_path / "run.yaml"
        config.write_text(
            f"name: cli\n"
            f"data:\n  dir: {data_dir}\n  symbols: [AAA]\n"
            f"strategies: [dip_buy]\n"
            f"walk_forward:\n  train_years: 3\n  start_year: 2016\n  end_year: 2020\n"
            f"output_dir: {tmp_path / 'from_config'}\n"
        )
        out = tmp_path / "override"
        code = walk_forward_cli.main(["--config", str(config), "--output-dir", str(out), "--train-years", "2"])
        assert code == 0
        selections = pd.read_csv(out / "selections.csv")
        assert set(selections["strategy_id"]) == {"dip_buy"}
        assert set(selections["instruments"]) == {1}
        assert len(selections) == 3
        assert not (tmp_path / "from_config").exists()

    def test_log_file(self, data_dir, tmp_path):
        log = tmp_path / "logs" / "run.log"
        code = walk_forward_cli.main([
            "--data-dir", str(data_dir), "--strategies", "bb_mean_reversion",
            "--output-dir", str(tmp_path / "out"), "--log-file", str(log), *WF_ARGS,
        ])
        assert code == 0
        assert "Walk-forward" in log.read_text()

    def test_unknown_strategy(self, data_dir, tmp_path):
        code = walk_forward_cli.main(["--data-dir", str(data_dir), "--strategies", "bogus"])
        assert code == 1

    def test_missing_data_dir(self, tmp_path):
        assert walk_forward_cli.main(["--data-dir", str(tmp_path / "nope")]) == 1

    def test_no_data_dir(self):
        assert walk_forward_cli.main([]) == 1

    def test_empty_data_dir(self, tmp_path):
        assert walk_forward_cli.main(["--data-dir", str(tmp_path)]) == 1


class TestPortfolioCLI:
    def test_end_to_end(self, data_dir, tmp_path):
        out = tmp_path / "portfolio"
        code = portfolio_cli.main([
            "--data-dir", str(data_dir), "--strategies", "ma_cross", "dip_buy",
            "--threshold", "3", "--output-dir", str(out),
        ])
        assert code == 0
        equity = pd.read_csv(out / "strategy_equity.csv", index_col=0)
        assert list(equity.columns) == ["ma_cross", "dip_buy"]
        portfolio = pd.read_csv(out / "portfolio_equity.csv", index_col=0)
        assert list(portfolio.columns) == ["equity", "drawdown_pct"]
        correlations = pd.read_csv(out / "correlations.csv")
        assert len(correlations) == 1
        assert "return_correlation" in correlations.columns
        assert (out / "drawdown_periods.csv").exists()

    def test_params_from_scores(self, data_dir, tmp_path):
        wf_out = tmp_path / "wf"
        assert walk_forward_cli.main([
            "--data-dir", str(data_dir), "--strategies", "ma_cross",
            "--output-dir", str(wf_out), *WF_ARGS,
        ]) == 0
        recommended = portfolio_cli.load_recommended_params(wf_out / "scores.csv")
        assert set(recommended) == {"ma_cross"}
        assert set(recommended["ma_cross"]) == {"shortPeriod", "longPeriod"}

        code = portfolio_cli.main([
            "--data-dir", str(data_dir), "--strategies", "ma_cross",
            "--params-from", str(wf_out / "scores.csv"), "--output-dir", str(tmp_path / "pf"),
        ])
        assert code == 0

    def test_missing_scores_file(self, data_dir, tmp_path):
        code = portfolio_cli.main([
            "--data-dir", str(data_dir), "--strategies", "ma_cross",
            "--params-from", str(tmp_path / "missing.csv"),
        ])
        assert code == 1
