#!/usr/bin/env python3
"""
Portfolio CLI.

Builds one equity curve per strategy over a universe, combines them
under equal allocation and reports drawdowns and cross-strategy
correlations.
"""
import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from cli.walk_forward import setup_logging
from wflab.data.loader import PriceLoader, PriceDataError
from wflab.evaluation.config import RunConfig
from wflab.evaluation.config_loader import load_config_from_yaml
from wflab.evaluation.correlation import (
    drawdown_correlations, return_correlations, find_drawdown_periods,
)
from wflab.evaluation.portfolio import build_strategy_equity, build_portfolio
from wflab.strategies.base import ParamValues
from wflab.strategies.presets import get_preset_params
from wflab.strategies.registry import get_strategy, list_strategies

logger = logging.getLogger(__name__)


def load_recommended_params(scores_csv: Path) -> Dict[str, ParamValues]:
    """Rank-1 combo values per strategy from a walk-forward scores.csv."""
    scores_csv = Path(scores_csv)
    if not scores_csv.exists():
        raise FileNotFoundError(f"Scores file not found: {scores_csv}")
    df = pd.read_csv(scores_csv)
    best = df[df["rank"] == 1]
    return {row.strategy_id: json.loads(row.combo_values) for row in best.itertuples()}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Combine strategy equities into an equal-allocation portfolio",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Optimized presets for three strategies
    python -m cli.portfolio --data-dir data/prices --strategies macd_trail dip_buy cwh_trail

    # Parameters recommended by a previous walk-forward run
    python -m cli.portfolio --config configs/baseline.yaml --params-from results/scores.csv
        """
    )
    parser.add_argument("--config", "-c", type=str, help="YAML run configuration")
    parser.add_argument("--data-dir", "-d", type=str, help="Directory of <symbol>.csv price files")
    parser.add_argument("--symbols", nargs="+", help="Symbols to load (default: every CSV)")
    parser.add_argument("--strategies", "-s", nargs="+", help="Strategy ids (default: whole catalogue)")
    parser.add_argument("--preset", choices=["default", "optimized"], help="Parameter preset")
    parser.add_argument("--params-from", type=str, metavar="CSV", help="Use rank-1 combos from a scores.csv")
    parser.add_argument("--threshold", type=float, help="Drawdown threshold (%%) for co-stress and periods")
    parser.add_argument("--force-close", action="store_true", help="Close open positions at the last bar")
    parser.add_argument("--output-dir", "-o", type=str, help="Output directory for results")
    parser.add_argument("--log-file", type=str, help="Also write logs to this file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(Path(args.log_file) if args.log_file else None, args.verbose)

    try:
        config = load_config_from_yaml(args.config) if args.config else RunConfig()
        pf_changes = {}
        if args.strategies:
            pf_changes["strategies"] = list(args.strategies)
        if args.preset:
            pf_changes["preset"] = args.preset
        if args.threshold is not None:
            pf_changes["drawdown_threshold"] = args.threshold
        if args.force_close:
            pf_changes["force_close"] = True
        pf = dataclasses.replace(config.portfolio, **pf_changes)

        data_dir = args.data_dir or config.data_dir
        if not data_dir:
            raise ValueError("No data directory given (use --data-dir or data.dir in the config)")
        universe = PriceLoader(data_dir).load_universe(
            args.symbols or config.symbols,
            config.start_date,
            config.end_date,
            timeframe=pf.timeframe,
        )
        if not universe:
            raise ValueError(f"No price data loaded from {data_dir}")

        strategies = [get_strategy(s) for s in pf.strategies] if pf.strategies else list_strategies()
        recommended = load_recommended_params(Path(args.params_from)) if args.params_from else {}

        equities = []
        for strategy in strategies:
            params = recommended.get(strategy.id) or get_preset_params(strategy.id, pf.preset, pf.timeframe)
            equity = build_strategy_equity(
                strategy, params, universe, pf.initial_capital, force_close=pf.force_close,
            )
            logger.info(
                f"{strategy.id:22s} return={equity.total_return_pct:8.2f}% maxDD={equity.max_drawdown_pct:6.2f}% "
                f"trades={equity.total_trades:5d} WR={equity.win_rate:5.1f}% sharpe={equity.sharpe_ratio:5.2f}"
            )
            equities.append(equity)

        portfolio = build_portfolio(equities, pf.initial_capital)
        recovery = portfolio.max_dd_recovery_date.date() if portfolio.recovered else "unrecovered"
        logger.info(
            f"Portfolio: return={portfolio.total_return_pct:.2f}% maxDD={portfolio.max_drawdown_pct:.2f}% "
            f"sharpe={portfolio.sharpe_ratio:.2f} (peak {portfolio.max_dd_peak_date}, "
            f"bottom {portfolio.max_dd_bottom_date}, recovery {recovery})"
        )
        for year, ret in sorted(portfolio.annual_returns.items()):
            logger.info(f"  {year}: {ret:+.2f}%")

        output_dir = Path(args.output_dir or config.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        pd.DataFrame({se.strategy_id: se.equity for se in equities}).to_csv(output_dir / "strategy_equity.csv")
        pd.DataFrame({
            "equity": portfolio.equity,
            "drawdown_pct": portfolio.drawdown_pct,
        }).to_csv(output_dir / "portfolio_equity.csv")

        dd_corr = drawdown_correlations(equities, pf.drawdown_threshold)
        ret_corr = {(c.strategy_a, c.strategy_b): c.correlation for c in return_correlations(equities)}
        corr_rows = [
            {**dataclasses.asdict(c), "return_correlation": ret_corr.get((c.strategy_a, c.strategy_b), 0.0)}
            for c in dd_corr
        ]
        pd.DataFrame(corr_rows).to_csv(output_dir / "correlations.csv", index=False)

        periods = [
            dataclasses.asdict(p)
            for se in equities
            for p in find_drawdown_periods(se, pf.drawdown_threshold)
        ]
        pd.DataFrame(periods).to_csv(output_dir / "drawdown_periods.csv", index=False)
        logger.info(f"Results written to {output_dir}")
    except (FileNotFoundError, PriceDataError, ValueError, KeyError) as e:
        logger.error(f"{e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
