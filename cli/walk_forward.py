#!/usr/bin/env python3
"""
Walk-forward CLI.

Loads per-instrument price CSVs, runs calendar-year walk-forward
evaluation over the strategy catalogue, scores parameter stability and
writes CSV results plus a markdown report.
"""
import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import List, Optional

from wflab.data.loader import PriceLoader, PriceDataError
from wflab.evaluation.config import RunConfig
from wflab.evaluation.config_loader import load_config_from_yaml
from wflab.evaluation.walk_forward import WalkForwardEvaluator
from wflab.grid_test.analysis import save_results
from wflab.grid_test.stability import StabilityScorer
from wflab.strategies.registry import get_strategy, list_strategies

logger = logging.getLogger(__name__)


def setup_logging(log_path: Optional[Path] = None, verbose: bool = False):
    """
    Setup logging to stdout and optionally to file.

    Args:
        log_path: Path to log file (None = stdout only)
        verbose: If True, use DEBUG level, otherwise INFO
    """
    level = logging.DEBUG if verbose else logging.INFO

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_path:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run walk-forward evaluation and parameter stability scoring",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # All strategies over every CSV in data/prices, 3-year train / 1-year test
    python -m cli.walk_forward --data-dir data/prices

    # Settings from YAML, two strategies, 4 worker processes
    python -m cli.walk_forward --config configs/baseline.yaml --strategies ma_cross macd_trail --workers 4

    # List the strategy catalogue
    python -m cli.walk_forward --list-strategies
        """
    )
    parser.add_argument("--config", "-c", type=str, help="YAML run configuration")
    parser.add_argument("--data-dir", "-d", type=str, help="Directory of <symbol>.csv price files")
    parser.add_argument("--symbols", nargs="+", help="Symbols to load (default: every CSV)")
    parser.add_argument("--strategies", "-s", nargs="+", help="Strategy ids (default: whole catalogue)")
    parser.add_argument("--train-years", type=int, help="Train window length in years")
    parser.add_argument("--test-years", type=int, help="Test window length in years")
    parser.add_argument("--start-year", type=int, help="First train year")
    parser.add_argument("--end-year", type=int, help="Last test year")
    parser.add_argument(
        "--selection-metric",
        choices=["composite", "total_return"],
        help="Train score used to pick the best combo per window",
    )
    parser.add_argument("--force-close", action="store_true", help="Close open positions at the last bar")
    parser.add_argument("--no-full-grid", action="store_true", help="Skip per-combo test records (no stability scores)")
    parser.add_argument("--workers", type=int, help="Parallel worker processes (default: 1)")
    parser.add_argument("--output-dir", "-o", type=str, help="Output directory for results")
    parser.add_argument("--log-file", type=str, help="Also write logs to this file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("--list-strategies", action="store_true", help="Print the strategy catalogue and exit")
    return parser


def apply_overrides(config: RunConfig, args: argparse.Namespace) -> RunConfig:
    """Command-line arguments take precedence over the YAML configuration."""
    wf_changes = {}
    for arg, field_name in (
        ("train_years", "train_years"),
        ("test_years", "test_years"),
        ("start_year", "start_year"),
        ("end_year", "end_year"),
        ("selection_metric", "selection_metric"),
        ("workers", "max_workers"),
    ):
        value = getattr(args, arg)
        if value is not None:
            wf_changes[field_name] = value
    if args.strategies:
        for strategy_id in args.strategies:
            get_strategy(strategy_id)
        wf_changes["strategies"] = list(args.strategies)
    if args.force_close:
        wf_changes["force_close"] = True
    if args.no_full_grid:
        wf_changes["evaluate_full_grid"] = False

    changes = {"walk_forward": dataclasses.replace(config.walk_forward, **wf_changes)}
    if args.data_dir:
        changes["data_dir"] = args.data_dir
    if args.symbols:
        changes["symbols"] = list(args.symbols)
    if args.output_dir:
        changes["output_dir"] = args.output_dir
    return dataclasses.replace(config, **changes)


def print_strategies():
    for strategy in list_strategies():
        params = ", ".join(
            f"{p.key}={p.default:g}" + ("" if p.is_fixed else f" [{p.min:g}..{p.max:g}]")
            for p in strategy.params
        ) or "-"
        print(f"{strategy.id:22s} {strategy.name:30s} {params}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.list_strategies:
        print_strategies()
        return 0

    setup_logging(Path(args.log_file) if args.log_file else None, args.verbose)

    try:
        config = load_config_from_yaml(args.config) if args.config else RunConfig()
        config = apply_overrides(config, args)
        if not config.data_dir:
            raise ValueError("No data directory given (use --data-dir or data.dir in the config)")

        loader = PriceLoader(config.data_dir)
        universe = loader.load_universe(
            config.symbols,
            config.start_date,
            config.end_date,
            timeframe=config.walk_forward.timeframe,
        )
        if not universe:
            raise ValueError(f"No price data loaded from {config.data_dir}")

        strategy_ids = config.walk_forward.strategies
        strategies = [get_strategy(s) for s in strategy_ids] if strategy_ids else list_strategies()

        evaluator = WalkForwardEvaluator(config.walk_forward)
        result = evaluator.run(universe, strategies)

        scores = StabilityScorer(config.scoring).score(result.grid_records, result.windows)
        paths = save_results(result, scores, Path(config.output_dir))

        for strategy_id, score in StabilityScorer.recommend(scores).items():
            logger.info(
                f"{strategy_id:22s} recommended {score.combo_label:30s} "
                f"score={score.composite_score:.3f} test median={score.test_return_median:.2f}%"
            )
        logger.info(f"Report: {paths['report']}")
    except (FileNotFoundError, PriceDataError, ValueError, KeyError) as e:
        logger.error(f"{e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
