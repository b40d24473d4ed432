"""
YAML configuration loader for evaluation runs.

Loads run configurations from YAML files, allowing runs to be shared
and modified without code changes. Sections: walk_forward, scoring,
portfolio, strategies, data.
"""
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional, Union

import yaml

from ..shared.defaults import (
    WF_TRAIN_YEARS, WF_TEST_YEARS, WF_START_YEAR, WF_END_YEAR,
    MIN_TRAIN_BARS, MIN_TEST_BARS, MIN_SELECTION_TRADES,
    WEIGHT_MEDIAN, WEIGHT_MINIMUM, WEIGHT_STDDEV, WEIGHT_OVERFIT,
    INITIAL_CAPITAL, DRAWDOWN_THRESHOLD_PCT,
)
from ..strategies.registry import STRATEGIES
from .config import RunConfig, WalkForwardConfig, ScoringWeights, PortfolioConfig


def _strategy_ids(raw, source: str) -> Optional[List[str]]:
    """Validate a strategies list; None or empty means the whole catalogue."""
    if raw is None:
        return None
    ids = raw if isinstance(raw, list) else [raw]
    unknown = [s for s in ids if s not in STRATEGIES]
    if unknown:
        raise ValueError(
            f"Unknown strategy ids in {source}: {unknown}. Available: {sorted(STRATEGIES)}"
        )
    return list(ids) or None


def load_config_from_yaml(yaml_path: Union[str, Path]) -> RunConfig:
    """
    Load a run configuration from a YAML file.

    Args:
        yaml_path: Path to YAML configuration file

    Returns:
        RunConfig object

    Raises:
        FileNotFoundError: If YAML file doesn't exist
        ValueError: If YAML is empty, names unknown strategies or has invalid values
    """
    yaml_path = Path(yaml_path)

    if not yaml_path.exists():
        raise FileNotFoundError(f"Config file not found: {yaml_path}")

    with open(yaml_path, 'r') as f:
        config_dict = yaml.safe_load(f)

    if not config_dict:
        raise ValueError(f"Empty config file: {yaml_path}")
    if not isinstance(config_dict, dict):
        raise ValueError(f"Config file must contain a mapping: {yaml_path}")

    wf = config_dict.get('walk_forward', {}) or {}
    scoring = config_dict.get('scoring', {}) or {}
    portfolio = config_dict.get('portfolio', {}) or {}
    data_params = config_dict.get('data', {}) or {}

    strategies = _strategy_ids(config_dict.get('strategies'), str(yaml_path))
    portfolio_strategies = _strategy_ids(portfolio.get('strategies'), f"{yaml_path} (portfolio)")

    raw_symbols = data_params.get('symbols')
    if raw_symbols is None or (isinstance(raw_symbols, list) and len(raw_symbols) == 0):
        symbols = None
    else:
        symbols = [str(s) for s in raw_symbols] if isinstance(raw_symbols, list) else [str(raw_symbols)]

    timeframe = data_params.get('timeframe', 'daily')

    return RunConfig(
        name=config_dict.get('name', yaml_path.stem),
        description=config_dict.get('description', ''),
        data_dir=data_params.get('dir'),
        symbols=symbols,
        start_date=_as_str(data_params.get('start_date')),
        end_date=_as_str(data_params.get('end_date')),
        output_dir=config_dict.get('output_dir', 'results'),
        walk_forward=WalkForwardConfig(
            train_years=wf.get('train_years', WF_TRAIN_YEARS),
            test_years=wf.get('test_years', WF_TEST_YEARS),
            start_year=wf.get('start_year', WF_START_YEAR),
            end_year=wf.get('end_year', WF_END_YEAR),
            min_train_bars=wf.get('min_train_bars', MIN_TRAIN_BARS),
            min_test_bars=wf.get('min_test_bars', MIN_TEST_BARS),
            min_selection_trades=wf.get('min_selection_trades', MIN_SELECTION_TRADES),
            selection_metric=wf.get('selection_metric', 'composite'),
            preset=wf.get('preset', 'default'),
            timeframe=timeframe,
            evaluate_full_grid=wf.get('evaluate_full_grid', True),
            initial_capital=float(wf.get('initial_capital', INITIAL_CAPITAL)),
            force_close=wf.get('force_close', False),
            max_workers=wf.get('max_workers', 1),
            strategies=strategies,
        ),
        scoring=ScoringWeights(
            median=scoring.get('median', WEIGHT_MEDIAN),
            minimum=scoring.get('minimum', WEIGHT_MINIMUM),
            stddev=scoring.get('stddev', WEIGHT_STDDEV),
            overfit=scoring.get('overfit', WEIGHT_OVERFIT),
        ),
        portfolio=PortfolioConfig(
            strategies=portfolio_strategies or strategies or [],
            preset=portfolio.get('preset', 'optimized'),
            timeframe=timeframe,
            initial_capital=float(portfolio.get('initial_capital', INITIAL_CAPITAL)),
            drawdown_threshold=float(portfolio.get('drawdown_threshold', DRAWDOWN_THRESHOLD_PCT)),
            force_close=portfolio.get('force_close', False),
        ),
    )


def _as_str(value) -> Optional[str]:
    # YAML parses bare 2020-01-01 as a date
    return None if value is None else str(value)


def save_config_to_yaml(config: RunConfig, yaml_path: Union[str, Path]):
    """
    Save a run configuration to a YAML file.

    Args:
        config: RunConfig object to save
        yaml_path: Path where to save YAML file
    """
    yaml_path = Path(yaml_path)

    wf = asdict(config.walk_forward)
    strategies = wf.pop('strategies')
    timeframe = wf.pop('timeframe')
    portfolio = asdict(config.portfolio)
    portfolio.pop('timeframe')

    config_dict = {
        'name': config.name,
        'description': config.description,
        'output_dir': config.output_dir,
        'data': {
            'dir': config.data_dir,
            'symbols': config.symbols,
            'start_date': config.start_date,
            'end_date': config.end_date,
            'timeframe': timeframe,
        },
        'strategies': strategies,
        'walk_forward': wf,
        'scoring': asdict(config.scoring),
        'portfolio': portfolio,
    }

    # Ensure parent directory exists
    yaml_path.parent.mkdir(parents=True, exist_ok=True)

    with open(yaml_path, 'w') as f:
        yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)
