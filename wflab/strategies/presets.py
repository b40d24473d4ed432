"""
Parameter presets per strategy and timeframe.

"default" presets are the catalogue defaults. "optimized" presets are the
rank-1 parameterizations found by walk-forward stability scoring (daily:
3-year train / 1-year test over 7 windows) or by in-sample grid search
(weekly). Strategies without tunable parameters have no optimized preset.

Presets can be exported to / loaded from YAML so a new stability run can
replace them without code changes.
"""
from pathlib import Path
from typing import Dict, Optional, Union

import yaml

from .base import ParamValues
from .registry import get_strategy

DAILY = "daily"
WEEKLY = "weekly"
TIMEFRAMES = (DAILY, WEEKLY)

OPTIMIZED_PRESETS: Dict[str, Dict[str, ParamValues]] = {
    "ma_cross": {
        DAILY: {"shortPeriod": 2, "longPeriod": 5},
        WEEKLY: {"shortPeriod": 10, "longPeriod": 20},
    },
    "rsi_reversal": {
        DAILY: {"period": 5, "oversold": 37, "overbought": 70, "atrPeriod": 14, "atrMultiple": 2, "stopLossPct": 5},
        WEEKLY: {"period": 10, "oversold": 40, "overbought": 75, "atrPeriod": 14, "atrMultiple": 2, "stopLossPct": 10},
    },
    "macd_signal": {
        DAILY: {"shortPeriod": 5, "longPeriod": 10, "signalPeriod": 12},
        WEEKLY: {"shortPeriod": 10, "longPeriod": 30, "signalPeriod": 12},
    },
    "macd_trail": {
        DAILY: {"shortPeriod": 5, "longPeriod": 23, "signalPeriod": 3, "trailPct": 12, "stopLossPct": 15},
        WEEKLY: {"shortPeriod": 12, "longPeriod": 26, "signalPeriod": 9, "trailPct": 12, "stopLossPct": 5},
    },
    "dip_buy": {
        DAILY: {"dipPct": 3, "recoveryPct": 39, "stopLossPct": 5},
        WEEKLY: {"dipPct": 3, "recoveryPct": 30, "stopLossPct": 15},
    },
    "dip_kairi": {
        DAILY: {"entryKairi": -30, "exitKairi": -15, "stopLossPct": 3, "timeStopDays": 2},
        WEEKLY: {"entryKairi": -8, "exitKairi": -5, "stopLossPct": 7, "timeStopDays": 5},
    },
    "dip_rsi_volume": {
        DAILY: {"rsiThreshold": 30, "volumeMultiple": 2, "rsiExit": 55, "takeProfitPct": 6},
        WEEKLY: {"rsiThreshold": 35, "volumeMultiple": 1.2, "rsiExit": 35, "takeProfitPct": 3},
    },
    "dip_bb3sigma": {
        DAILY: {"stopLossPct": 3},
        WEEKLY: {"stopLossPct": 5},
    },
    "cup_with_handle": {
        DAILY: {"takeProfitPct": 20, "stopLossPct": 8},
        WEEKLY: {"takeProfitPct": 20, "stopLossPct": 8},
    },
    "cwh_trail": {
        DAILY: {"trailPct": 8, "stopLossPct": 6},
        WEEKLY: {"trailPct": 12, "stopLossPct": 5},
    },
}


def get_preset_params(
    strategy_id: str,
    preset: str = "default",
    timeframe: str = DAILY,
    presets: Optional[Dict[str, Dict[str, ParamValues]]] = None,
) -> ParamValues:
    """
    Parameters for a strategy under the given preset.

    Falls back to the catalogue defaults when no optimized preset exists.

    Args:
        strategy_id: Catalogue id
        preset: "default" or "optimized"
        timeframe: "daily" or "weekly"
        presets: Preset table to use (default: OPTIMIZED_PRESETS)
    """
    if preset not in ("default", "optimized"):
        raise ValueError(f"preset must be 'default' or 'optimized', got {preset!r}")
    if timeframe not in TIMEFRAMES:
        raise ValueError(f"timeframe must be one of {TIMEFRAMES}, got {timeframe!r}")

    strategy = get_strategy(strategy_id)
    if preset == "default":
        return strategy.default_params()
    table = presets if presets is not None else OPTIMIZED_PRESETS
    params = table.get(strategy_id, {}).get(timeframe)
    if params is None:
        return strategy.default_params()
    return strategy.resolve_params(params)


def save_presets_to_yaml(presets: Dict[str, Dict[str, ParamValues]], yaml_path: Union[str, Path]) -> None:
    """Write a preset table ({strategy: {timeframe: params}}) to YAML."""
    yaml_path = Path(yaml_path)
    yaml_path.parent.mkdir(parents=True, exist_ok=True)
    with open(yaml_path, 'w') as f:
        yaml.safe_dump(presets, f, sort_keys=True)


def load_presets_from_yaml(yaml_path: Union[str, Path]) -> Dict[str, Dict[str, ParamValues]]:
    """
    Load a preset table written by save_presets_to_yaml.

    Raises:
        FileNotFoundError: If the file doesn't exist
        KeyError: If a strategy id is unknown
    """
    yaml_path = Path(yaml_path)
    if not yaml_path.exists():
        raise FileNotFoundError(f"Preset file not found: {yaml_path}")
    with open(yaml_path, 'r') as f:
        data = yaml.safe_load(f) or {}
    for strategy_id, by_timeframe in data.items():
        strategy = get_strategy(strategy_id)
        for params in by_timeframe.values():
            strategy.resolve_params(params)
    return data
