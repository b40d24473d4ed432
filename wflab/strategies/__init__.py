"""
Strategy catalogue and signal generation.

Provides:
- StrategyDef / ParamDef records and the Flat / Holding position fold
- The catalogue of strategy variants, resolved by id
- Optimized parameter presets per timeframe
"""
from .base import ParamDef, StrategyDef, Flat, Holding, run_fold
from .registry import (
    STRATEGIES,
    list_strategies,
    get_strategy,
    register_strategy,
    short_below_long,
    entry_below_exit,
)
from .presets import (
    OPTIMIZED_PRESETS,
    get_preset_params,
    save_presets_to_yaml,
    load_presets_from_yaml,
)

__all__ = [
    'ParamDef',
    'StrategyDef',
    'Flat',
    'Holding',
    'run_fold',
    'STRATEGIES',
    'list_strategies',
    'get_strategy',
    'register_strategy',
    'short_below_long',
    'entry_below_exit',
    'OPTIMIZED_PRESETS',
    'get_preset_params',
    'save_presets_to_yaml',
    'load_presets_from_yaml',
]
