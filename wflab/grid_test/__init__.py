"""
Parameter grid, stability scoring and result sinks.

Provides grid generation per strategy, cross-window stability ranking of
parameter combos, and CSV / markdown output of walk-forward runs.
"""
from .grid_search import ParamCombo, ParamGrid, max_values_per_param, generate_values, make_label
from .stability import ParamScore, StabilityScorer
from .analysis import (
    selection_records_to_frame,
    grid_records_to_frame,
    trades_to_frame,
    scores_to_frame,
    save_results,
    load_results,
    generate_markdown_report,
)

__all__ = [
    'ParamCombo',
    'ParamGrid',
    'max_values_per_param',
    'generate_values',
    'make_label',
    'ParamScore',
    'StabilityScorer',
    'selection_records_to_frame',
    'grid_records_to_frame',
    'trades_to_frame',
    'scores_to_frame',
    'save_results',
    'load_results',
    'generate_markdown_report',
]
