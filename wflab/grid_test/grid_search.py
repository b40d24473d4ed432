"""
Parameter grid generation.

Expands a strategy's ParamDefs into a bounded Cartesian product of
parameter combinations. Each parameter's value list is capped by the
number of tunable parameters so the product stays tractable; when a
range has more steps than the cap it is sub-sampled, always keeping the
range endpoints and the default.
"""
import itertools
import logging
import math
import re
from dataclasses import dataclass, field
from typing import List

from ..shared.defaults import (
    GRID_MAX_VALUES_FEW, GRID_MAX_VALUES_SOME, GRID_MAX_VALUES_MANY, GRID_DECIMALS,
)
from ..strategies.base import ParamDef, ParamValues, StrategyDef

logger = logging.getLogger(__name__)

DEFAULT_LABEL = "default"

_UNIT_SUFFIXES = re.compile(r"Period|Pct|Multiple|Threshold")
# Applied in order, first occurrence only
_KEY_ABBREVIATIONS = (
    ("short", "S"), ("long", "L"), ("signal", "Sig"),
    ("oversold", "OS"), ("overbought", "OB"),
    ("entry", "E"), ("exit", "X"), ("recovery", "Rec"),
    ("dip", "Dip"), ("trail", "Tr"), ("stopLoss", "SL"),
    ("takeProfit", "TP"), ("atr", "ATR"), ("volume", "Vol"),
    ("rsi", "RSI"), ("timeStop", "TS"),
)


@dataclass(frozen=True)
class ParamCombo:
    """One point of a strategy's parameter grid."""
    label: str
    values: ParamValues = field(default_factory=dict)


def max_values_per_param(num_params: int) -> int:
    """Cap on values per parameter for a strategy with `num_params` parameters."""
    if num_params <= 2:
        return GRID_MAX_VALUES_FEW
    if num_params <= 4:
        return GRID_MAX_VALUES_SOME
    return GRID_MAX_VALUES_MANY


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def generate_values(param: ParamDef, max_count: int) -> List[float]:
    """
    Candidate values for one parameter.

    Fixed parameters yield [default]. Ranged parameters step from min to
    max (inclusive) and are sub-sampled down to `max_count` values when
    longer, keeping min, max and the default.
    """
    if param.is_fixed:
        return [param.default]

    step = param.step if param.step else 1
    all_values = []
    v = param.min
    while v <= param.max + step * 0.001:
        all_values.append(round(v, GRID_DECIMALS))
        v += step

    if len(all_values) <= max_count:
        return all_values

    selected = {all_values[0], all_values[-1]}
    default = round(param.default, GRID_DECIMALS)
    if param.min <= default <= param.max:
        selected.add(default)

    n = len(all_values)
    for i in range(1, max_count - 1):
        if len(selected) >= max_count:
            break
        selected.add(all_values[_round_half_up(i * (n - 1) / (max_count - 1))])

    return sorted(selected)


def abbreviate_key(key: str) -> str:
    """Short label form of a parameter key (shortPeriod -> S)."""
    short = _UNIT_SUFFIXES.sub("", key)
    for word, abbreviation in _KEY_ABBREVIATIONS:
        short = short.replace(word, abbreviation, 1)
    return short


def format_value(value: float) -> str:
    return f"{value:g}"


def make_label(params: List[ParamDef], values: ParamValues) -> str:
    """Combo label such as 'S5/L25/Sig9', in parameter declaration order."""
    return "/".join(f"{abbreviate_key(p.key)}{format_value(values[p.key])}" for p in params)


class ParamGrid:
    """Builds the parameter combinations evaluated for a strategy."""

    @staticmethod
    def generate(strategy: StrategyDef) -> List[ParamCombo]:
        """
        All valid combinations for `strategy`, in declaration order.

        A strategy without parameters yields the single 'default' combo.
        """
        if not strategy.params:
            return [ParamCombo(DEFAULT_LABEL, {})]

        max_count = max_values_per_param(sum(1 for p in strategy.params if not p.is_fixed))
        keys = [p.key for p in strategy.params]
        value_lists = [generate_values(p, max_count) for p in strategy.params]

        combos = []
        for point in itertools.product(*value_lists):
            values = dict(zip(keys, point))
            if not strategy.is_valid(values):
                continue
            combos.append(ParamCombo(make_label(list(strategy.params), values), values))

        logger.debug(f"{strategy.id}: {len(combos)} parameter combinations")
        return combos

    @staticmethod
    def default_combo(strategy: StrategyDef) -> ParamCombo:
        """The combo of catalogue defaults."""
        if not strategy.params:
            return ParamCombo(DEFAULT_LABEL, {})
        values = strategy.default_params()
        return ParamCombo(make_label(list(strategy.params), values), values)
