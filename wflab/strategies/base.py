"""
Strategy definition types and the position fold driver.

A strategy is a StrategyDef record: id, display name, parameter
definitions and a pure `compute(data, params) -> List[SignalType]`.

Signal generation is an explicit fold over the bars. Each strategy
supplies a step function `step(i, state) -> next_state` over immutable
Flat / Holding states; `run_fold` derives the emitted signal from the
state transition, so a BUY is only ever emitted while flat and a SELL
only while holding.
"""
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd

from ..shared.types import SignalType


ParamValues = Dict[str, float]
ComputeFn = Callable[[pd.DataFrame, ParamValues], List[SignalType]]
ValidityRule = Callable[[ParamValues], bool]


@dataclass(frozen=True)
class ParamDef:
    """A tunable strategy parameter. Without min and max the value is fixed."""
    key: str
    label: str
    default: float
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None

    @property
    def is_fixed(self) -> bool:
        return self.min is None or self.max is None


@dataclass(frozen=True)
class StrategyDef:
    """One entry of the strategy catalogue."""
    id: str
    name: str
    description: str
    params: Tuple[ParamDef, ...]
    compute: ComputeFn
    validity: Tuple[ValidityRule, ...] = field(default_factory=tuple)

    def default_params(self) -> ParamValues:
        return {p.key: p.default for p in self.params}

    def resolve_params(self, overrides: Optional[ParamValues] = None) -> ParamValues:
        """Defaults updated with overrides; unknown keys are rejected."""
        params = self.default_params()
        if overrides:
            unknown = set(overrides) - set(params)
            if unknown:
                raise ValueError(f"Unknown parameters for strategy '{self.id}': {sorted(unknown)}")
            params.update(overrides)
        return params

    def is_valid(self, params: ParamValues) -> bool:
        return all(rule(params) for rule in self.validity)

    def generate_signals(self, data: pd.DataFrame, params: Optional[ParamValues] = None) -> List[SignalType]:
        return self.compute(data, self.resolve_params(params))


@dataclass(frozen=True)
class Flat:
    """No open position. `peak` and `armed` carry variant memory between trades."""
    peak: Optional[float] = None
    armed: bool = False


@dataclass(frozen=True)
class Holding:
    """Open position entered at `entry_price` on bar `entry_index`."""
    entry_price: float
    entry_index: int
    entry_low: Optional[float] = None
    peak: Optional[float] = None
    stop: Optional[float] = None
    target: Optional[float] = None


State = Union[Flat, Holding]
StepFn = Callable[[int, State], State]


def run_fold(length: int, step: StepFn, initial: Optional[State] = None) -> List[SignalType]:
    """
    Thread a position state through `length` bars.

    Flat -> Holding emits BUY, Holding -> Flat emits SELL, anything else
    emits HOLD.
    """
    state = initial if initial is not None else Flat()
    signals = []
    for i in range(length):
        next_state = step(i, state)
        if isinstance(state, Flat) and isinstance(next_state, Holding):
            signals.append(SignalType.BUY)
        elif isinstance(state, Holding) and isinstance(next_state, Flat):
            signals.append(SignalType.SELL)
        else:
            signals.append(SignalType.HOLD)
        state = next_state
    return signals


def defined(*values: float) -> bool:
    """True when no value is NaN/None (indicator warm-up is over)."""
    return all(v is not None and not math.isnan(v) for v in values)


def pct_change(price: float, entry: float) -> float:
    """Percentage move from entry to price."""
    return (price - entry) / entry * 100


def crossed_above(series_a: Sequence[float], series_b: Sequence[float], i: int) -> bool:
    """a crossed above b on bar i (prev a <= prev b, now a > b)."""
    if i < 1 or not defined(series_a[i - 1], series_b[i - 1], series_a[i], series_b[i]):
        return False
    return series_a[i - 1] <= series_b[i - 1] and series_a[i] > series_b[i]


def crossed_below(series_a: Sequence[float], series_b: Sequence[float], i: int) -> bool:
    """a crossed below b on bar i (prev a >= prev b, now a < b)."""
    if i < 1 or not defined(series_a[i - 1], series_b[i - 1], series_a[i], series_b[i]):
        return False
    return series_a[i - 1] >= series_b[i - 1] and series_a[i] < series_b[i]
