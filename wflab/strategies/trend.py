"""
Trend-following strategies: moving-average cross and MACD variants.

MACD filter variants share one compute function; the filter name is
bound with functools.partial so every variant stays picklable for
process-pool evaluation. Filters gate entries only; exits are always
the bearish MACD cross.
"""
from functools import partial
from typing import Callable, Dict, List, Optional

import numpy as np
import pandas as pd

from ..indicators.technical import (
    calculate_sma, calculate_rsi, calculate_macd, prior_average_volume,
)
from ..shared.defaults import (
    RSI_PERIOD, MA_TREND_PERIOD,
    MACD_FILTER_RSI_MAX, MACD_FILTER_ZERO_RSI_MAX,
    MACD_FILTER_VOLUME_LOOKBACK, MACD_FILTER_VOLUME_MULTIPLE,
)
from ..shared.types import SignalType, CLOSE, VOLUME
from .base import (
    Flat, Holding, State, ParamValues,
    run_fold, defined, pct_change, crossed_above, crossed_below,
)


def compute_ma_cross(data: pd.DataFrame, params: ParamValues) -> List[SignalType]:
    """Buy when the short SMA crosses above the long SMA, sell on the cross below."""
    close = data[CLOSE]
    short_ma = calculate_sma(close, int(params["shortPeriod"])).to_numpy()
    long_ma = calculate_sma(close, int(params["longPeriod"])).to_numpy()
    prices = close.to_numpy(dtype=float)

    def step(i: int, state: State) -> State:
        if isinstance(state, Flat):
            if crossed_above(short_ma, long_ma, i):
                return Holding(entry_price=prices[i], entry_index=i)
        elif crossed_below(short_ma, long_ma, i):
            return Flat()
        return state

    return run_fold(len(prices), step)


# Entry filters: (arrays, i) -> bool. Arrays are built lazily per filter.
def _rsi_below(limit: float) -> Callable[[Dict[str, np.ndarray], int], bool]:
    def check(arrays, i):
        return defined(arrays["rsi"][i]) and arrays["rsi"][i] < limit
    return check


def _above_trend(arrays, i) -> bool:
    ma = arrays["ma25"][i]
    return defined(ma) and arrays["close"][i] > ma


def _below_zero(arrays, i) -> bool:
    return arrays["macd"][i] < 0


def _volume_surge(arrays, i) -> bool:
    avg = arrays["avg_volume"][i]
    return defined(avg) and arrays["volume"][i] >= avg * MACD_FILTER_VOLUME_MULTIPLE


MACD_FILTERS = {
    "rsi": ("MACD + RSI filter", [_rsi_below(MACD_FILTER_RSI_MAX)]),
    "trend": ("MACD + MA25 trend filter", [_above_trend]),
    "zero": ("MACD + zero-line filter", [_below_zero]),
    "volume": ("MACD + volume filter", [_volume_surge]),
    "double": ("MACD + RSI + MA25 filter", [_rsi_below(MACD_FILTER_RSI_MAX), _above_trend]),
    "zero_rsi": ("MACD + zero-line + RSI filter", [_below_zero, _rsi_below(MACD_FILTER_ZERO_RSI_MAX)]),
}


def _filter_arrays(data: pd.DataFrame, macd: np.ndarray, entry_filter: str) -> Dict[str, np.ndarray]:
    close = data[CLOSE]
    arrays = {"close": close.to_numpy(dtype=float), "macd": macd}
    if entry_filter in ("rsi", "double", "zero_rsi"):
        arrays["rsi"] = calculate_rsi(close, RSI_PERIOD).to_numpy()
    if entry_filter in ("trend", "double"):
        arrays["ma25"] = calculate_sma(close, MA_TREND_PERIOD).to_numpy()
    if entry_filter == "volume":
        volume = data[VOLUME]
        arrays["volume"] = volume.to_numpy(dtype=float)
        arrays["avg_volume"] = prior_average_volume(volume, MACD_FILTER_VOLUME_LOOKBACK).to_numpy()
    return arrays


def compute_macd_signal(
    data: pd.DataFrame,
    params: ParamValues,
    entry_filter: Optional[str] = None,
) -> List[SignalType]:
    """
    MACD / signal-line cross strategy.

    Args:
        data: OHLCV frame
        params: shortPeriod, longPeriod, signalPeriod
        entry_filter: Optional key of MACD_FILTERS gating the entry
    """
    close = data[CLOSE]
    result = calculate_macd(
        close, int(params["shortPeriod"]), int(params["longPeriod"]), int(params["signalPeriod"]),
    )
    macd = result.macd.to_numpy()
    signal = result.signal.to_numpy()
    prices = close.to_numpy(dtype=float)

    checks = []
    arrays = {}
    if entry_filter is not None:
        _, checks = MACD_FILTERS[entry_filter]
        arrays = _filter_arrays(data, macd, entry_filter)

    def step(i: int, state: State) -> State:
        if isinstance(state, Flat):
            if crossed_above(macd, signal, i) and all(check(arrays, i) for check in checks):
                return Holding(entry_price=prices[i], entry_index=i)
        elif crossed_below(macd, signal, i):
            return Flat()
        return state

    return run_fold(len(prices), step)


def macd_filter_compute(entry_filter: str):
    """Picklable compute function for one MACD filter variant."""
    if entry_filter not in MACD_FILTERS:
        raise ValueError(f"Unknown MACD filter '{entry_filter}'. Available: {sorted(MACD_FILTERS)}")
    return partial(compute_macd_signal, entry_filter=entry_filter)


def compute_macd_trail(data: pd.DataFrame, params: ParamValues) -> List[SignalType]:
    """
    Enter on the bullish MACD cross; exit on a trailing stop from the
    highest close since entry or on a fixed stop-loss from entry.
    """
    close = data[CLOSE]
    result = calculate_macd(
        close, int(params["shortPeriod"]), int(params["longPeriod"]), int(params["signalPeriod"]),
    )
    macd = result.macd.to_numpy()
    signal = result.signal.to_numpy()
    prices = close.to_numpy(dtype=float)
    trail = params["trailPct"]
    stop_loss = params["stopLossPct"]

    def step(i: int, state: State) -> State:
        price = prices[i]
        if isinstance(state, Flat):
            if crossed_above(macd, signal, i):
                return Holding(entry_price=price, entry_index=i, peak=price)
            return state
        peak = max(state.peak, price)
        if pct_change(price, state.entry_price) <= -stop_loss:
            return Flat()
        if price <= peak * (1 - trail / 100):
            return Flat()
        return Holding(entry_price=state.entry_price, entry_index=state.entry_index, peak=peak)

    return run_fold(len(prices), step)
