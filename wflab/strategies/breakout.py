"""
Cup-with-handle breakout strategies.

Entries are the breakout bars reported by CupWithHandleDetector. Two exit
styles: fixed take-profit / stop-loss, or a trailing stop from the
highest close since entry.
"""
from typing import List

import pandas as pd

from ..indicators.patterns import CupWithHandleDetector
from ..shared.types import SignalType, CLOSE
from .base import Flat, Holding, State, ParamValues, run_fold, pct_change


def compute_cup_with_handle(data: pd.DataFrame, params: ParamValues) -> List[SignalType]:
    """Buy on a cup-with-handle breakout; exit at +takeProfitPct or -stopLossPct."""
    breakouts = set(CupWithHandleDetector().detect(data))
    prices = data[CLOSE].to_numpy(dtype=float)
    take_profit = params["takeProfitPct"]
    stop_loss = params["stopLossPct"]

    def step(i: int, state: State) -> State:
        price = prices[i]
        if isinstance(state, Flat):
            if i in breakouts:
                return Holding(entry_price=price, entry_index=i)
            return state
        change = pct_change(price, state.entry_price)
        if change >= take_profit or change <= -stop_loss:
            return Flat()
        return state

    return run_fold(len(prices), step)


def compute_cwh_trail(data: pd.DataFrame, params: ParamValues) -> List[SignalType]:
    """Buy on a cup-with-handle breakout; exit on the stop-loss or a trailPct drop from the peak."""
    breakouts = set(CupWithHandleDetector().detect(data))
    prices = data[CLOSE].to_numpy(dtype=float)
    trail = params["trailPct"]
    stop_loss = params["stopLossPct"]

    def step(i: int, state: State) -> State:
        price = prices[i]
        if isinstance(state, Flat):
            if i in breakouts:
                return Holding(entry_price=price, entry_index=i, peak=price)
            return state
        peak = max(state.peak, price)
        if pct_change(price, state.entry_price) <= -stop_loss:
            return Flat()
        if (peak - price) / peak * 100 >= trail:
            return Flat()
        return Holding(entry_price=state.entry_price, entry_index=state.entry_index, peak=peak)

    return run_fold(len(prices), step)
