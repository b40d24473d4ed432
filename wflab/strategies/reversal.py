"""
Mean-reversion and dip-buying strategies.

- RSI reversal with an ATR / percent stop fixed at entry
- Dip-buy from the running peak
- Dip by MA25 deviation (kairi) with MA5 and time-stop exits
- Dip on RSI + volume climax
- Bollinger lower-3 sigma dip
- Bollinger lower-2 sigma mean reversion (green-bar confirmation)
- Bollinger breakdown gap (gap down + two red bars near lower-2 sigma)

Percent thresholds are expressed in percent (10 == 10%).
"""
from typing import List

import pandas as pd

from ..indicators.technical import (
    calculate_sma, calculate_rsi, calculate_atr, calculate_bollinger_bands,
    calculate_kairi, prior_average_volume,
)
from ..shared.defaults import (
    BB_PERIOD, BB_NEAR_BAND_FACTOR, RSI_PERIOD,
    MA_TREND_PERIOD, MA_FAST_EXIT_PERIOD, DIP_VOLUME_LOOKBACK,
)
from ..shared.types import SignalType, OPEN, LOW, CLOSE, VOLUME
from .base import Flat, Holding, State, ParamValues, run_fold, defined, pct_change


def compute_rsi_reversal(data: pd.DataFrame, params: ParamValues) -> List[SignalType]:
    """
    Buy while RSI is below `oversold`; sell once RSI rises above
    `overbought` or the close falls to the stop level.

    The stop is fixed at entry: the higher of entry - ATR * atrMultiple
    (when ATR is defined) and entry * (1 - stopLossPct / 100).
    """
    close = data[CLOSE]
    rsi = calculate_rsi(close, int(params["period"])).to_numpy()
    atr = calculate_atr(data, int(params["atrPeriod"])).to_numpy()
    prices = close.to_numpy(dtype=float)
    oversold = params["oversold"]
    overbought = params["overbought"]
    atr_multiple = params["atrMultiple"]
    stop_loss = params["stopLossPct"]

    def step(i: int, state: State) -> State:
        if not defined(rsi[i]):
            return state
        price = prices[i]
        if isinstance(state, Flat):
            if rsi[i] < oversold:
                atr_stop = price - atr[i] * atr_multiple if defined(atr[i]) else 0.0
                pct_stop = price * (1 - stop_loss / 100)
                return Holding(entry_price=price, entry_index=i, stop=max(atr_stop, pct_stop))
            return state
        if rsi[i] > overbought or price <= state.stop:
            return Flat()
        return state

    return run_fold(len(prices), step)


def compute_dip_buy(data: pd.DataFrame, params: ParamValues) -> List[SignalType]:
    """
    Buy after a `dipPct` drop from the running peak close; sell on a
    `recoveryPct` gain or a `stopLossPct` loss. The peak restarts from the
    exit close.
    """
    prices = data[CLOSE].to_numpy(dtype=float)
    if len(prices) == 0:
        return []
    dip = params["dipPct"]
    recovery = params["recoveryPct"]
    stop_loss = params["stopLossPct"]

    def step(i: int, state: State) -> State:
        price = prices[i]
        peak = max(state.peak, price)
        if isinstance(state, Flat):
            if (peak - price) / peak * 100 >= dip:
                return Holding(entry_price=price, entry_index=i, peak=peak)
            return Flat(peak=peak)
        change = pct_change(price, state.entry_price)
        if change >= recovery or change <= -stop_loss:
            return Flat(peak=price)
        return Holding(entry_price=state.entry_price, entry_index=state.entry_index, peak=peak)

    return run_fold(len(prices), step, initial=Flat(peak=prices[0]))


def compute_dip_kairi(data: pd.DataFrame, params: ParamValues) -> List[SignalType]:
    """
    Buy when the close deviates `entryKairi`% (negative) from MA25.

    Exit on the first of: deviation back above `exitKairi`, close at or
    above MA5, a `stopLossPct` loss, or `timeStopDays` bars without profit.
    """
    close = data[CLOSE]
    kairi = calculate_kairi(close, MA_TREND_PERIOD).to_numpy()
    ma5 = calculate_sma(close, MA_FAST_EXIT_PERIOD).to_numpy()
    prices = close.to_numpy(dtype=float)
    entry_kairi = params["entryKairi"]
    exit_kairi = params["exitKairi"]
    stop_loss = params["stopLossPct"]
    time_stop = params["timeStopDays"]

    def step(i: int, state: State) -> State:
        if not defined(kairi[i]):
            return state
        price = prices[i]
        if isinstance(state, Flat):
            if kairi[i] <= entry_kairi:
                return Holding(entry_price=price, entry_index=i)
            return state
        if kairi[i] >= exit_kairi:
            return Flat()
        if defined(ma5[i]) and price >= ma5[i]:
            return Flat()
        if pct_change(price, state.entry_price) <= -stop_loss:
            return Flat()
        if i - state.entry_index >= time_stop and price <= state.entry_price:
            return Flat()
        return state

    return run_fold(len(prices), step)


def compute_dip_rsi_volume(data: pd.DataFrame, params: ParamValues) -> List[SignalType]:
    """
    Buy on an RSI(14) washout with a volume spike versus the prior 5 bars;
    sell on RSI recovery, a fixed take-profit or a close below the entry
    bar's low.
    """
    close = data[CLOSE]
    rsi = calculate_rsi(close, RSI_PERIOD).to_numpy()
    volume = data[VOLUME].to_numpy(dtype=float)
    avg_volume = prior_average_volume(data[VOLUME], DIP_VOLUME_LOOKBACK).to_numpy()
    lows = data[LOW].to_numpy(dtype=float)
    prices = close.to_numpy(dtype=float)
    threshold = params["rsiThreshold"]
    volume_multiple = params["volumeMultiple"]
    rsi_exit = params["rsiExit"]
    take_profit = params["takeProfitPct"]

    def step(i: int, state: State) -> State:
        if i < DIP_VOLUME_LOOKBACK or not defined(rsi[i]):
            return state
        price = prices[i]
        if isinstance(state, Flat):
            if rsi[i] <= threshold and volume[i] >= avg_volume[i] * volume_multiple:
                return Holding(entry_price=price, entry_index=i, entry_low=lows[i])
            return state
        if rsi[i] >= rsi_exit:
            return Flat()
        if pct_change(price, state.entry_price) >= take_profit:
            return Flat()
        if price < state.entry_low:
            return Flat()
        return state

    return run_fold(len(prices), step)


def compute_dip_bb3sigma(data: pd.DataFrame, params: ParamValues) -> List[SignalType]:
    """Buy at or below the lower 3-sigma band; sell back at lower 2-sigma or on the stop."""
    close = data[CLOSE]
    bands = calculate_bollinger_bands(close, BB_PERIOD)
    lower2 = bands.lower2.to_numpy()
    lower3 = bands.lower3.to_numpy()
    prices = close.to_numpy(dtype=float)
    stop_loss = params["stopLossPct"]

    def step(i: int, state: State) -> State:
        if not defined(lower2[i], lower3[i]):
            return state
        price = prices[i]
        if isinstance(state, Flat):
            if price <= lower3[i]:
                return Holding(entry_price=price, entry_index=i)
            return state
        if price >= lower2[i] or pct_change(price, state.entry_price) <= -stop_loss:
            return Flat()
        return state

    return run_fold(len(prices), step)


def compute_bb_mean_reversion(data: pd.DataFrame, params: ParamValues) -> List[SignalType]:
    """
    A close below the lower 2-sigma band arms the setup; the next green bar
    (close > open) while armed buys. Sell at MA25 or below the entry low.
    """
    close = data[CLOSE]
    bands = calculate_bollinger_bands(close, BB_PERIOD)
    lower2 = bands.lower2.to_numpy()
    ma25 = calculate_sma(close, MA_TREND_PERIOD).to_numpy()
    opens = data[OPEN].to_numpy(dtype=float)
    lows = data[LOW].to_numpy(dtype=float)
    prices = close.to_numpy(dtype=float)

    def step(i: int, state: State) -> State:
        if not defined(lower2[i]):
            return state
        price = prices[i]
        if isinstance(state, Flat):
            if price < lower2[i]:
                return Flat(armed=True)
            if state.armed and price > opens[i]:
                return Holding(entry_price=price, entry_index=i, entry_low=lows[i])
            if price > lower2[i]:
                return Flat()
            return state
        if defined(ma25[i]) and price >= ma25[i]:
            return Flat()
        if price < state.entry_low:
            return Flat()
        return state

    return run_fold(len(prices), step)


def compute_bb_breakdown_gap(data: pd.DataFrame, params: ParamValues) -> List[SignalType]:
    """
    Buy after a gap down followed by two red bars closing near the lower
    2-sigma band; sell when the close fills the gap (pre-gap low) or drops
    below the entry bar's low.
    """
    close = data[CLOSE]
    lower2 = calculate_bollinger_bands(close, BB_PERIOD).lower2.to_numpy()
    opens = data[OPEN].to_numpy(dtype=float)
    lows = data[LOW].to_numpy(dtype=float)
    prices = close.to_numpy(dtype=float)

    def step(i: int, state: State) -> State:
        if i < 2 or not defined(lower2[i]):
            return state
        price = prices[i]
        if isinstance(state, Flat):
            gap_down = opens[i - 1] < lows[i - 2]
            red_prev = prices[i - 1] < opens[i - 1]
            red_now = price < opens[i]
            near_band = price <= lower2[i] * BB_NEAR_BAND_FACTOR
            if gap_down and red_prev and red_now and near_band:
                return Holding(entry_price=price, entry_index=i, entry_low=lows[i], target=lows[i - 2])
            return state
        if price >= state.target or price < state.entry_low:
            return Flat()
        return state

    return run_fold(len(prices), step)
