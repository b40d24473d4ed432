"""
Technical indicators used by the strategy catalogue.

Provides SMA, EMA, RSI, MACD, Bollinger Bands, ATR and a few derived
series (kairi, prior average volume). Every function returns pandas
Series aligned to the input index; NaN marks warm-up positions where
the indicator is undefined.

Recursive indicators (EMA, RSI, MACD signal, ATR) are computed with an
explicit loop so that seeding follows the textbook definition exactly:
- EMA is seeded with the simple average of the first `period` values
- RSI and ATR use Wilder smoothing seeded with a simple average
- The MACD signal line is seeded once `signal_period` MACD values exist
"""
from dataclasses import dataclass

import numpy as np
import pandas as pd

from ..shared.defaults import (
    RSI_PERIOD,
    MACD_FAST, MACD_SLOW, MACD_SIGNAL,
    BB_PERIOD, ATR_PERIOD,
)
from ..shared.types import HIGH, LOW, CLOSE


@dataclass(frozen=True)
class MACDResult:
    """MACD line, signal line and histogram, aligned to the price index."""
    macd: pd.Series
    signal: pd.Series
    histogram: pd.Series


@dataclass(frozen=True)
class BollingerBands:
    """Rolling mean with population-stddev bands at 1, 2 and 3 sigma."""
    middle: pd.Series
    upper1: pd.Series
    upper2: pd.Series
    upper3: pd.Series
    lower1: pd.Series
    lower2: pd.Series
    lower3: pd.Series


def calculate_sma(prices: pd.Series, window: int) -> pd.Series:
    """Simple moving average; undefined for the first window-1 bars."""
    return prices.astype(float).rolling(window=window, min_periods=window).mean()


def calculate_ema(prices: pd.Series, period: int) -> pd.Series:
    """
    Calculate Exponential Moving Average.

    The first value (index period-1) is the simple average of the first
    `period` prices; afterwards ema = price * k + prev * (1 - k) with
    k = 2 / (period + 1).
    """
    values = prices.to_numpy(dtype=float)
    out = np.full(len(values), np.nan)
    if period < 1 or len(values) < period:
        return pd.Series(out, index=prices.index)

    k = 2.0 / (period + 1)
    out[period - 1] = values[:period].sum() / period
    for i in range(period, len(values)):
        out[i] = values[i] * k + out[i - 1] * (1 - k)
    return pd.Series(out, index=prices.index)


def calculate_rsi(prices: pd.Series, period: int = RSI_PERIOD) -> pd.Series:
    """
    Calculate Relative Strength Index with Wilder smoothing.

    RSI = 100 - (100 / (1 + RS)), RS = average gain / average loss.
    The averages are seeded at index `period` from the first `period`
    price changes. RSI is 100 whenever the average loss is zero.
    """
    values = prices.to_numpy(dtype=float)
    out = np.full(len(values), np.nan)
    if period < 1 or len(values) < period + 1:
        return pd.Series(out, index=prices.index)

    deltas = np.diff(values)
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = gains[:period].sum() / period
    avg_loss = losses[:period].sum() / period
    out[period] = _rsi_value(avg_gain, avg_loss)

    for i in range(period + 1, len(values)):
        avg_gain = (avg_gain * (period - 1) + gains[i - 1]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i - 1]) / period
        out[i] = _rsi_value(avg_gain, avg_loss)
    return pd.Series(out, index=prices.index)


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    return 100.0 - 100.0 / (1.0 + avg_gain / avg_loss)


def calculate_macd(
    prices: pd.Series,
    fast: int = MACD_FAST,
    slow: int = MACD_SLOW,
    signal_period: int = MACD_SIGNAL,
) -> MACDResult:
    """
    Calculate MACD (Moving Average Convergence Divergence).

    macd = EMA(fast) - EMA(slow) where both are defined. The signal line
    starts once `signal_period` MACD values have accumulated, seeded with
    their simple average, then smoothed with k = 2 / (signal_period + 1).

    Returns:
        MACDResult of (MACD line, Signal line, Histogram)
    """
    macd_line = calculate_ema(prices, fast) - calculate_ema(prices, slow)
    values = macd_line.to_numpy(dtype=float)
    signal = np.full(len(values), np.nan)

    k = 2.0 / (signal_period + 1)
    seen = []
    current = None
    for i, value in enumerate(values):
        if np.isnan(value):
            continue
        seen.append(value)
        if len(seen) < signal_period:
            continue
        if current is None:
            current = sum(seen[-signal_period:]) / signal_period
        else:
            current = value * k + current * (1 - k)
        signal[i] = current

    signal_line = pd.Series(signal, index=prices.index)
    return MACDResult(macd=macd_line, signal=signal_line, histogram=macd_line - signal_line)


def calculate_bollinger_bands(prices: pd.Series, period: int = BB_PERIOD) -> BollingerBands:
    """Bollinger Bands with population standard deviation (ddof=0)."""
    rolling = prices.astype(float).rolling(window=period, min_periods=period)
    middle = rolling.mean()
    std = rolling.std(ddof=0)
    return BollingerBands(
        middle=middle,
        upper1=middle + std,
        upper2=middle + 2 * std,
        upper3=middle + 3 * std,
        lower1=middle - std,
        lower2=middle - 2 * std,
        lower3=middle - 3 * std,
    )


def calculate_atr(data: pd.DataFrame, period: int = ATR_PERIOD) -> pd.Series:
    """
    Calculate ATR (Average True Range) with Wilder smoothing.

    True range of the first bar is high - low; afterwards
    max(high - low, |high - prev close|, |low - prev close|). The seed at
    index `period` is the average of true ranges 1..period.
    """
    high = data[HIGH].to_numpy(dtype=float)
    low = data[LOW].to_numpy(dtype=float)
    close = data[CLOSE].to_numpy(dtype=float)
    n = len(close)
    out = np.full(n, np.nan)
    if period < 1 or n < period + 1:
        return pd.Series(out, index=data.index)

    tr = np.empty(n)
    tr[0] = high[0] - low[0]
    prev_close = close[:-1]
    tr[1:] = np.maximum.reduce([
        high[1:] - low[1:],
        np.abs(high[1:] - prev_close),
        np.abs(low[1:] - prev_close),
    ])

    atr = tr[1:period + 1].sum() / period
    out[period] = atr
    for i in range(period + 1, n):
        atr = (atr * (period - 1) + tr[i]) / period
        out[i] = atr
    return pd.Series(out, index=data.index)


def calculate_kairi(prices: pd.Series, window: int) -> pd.Series:
    """Percentage deviation of price from its simple moving average."""
    sma = calculate_sma(prices, window)
    return (prices - sma) / sma * 100


def prior_average_volume(volume: pd.Series, lookback: int) -> pd.Series:
    """Mean volume of the `lookback` bars before each bar (current bar excluded)."""
    return volume.astype(float).shift(1).rolling(window=lookback, min_periods=lookback).mean()
