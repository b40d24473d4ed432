"""
Indicator calculation module.

Provides all indicators used by the strategy catalogue:
- Technical indicators (SMA, EMA, RSI, MACD, Bollinger Bands, ATR, kairi)
- Cup-with-handle pattern detection

All indicators return NaN for warm-up bars; NaN means "no decision possible".
"""
from .technical import (
    MACDResult,
    BollingerBands,
    calculate_sma,
    calculate_ema,
    calculate_rsi,
    calculate_macd,
    calculate_bollinger_bands,
    calculate_atr,
    calculate_kairi,
    prior_average_volume,
)
from .patterns import (
    CupWithHandleConfig,
    CupWithHandlePattern,
    CupWithHandleDetector,
    detect_cup_with_handle,
)

__all__ = [
    'MACDResult',
    'BollingerBands',
    'calculate_sma',
    'calculate_ema',
    'calculate_rsi',
    'calculate_macd',
    'calculate_bollinger_bands',
    'calculate_atr',
    'calculate_kairi',
    'prior_average_volume',
    'CupWithHandleConfig',
    'CupWithHandlePattern',
    'CupWithHandleDetector',
    'detect_cup_with_handle',
]
