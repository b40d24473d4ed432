"""
Shared types and defaults for the evaluation engine.

This module provides:
- SignalType enum and price-frame column names
- Centralized default values for indicators, grids and scoring
- Numeric helpers (median, sample std, infinity clamp, Sharpe)
"""
from .types import SignalType, OPEN, HIGH, LOW, CLOSE, VOLUME, PRICE_COLUMNS
from .defaults import (
    RSI_PERIOD, RSI_OVERSOLD, RSI_OVERBOUGHT,
    MACD_FAST, MACD_SLOW, MACD_SIGNAL,
    BB_PERIOD, ATR_PERIOD,
    INITIAL_CAPITAL, INFINITY_CAP, TRADING_DAYS_PER_YEAR,
)
from .stats import median, sample_std, clamp_infinite, annualized_sharpe

__all__ = [
    'SignalType',
    'OPEN', 'HIGH', 'LOW', 'CLOSE', 'VOLUME', 'PRICE_COLUMNS',
    'RSI_PERIOD', 'RSI_OVERSOLD', 'RSI_OVERBOUGHT',
    'MACD_FAST', 'MACD_SLOW', 'MACD_SIGNAL',
    'BB_PERIOD', 'ATR_PERIOD',
    'INITIAL_CAPITAL', 'INFINITY_CAP', 'TRADING_DAYS_PER_YEAR',
    'median', 'sample_std', 'clamp_infinite', 'annualized_sharpe',
]
