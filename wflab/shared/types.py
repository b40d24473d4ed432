"""
Shared types for strategy and evaluation modules.

This module consolidates the SignalType enum and the price-frame column
names used across indicators, strategies and the backtest simulator.
"""
from enum import Enum
from typing import List


class SignalType(Enum):
    """Type of trading signal."""
    BUY = "buy"
    SELL = "sell"
    HOLD = "hold"


# Price frames carry a DatetimeIndex and these columns
OPEN = "Open"
HIGH = "High"
LOW = "Low"
CLOSE = "Close"
VOLUME = "Volume"
PRICE_COLUMNS: List[str] = [OPEN, HIGH, LOW, CLOSE, VOLUME]
