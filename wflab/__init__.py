"""
Walk-forward evaluation of rule-based trading strategies.

Provides:
- Technical indicators and cup-with-handle pattern detection
- A catalogue of long-only strategy variants
- A single-position backtest simulator
- Parameter grids, calendar-year walk-forward and stability scoring
- Strategy equity, equal-allocation portfolio and correlation analysis
"""

__version__ = "0.1.0"
