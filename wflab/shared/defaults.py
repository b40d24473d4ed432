"""
Centralized default values for indicators, strategies and evaluation.

This is the SINGLE SOURCE OF TRUTH for all numeric defaults.
All modules should import from here to ensure consistency.

Groups:
- Indicator periods (RSI, MACD, Bollinger, ATR, moving averages)
- Cup-with-handle pattern thresholds
- Parameter grid caps
- Walk-forward windowing and eligibility
- Stability scoring weights
- Portfolio / drawdown analysis
"""

# RSI (Relative Strength Index) defaults
RSI_PERIOD = 14  # Wilder's standard period
RSI_OVERSOLD = 30
RSI_OVERBOUGHT = 70

# Moving averages
MA_SHORT_PERIOD = 5
MA_LONG_PERIOD = 25
MA_TREND_PERIOD = 25  # MA25 used by kairi, mean reversion and MACD trend filter
MA_FAST_EXIT_PERIOD = 5  # MA5 exit for kairi dip-buy

# MACD (Moving Average Convergence Divergence) defaults
MACD_FAST = 12  # Standard default
MACD_SLOW = 26  # Standard default
MACD_SIGNAL = 9  # Standard default

# MACD entry filters
MACD_FILTER_RSI_MAX = 60  # RSI must be below this for the RSI filter
MACD_FILTER_ZERO_RSI_MAX = 50  # RSI cap for the zero-line + RSI filter
MACD_FILTER_VOLUME_LOOKBACK = 20  # Bars of prior volume averaged for the volume filter
MACD_FILTER_VOLUME_MULTIPLE = 1.2

# Bollinger Bands
BB_PERIOD = 25
BB_NEAR_BAND_FACTOR = 1.10  # Breakdown-gap entry must close within 10% of lower-2 sigma

# ATR (Average True Range)
ATR_PERIOD = 14
ATR_STOP_MULTIPLE = 2.0
RSI_STOP_LOSS_PCT = 10.0

# Dip-buy
DIP_STOP_LOSS_PCT = 15.0
DIP_VOLUME_LOOKBACK = 5  # Bars of prior volume for dip RSI+volume

# Cup-with-handle detection
CWH_MIN_BARS = 30
CWH_PEAK_WINDOW = 5  # Peak must be the strict max within +/- this many bars
CWH_MIN_CUP_BARS = 15
CWH_MAX_CUP_BARS = 120
CWH_MAX_RIM_DIFF = 0.06
CWH_MIN_DEPTH = 0.08
CWH_MAX_DEPTH = 0.50
CWH_MIN_BOTTOM_POSITION = 0.15
CWH_MAX_BOTTOM_POSITION = 0.85
CWH_MAX_HANDLE_BARS = 25
CWH_MIN_PULLBACK = 0.01
CWH_MAX_PULLBACK = 0.12
CWH_DEDUPE_BARS = 3
CWH_VOLUME_LOOKBACK = 20
CWH_VOLUME_MULTIPLE = 1.5
CWH_TREND_SHORT = 50
CWH_TREND_LONG = 200
CWH_NEW_HIGH_LOOKBACK = 252

# Parameter grid caps (values kept per parameter, by number of parameters)
GRID_MAX_VALUES_FEW = 8  # <= 2 parameters
GRID_MAX_VALUES_SOME = 5  # <= 4 parameters
GRID_MAX_VALUES_MANY = 4  # > 4 parameters
GRID_DECIMALS = 3

# Walk-forward evaluation defaults
WF_TRAIN_YEARS = 3
WF_TEST_YEARS = 1
WF_START_YEAR = 2016
WF_END_YEAR = 2025
MIN_TRAIN_BARS = 30  # Train slices shorter than this are excluded from a cell
MIN_TEST_BARS = 20  # Test slices shorter than this are excluded from aggregation
MIN_SELECTION_TRADES = 3  # Combos with fewer aggregate train trades are rejected
SELECTION_RATIO_CAP = 5.0  # Cap on win/loss count ratio in the composite train score
SELECTION_RETURN_CAP = 100.0  # Cap on positive summed return in the composite train score

# Stability scoring weights (median, minimum, stddev, overfit)
WEIGHT_MEDIAN = 0.4
WEIGHT_MINIMUM = 0.3
WEIGHT_STDDEV = 0.2
WEIGHT_OVERFIT = 0.1

# Backtest / portfolio
INITIAL_CAPITAL = 1_000_000.0
TRADING_DAYS_PER_YEAR = 250  # Sharpe annualization factor is sqrt of this
INFINITY_CAP = 999.0  # Profit / recovery factor clamp before aggregation
DRAWDOWN_THRESHOLD_PCT = 5.0  # Co-stress and drawdown-period threshold
DRAWDOWN_RECOVERY_RATIO = 0.3  # Drawdown period ends below threshold * ratio
CORRELATION_DECIMALS = 6
