"""
Price data loading.

Reads one CSV per instrument (`<symbol>.csv`, Date index + OHLCV columns)
from a directory into DataFrames with a sorted DatetimeIndex and the
canonical Open/High/Low/Close/Volume columns.
"""
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import pandas as pd

from ..shared.types import OPEN, HIGH, LOW, CLOSE, VOLUME, PRICE_COLUMNS

logger = logging.getLogger(__name__)

DateLike = Union[str, datetime, pd.Timestamp]


class PriceDataError(ValueError):
    """A price file is unreadable or lacks required columns."""


def slice_frame(
    frame: pd.DataFrame,
    start: Optional[DateLike] = None,
    end: Optional[DateLike] = None,
) -> pd.DataFrame:
    """Inclusive date slice of a frame with an ascending DatetimeIndex."""
    if start is not None:
        frame = frame[frame.index >= pd.to_datetime(start)]
    if end is not None:
        frame = frame[frame.index <= pd.to_datetime(end)]
    return frame


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Map column names case-insensitively onto Open/High/Low/Close/Volume."""
    canonical = {c.lower(): c for c in PRICE_COLUMNS}
    canonical["adj close"] = None  # Dropped; Close is used as-is
    renamed = {}
    for col in df.columns:
        key = str(col).strip().lower()
        if key in canonical and canonical[key] is not None:
            renamed[col] = canonical[key]
    df = df.rename(columns=renamed)
    missing = [c for c in (OPEN, HIGH, LOW, CLOSE) if c not in df.columns]
    if missing:
        raise PriceDataError(f"Missing required columns {missing}. Available: {list(df.columns)}")
    if VOLUME not in df.columns:
        df[VOLUME] = 0.0
    return df[PRICE_COLUMNS].astype(float)


def to_weekly(frame: pd.DataFrame) -> pd.DataFrame:
    """Resample daily bars into weekly bars ending on Friday."""
    weekly = frame.resample("W-FRI").agg({
        OPEN: "first",
        HIGH: "max",
        LOW: "min",
        CLOSE: "last",
        VOLUME: "sum",
    })
    return weekly.dropna(subset=[CLOSE])


class PriceLoader:
    """
    Loads per-instrument price CSVs from a directory.

    Supports date range filtering and optional weekly resampling.
    """

    def __init__(self, data_dir: Union[str, Path]):
        """
        Initialize the loader.

        Args:
            data_dir: Directory containing <symbol>.csv files
        """
        self.data_dir = Path(data_dir)
        if not self.data_dir.is_dir():
            raise FileNotFoundError(f"Data directory not found: {self.data_dir}")

    def list_symbols(self) -> List[str]:
        """Sorted symbols (CSV stems) in the data directory."""
        return sorted(p.stem for p in self.data_dir.glob("*.csv"))

    def load(
        self,
        symbol: str,
        start_date: Optional[DateLike] = None,
        end_date: Optional[DateLike] = None,
        timeframe: str = "daily",
    ) -> pd.DataFrame:
        """
        Load one instrument.

        Args:
            symbol: CSV stem
            start_date: Start date for filtering (inclusive)
            end_date: End date for filtering (inclusive)
            timeframe: "daily" or "weekly"

        Returns:
            DataFrame with DatetimeIndex and OHLCV columns
        """
        path = self.data_dir / f"{symbol}.csv"
        if not path.exists():
            raise FileNotFoundError(f"Data file not found for '{symbol}': {path}")

        try:
            df = pd.read_csv(path, index_col=0, parse_dates=True)
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
            raise PriceDataError(f"Cannot read {path}: {e}") from e

        if not isinstance(df.index, pd.DatetimeIndex):
            try:
                df.index = pd.to_datetime(df.index)
            except (ValueError, TypeError) as e:
                raise PriceDataError(f"{path}: index is not a date column") from e

        df = normalize_columns(df)
        df = df[~df.index.duplicated(keep="last")].sort_index()
        df = df.dropna(subset=[CLOSE])
        df.index.name = "Date"

        if timeframe == "weekly":
            df = to_weekly(df)
        elif timeframe != "daily":
            raise ValueError(f"timeframe must be 'daily' or 'weekly', got {timeframe!r}")

        return slice_frame(df, start_date, end_date)

    def load_universe(
        self,
        symbols: Optional[Iterable[str]] = None,
        start_date: Optional[DateLike] = None,
        end_date: Optional[DateLike] = None,
        timeframe: str = "daily",
    ) -> Dict[str, pd.DataFrame]:
        """
        Load several instruments (default: every CSV in the directory).

        Unreadable files are logged and skipped; empty frames are dropped.
        """
        universe = {}
        for symbol in (list(symbols) if symbols is not None else self.list_symbols()):
            try:
                frame = self.load(symbol, start_date, end_date, timeframe)
            except (FileNotFoundError, PriceDataError) as e:
                logger.warning(f"Skipping {symbol}: {e}")
                continue
            if frame.empty:
                logger.warning(f"Skipping {symbol}: no data in range")
                continue
            universe[symbol] = frame
        logger.info(f"Loaded {len(universe)} instruments from {self.data_dir}")
        return universe
