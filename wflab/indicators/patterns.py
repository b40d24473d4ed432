"""
Cup-with-handle pattern detection.

Finds breakout bars of the classic cup-with-handle formation:
- Two similar local peaks (left and right rim) 15-120 bars apart
- A rounded trough between them 8-50% below the rim, roughly centred
- A shallow handle pullback (1-12%) after the right rim
- A green breakout bar closing above the right rim

Optional confirmation filters (breakout volume, prior uptrend, 52-week
high) are disabled by default and switched on through CupWithHandleConfig.
Also reports cups whose handle is still forming (no breakout yet), for
scanning the most recent bars.
"""
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import pandas as pd

from ..shared.defaults import (
    CWH_MIN_BARS, CWH_PEAK_WINDOW,
    CWH_MIN_CUP_BARS, CWH_MAX_CUP_BARS, CWH_MAX_RIM_DIFF,
    CWH_MIN_DEPTH, CWH_MAX_DEPTH,
    CWH_MIN_BOTTOM_POSITION, CWH_MAX_BOTTOM_POSITION,
    CWH_MAX_HANDLE_BARS, CWH_MIN_PULLBACK, CWH_MAX_PULLBACK,
    CWH_DEDUPE_BARS,
    CWH_VOLUME_LOOKBACK, CWH_VOLUME_MULTIPLE,
    CWH_TREND_SHORT, CWH_TREND_LONG, CWH_NEW_HIGH_LOOKBACK,
)
from ..shared.types import OPEN, HIGH, LOW, CLOSE, VOLUME


@dataclass(frozen=True)
class CupWithHandleConfig:
    """Thresholds for cup-with-handle detection (fractions, not percent)."""
    min_bars: int = CWH_MIN_BARS
    peak_window: int = CWH_PEAK_WINDOW
    min_cup_bars: int = CWH_MIN_CUP_BARS
    max_cup_bars: int = CWH_MAX_CUP_BARS
    max_rim_diff: float = CWH_MAX_RIM_DIFF
    min_depth: float = CWH_MIN_DEPTH
    max_depth: float = CWH_MAX_DEPTH
    min_bottom_position: float = CWH_MIN_BOTTOM_POSITION
    max_bottom_position: float = CWH_MAX_BOTTOM_POSITION
    max_handle_bars: int = CWH_MAX_HANDLE_BARS
    min_handle_bars: int = 0  # Bars after the right rim before a breakout may count
    min_pullback: float = CWH_MIN_PULLBACK
    max_pullback: float = CWH_MAX_PULLBACK
    dedupe_bars: int = CWH_DEDUPE_BARS

    # Confirmation filters
    volume_filter: bool = False  # Breakout volume >= multiple x prior average
    volume_lookback: int = CWH_VOLUME_LOOKBACK
    volume_multiple: float = CWH_VOLUME_MULTIPLE
    trend_filter: bool = False  # Left rim above MA50 and MA50 > MA200
    trend_short: int = CWH_TREND_SHORT
    trend_long: int = CWH_TREND_LONG
    new_high_filter: bool = False  # Breakout close >= highest high of the prior year
    new_high_lookback: int = CWH_NEW_HIGH_LOOKBACK

    def __post_init__(self):
        if self.peak_window < 1:
            raise ValueError(f"peak_window must be >= 1, got {self.peak_window}")
        if self.min_cup_bars > self.max_cup_bars:
            raise ValueError(
                f"min_cup_bars ({self.min_cup_bars}) must not exceed max_cup_bars ({self.max_cup_bars})"
            )
        if not (0 <= self.min_depth <= self.max_depth < 1):
            raise ValueError(
                f"cup depth bounds must satisfy 0 <= min <= max < 1, got [{self.min_depth}, {self.max_depth}]"
            )
        if not (0 <= self.min_pullback <= self.max_pullback < 1):
            raise ValueError(
                f"pullback bounds must satisfy 0 <= min <= max < 1, got [{self.min_pullback}, {self.max_pullback}]"
            )
        if self.trend_short >= self.trend_long:
            raise ValueError(
                f"trend_short ({self.trend_short}) must be less than trend_long ({self.trend_long})"
            )


@dataclass(frozen=True)
class CupWithHandlePattern:
    """One detected cup with its handle breakout (or forming handle)."""
    left_index: int
    bottom_index: int
    right_index: int
    left_high: float
    bottom_low: float
    right_high: float
    cup_bars: int
    depth_pct: float
    handle_bars: int
    pullback_pct: float
    breakout_index: Optional[int] = None  # None while the handle is still forming
    stage: str = "breakout"  # "breakout", "handle_ready" or "handle_forming"


class CupWithHandleDetector:
    """Detects cup-with-handle breakouts in OHLCV price frames."""

    def __init__(self, config: Optional[CupWithHandleConfig] = None):
        self.config = config or CupWithHandleConfig()

    def detect(self, data: pd.DataFrame) -> List[int]:
        """
        Return ascending, deduplicated breakout bar indices.

        Candidates within `dedupe_bars` of an earlier kept index are dropped.
        Frames shorter than `min_bars` yield an empty list.
        """
        candidates = sorted(p.breakout_index for p in self.find_patterns(data))
        kept: List[int] = []
        for index in candidates:
            if not kept or index - kept[-1] > self.config.dedupe_bars:
                kept.append(index)
        return kept

    def find_patterns(self, data: pd.DataFrame) -> List[CupWithHandlePattern]:
        """All (rim pair, breakout) patterns before deduplication."""
        cfg = self.config
        if len(data) < cfg.min_bars:
            return []

        open_ = data[OPEN].to_numpy(dtype=float)
        high = data[HIGH].to_numpy(dtype=float)
        low = data[LOW].to_numpy(dtype=float)
        close = data[CLOSE].to_numpy(dtype=float)
        volume = data[VOLUME].to_numpy(dtype=float) if VOLUME in data.columns else None
        n = len(close)

        patterns = []
        for cup in self._find_cups(high, low, close):
            left, bottom, right, depth = cup
            right_high = high[right]
            search_end = min(right + cfg.max_handle_bars, n - 1)
            handle_low = np.inf
            for h in range(right + 1, search_end + 1):
                handle_low = min(handle_low, low[h])
                if h - right < cfg.min_handle_bars:
                    continue
                pullback = (right_high - handle_low) / right_high
                if pullback > cfg.max_pullback:
                    break
                if pullback < cfg.min_pullback:
                    continue
                if not (close[h] > right_high and close[h] > open_[h]):
                    continue
                if not self._breakout_confirmed(h, high, close, volume):
                    continue
                patterns.append(self._make_pattern(
                    high, low, left, bottom, right, depth, h - right, pullback, breakout_index=h,
                ))
                break
        return patterns

    def find_forming(self, data: pd.DataFrame) -> List[CupWithHandlePattern]:
        """
        Cups whose handle is forming at the end of the frame.

        The right rim must lie within `max_handle_bars` of the last bar, the
        pullback since the rim must be at least half of `min_pullback` and at
        most `max_pullback`, and the last close must not have broken out yet.
        Stage is "handle_ready" when the close is within 5% of the rim and
        above the handle low, otherwise "handle_forming".
        """
        cfg = self.config
        if len(data) < cfg.min_bars:
            return []

        high = data[HIGH].to_numpy(dtype=float)
        low = data[LOW].to_numpy(dtype=float)
        close = data[CLOSE].to_numpy(dtype=float)
        last = len(close) - 1

        results = []
        # Peaks in the last `peak_window` bars are not confirmed yet
        for left, bottom, right, depth in self._find_cups(high, low, close, confirmed_only=True):
            if last - right > cfg.max_handle_bars or right == last:
                continue
            right_high = high[right]
            handle_low = float(low[right + 1:].min())
            pullback = (right_high - handle_low) / right_high
            if pullback > cfg.max_pullback or pullback < cfg.min_pullback / 2:
                continue
            current = close[last]
            if current > right_high:
                continue
            distance = (right_high - current) / right_high
            stage = "handle_ready" if distance < 0.05 and current > handle_low else "handle_forming"
            results.append(self._make_pattern(
                high, low, left, bottom, right, depth, last - right, pullback, stage=stage,
            ))
        return results

    def _find_peaks(self, high: np.ndarray, confirmed_only: bool = False) -> List[int]:
        w = self.config.peak_window
        n = len(high)
        stop = n - w if confirmed_only else n - 1
        peaks = []
        for i in range(w, stop):
            lo, hi = max(0, i - w), min(n - 1, i + w)
            neighbours = np.concatenate([high[lo:i], high[i + 1:hi + 1]])
            if neighbours.size == 0 or high[i] > neighbours.max():
                peaks.append(i)
        return peaks

    def _find_cups(self, high, low, close, confirmed_only: bool = False):
        """Yield (left, bottom, right, depth) for every valid rim pair."""
        cfg = self.config
        peaks = self._find_peaks(high, confirmed_only)
        for a, left in enumerate(peaks):
            for right in peaks[a + 1:]:
                cup_bars = right - left
                if cup_bars < cfg.min_cup_bars or cup_bars > cfg.max_cup_bars:
                    continue
                left_high, right_high = high[left], high[right]
                if cfg.trend_filter and not self._in_uptrend(left, left_high, close):
                    continue
                rim = max(left_high, right_high)
                if abs(left_high - right_high) / rim > cfg.max_rim_diff:
                    continue
                between = low[left + 1:right]
                if between.size == 0:
                    continue
                bottom = left + 1 + int(np.argmin(between))
                depth = (rim - low[bottom]) / rim
                if depth < cfg.min_depth or depth > cfg.max_depth:
                    continue
                position = (bottom - left) / cup_bars
                if position < cfg.min_bottom_position or position > cfg.max_bottom_position:
                    continue
                yield left, bottom, right, depth

    def _in_uptrend(self, left: int, left_high: float, close: np.ndarray) -> bool:
        cfg = self.config
        if left < cfg.trend_long:
            return True  # Not enough history to judge the trend
        ma_short = close[left - cfg.trend_short:left].mean()
        ma_long = close[left - cfg.trend_long:left].mean()
        return left_high >= ma_short and ma_short > ma_long

    def _breakout_confirmed(self, h: int, high, close, volume) -> bool:
        cfg = self.config
        if cfg.volume_filter and volume is not None and h > 0:
            start = max(0, h - cfg.volume_lookback)
            avg_volume = volume[start:h].mean()
            if avg_volume > 0 and volume[h] < avg_volume * cfg.volume_multiple:
                return False
        if cfg.new_high_filter and h > 0:
            start = max(0, h - cfg.new_high_lookback)
            if close[h] < high[start:h].max():
                return False
        return True

    @staticmethod
    def _make_pattern(high, low, left, bottom, right, depth, handle_bars, pullback,
                      breakout_index=None, stage="breakout") -> CupWithHandlePattern:
        return CupWithHandlePattern(
            left_index=left,
            bottom_index=bottom,
            right_index=right,
            left_high=float(high[left]),
            bottom_low=float(low[bottom]),
            right_high=float(high[right]),
            cup_bars=right - left,
            depth_pct=float(depth * 100),
            handle_bars=handle_bars,
            pullback_pct=float(pullback * 100),
            breakout_index=breakout_index,
            stage=stage,
        )


def detect_cup_with_handle(data: pd.DataFrame, config: Optional[CupWithHandleConfig] = None) -> List[int]:
    """Convenience wrapper: breakout indices with the given (or default) config."""
    return CupWithHandleDetector(config).detect(data)
