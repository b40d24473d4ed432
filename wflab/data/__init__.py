"""
Data loading module.

Provides a directory-backed loader for per-instrument price CSVs and
date-range slicing.
"""
from .loader import PriceLoader, PriceDataError, slice_frame, normalize_columns, to_weekly

__all__ = [
    'PriceLoader',
    'PriceDataError',
    'slice_frame',
    'normalize_columns',
    'to_weekly',
]
