"""
Returns calculation utilities.
Pure functions deriving period-over-period returns from a candle series.
"""

import numpy as np

from analysis.candles import CandleSeries
from analysis.errors import InsufficientCandles, DegenerateSeries


def _checked_closes(series: CandleSeries) -> np.ndarray:
    if len(series) < 2:
        raise InsufficientCandles(required=2, available=len(series))

    closes = series.closes
    if not np.all(np.isfinite(closes)):
        raise DegenerateSeries(f"Non-finite close prices for {series.symbol}")

    # Every close except the last is a divisor
    if np.any(closes[:-1] == 0):
        raise DegenerateSeries(f"Zero close price for {series.symbol}")

    return closes


def simple_returns(series: CandleSeries) -> np.ndarray:
    """
    Calculate simple returns between consecutive candles.

    Formula: r_i = (close_{i+1} - close_i) / close_i

    Args:
        series: Candle series in chronological order

    Returns:
        Numpy array of returns (length = len(series) - 1)

    Raises:
        InsufficientCandles: If fewer than 2 candles
        DegenerateSeries: If a divisor close is zero

    Example:
        closes [105, 100] -> [(100 - 105) / 105] = [-0.047619...]
    """
    closes = _checked_closes(series)
    return np.diff(closes) / closes[:-1]


def log_returns(series: CandleSeries) -> np.ndarray:
    """
    Calculate log returns between consecutive candles.

    Formula: r_i = ln(close_{i+1} / close_i)

    Raises:
        InsufficientCandles: If fewer than 2 candles
        DegenerateSeries: If any close is zero or negative
    """
    closes = _checked_closes(series)
    if np.any(closes <= 0):
        raise DegenerateSeries(f"Non-positive close price for {series.symbol}")

    return np.diff(np.log(closes))
