"""
Drawdown calculation utilities.
Pure functions for maximum peak-to-trough decline over a trailing window.
"""

import re
import numpy as np
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Union

from analysis.candles import CandleSeries, MetricResult
from analysis.errors import InsufficientCandles, DegenerateSeries


@dataclass(frozen=True)
class DrawdownConfig:
    """Configuration for max drawdown calculation."""
    window: int = 20

    def __post_init__(self):
        if self.window <= 0:
            raise ValueError("window must be positive")

    @property
    def metric(self) -> str:
        return drawdown_metric(self.window)


def drawdown_metric(window: int) -> str:
    """Metric (table) name for a drawdown window, e.g. max_drawdown_20d."""
    return f"max_drawdown_{window}d"


_DRAWDOWN_METRIC = re.compile(r"^max_drawdown_(\d+)d$")


def parse_drawdown_metric(metric: str) -> Optional[int]:
    """Window of a drawdown metric name, or None for other metrics."""
    match = _DRAWDOWN_METRIC.match(metric)
    if match is None:
        return None
    window = int(match.group(1))
    return window if window > 0 else None


def drawdown_series(closes: Sequence[float]) -> np.ndarray:
    """
    Calculate drawdown at each point relative to the running peak.

    Formula: dd_i = (close_i - max(close_0..i)) / max(close_0..i)

    Args:
        closes: Close prices in chronological order

    Returns:
        Numpy array of drawdowns, each <= 0

    Raises:
        DegenerateSeries: If prices are zero, negative or non-finite
    """
    prices = np.asarray(closes, dtype=float)
    if prices.size == 0:
        return prices

    if not np.all(np.isfinite(prices)) or np.any(prices <= 0):
        raise DegenerateSeries("Zero, negative or non-finite prices not allowed")

    # Track running maximum (peak)
    running_max = np.maximum.accumulate(prices)
    return (prices - running_max) / running_max


def max_drawdown(series: CandleSeries, config: DrawdownConfig = DrawdownConfig()) -> float:
    """
    Largest peak-to-trough percentage decline within the trailing window.

    Args:
        series: Candle series in chronological order
        config: Window size in trading days

    Returns:
        Max drawdown as decimal, negative or zero (0 = no drawdown)

    Raises:
        InsufficientCandles: If the series is shorter than the window

    Example:
        closes [100, 90, 80, 120] with window=4 -> -0.2 (80 vs peak 100)
    """
    if len(series) < config.window:
        raise InsufficientCandles(required=config.window, available=len(series))

    drawdowns = drawdown_series(series.tail(config.window).closes)
    # min() of an all-zero array is 0.0; avoid returning -0.0
    return float(drawdowns.min()) + 0.0


def drawdown_stats(series: CandleSeries, config: DrawdownConfig = DrawdownConfig()) -> Dict[str, Union[float, int]]:
    """
    Max drawdown with the peak and trough locations inside the window.

    Args:
        series: Candle series in chronological order
        config: Window size in trading days

    Returns:
        Dictionary with:
        - max_drawdown_pct: Largest decline as decimal (negative or zero)
        - peak_timestamp: Timestamp of the peak before the trough
        - trough_timestamp: Timestamp of the lowest point relative to the peak
        - drawdown_days: Candles from peak to trough
    """
    if len(series) < config.window:
        raise InsufficientCandles(required=config.window, available=len(series))

    window = series.tail(config.window)
    closes = window.closes
    drawdowns = drawdown_series(closes)

    trough_idx = int(np.argmin(drawdowns))
    # Peak is the first occurrence of the running max at the trough
    peak_value = closes[:trough_idx + 1].max()
    peak_idx = int(np.argmax(closes[:trough_idx + 1] == peak_value))

    timestamps = window.timestamps
    return {
        'max_drawdown_pct': float(drawdowns[trough_idx]) + 0.0,
        'peak_timestamp': timestamps[peak_idx],
        'trough_timestamp': timestamps[trough_idx],
        'drawdown_days': trough_idx - peak_idx,
    }


def calculate_max_drawdown(series: CandleSeries, config: DrawdownConfig = DrawdownConfig()) -> MetricResult:
    """Max drawdown as a MetricResult stamped with the latest candle timestamp."""
    value = max_drawdown(series, config)
    return MetricResult(
        metric=config.metric,
        symbol=series.symbol,
        timestamp=series.latest_timestamp,
        value=value,
    )
