"""
True range and Average True Range (ATR) utilities.
Pure functions for candle volatility in price units.
"""

import numpy as np
from dataclasses import dataclass

from analysis.candles import CandleSeries, MetricResult
from analysis.calculations.statistics import mean, exponential_moving_average, percentile
from analysis.errors import InsufficientCandles

ATR_METRIC = 'average_true_range'
SMOOTHING_CHOICES = ('sma', 'ema', 'percentile')


@dataclass(frozen=True)
class AtrConfig:
    """Configuration for ATR calculation."""
    window: int = 14
    group_size: int = 1
    smoothing: str = 'sma'
    percentile: float = 0.5

    def __post_init__(self):
        if self.window <= 0:
            raise ValueError("window must be positive")
        if self.group_size <= 0:
            raise ValueError("group_size must be positive")
        if self.smoothing not in SMOOTHING_CHOICES:
            raise ValueError(f"smoothing must be one of {', '.join(SMOOTHING_CHOICES)}")
        if not 0.0 <= self.percentile <= 1.0:
            raise ValueError("percentile must be between 0 and 1")


def true_ranges(series: CandleSeries) -> np.ndarray:
    """
    Calculate the true range of every candle.

    Formula (i > 0): max(high - low, |high - prev_close|, |low - prev_close|)
    For the first candle there is no previous close, so TR = high - low.

    Args:
        series: Candle series in chronological order

    Returns:
        Numpy array of true ranges (length = len(series))
    """
    highs = series.highs
    lows = series.lows
    closes = series.closes

    ranges = highs - lows
    if len(series) > 1:
        prev_close = closes[:-1]
        ranges[1:] = np.maximum.reduce([
            ranges[1:],
            np.abs(highs[1:] - prev_close),
            np.abs(lows[1:] - prev_close),
        ])

    return ranges


def average_true_range(series: CandleSeries, config: AtrConfig = AtrConfig()) -> float:
    """
    Calculate ATR over the trailing window of true ranges.

    Candles are optionally aggregated first (group_size=5 turns daily bars
    into weekly bars). True ranges are computed over the whole series so the
    first candle of the window still sees its previous close.

    Args:
        series: Candle series in chronological order
        config: Window, aggregation and smoothing settings. smoothing is the
            mean (sma), EMA (ema) or the config.percentile percentile of the
            window's true ranges

    Returns:
        ATR in price units

    Raises:
        InsufficientCandles: If fewer (aggregated) candles than window
    """
    candles = series.resample(config.group_size)
    if len(candles) < config.window:
        raise InsufficientCandles(required=config.window, available=len(candles))

    window_ranges = true_ranges(candles)[-config.window:]

    if config.smoothing == 'ema':
        return exponential_moving_average(window_ranges, config.window)
    if config.smoothing == 'percentile':
        return percentile(window_ranges, config.percentile)
    return mean(window_ranges)


def calculate_atr(series: CandleSeries, config: AtrConfig = AtrConfig()) -> MetricResult:
    """ATR as a MetricResult stamped with the latest candle timestamp."""
    value = average_true_range(series, config)
    return MetricResult(
        metric=ATR_METRIC,
        symbol=series.symbol,
        timestamp=series.latest_timestamp,
        value=value,
    )
