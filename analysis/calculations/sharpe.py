"""
Sharpe ratio calculation utilities.
Pure functions for excess return over volatility.
"""

import math
import numpy as np
from dataclasses import dataclass
from typing import Optional, Sequence

from analysis.candles import CandleSeries, MetricResult
from analysis.calculations.returns import simple_returns
from analysis.calculations.statistics import mean, sample_std_dev
from analysis.errors import InsufficientReturnData, InvalidRiskFreeRate

SHARPE_METRIC = 'sharpe_ratio'
DEFAULT_RISK_FREE_RATE = 0.02
RISK_FREE_RATE_BOUND = 1.0


@dataclass(frozen=True)
class SharpeConfig:
    """
    Run-scoped Sharpe configuration.

    risk_free_rate is annualized; None resolves to DEFAULT_RISK_FREE_RATE.
    window limits the calculation to the trailing candles. annualize scales
    the per-period ratio by sqrt(periods_per_year).
    """
    risk_free_rate: Optional[float] = None
    min_candles: int = 14
    periods_per_year: int = 252
    window: Optional[int] = None
    annualize: bool = False

    def __post_init__(self):
        if self.min_candles < 1:
            raise ValueError("min_candles must be positive")
        if self.periods_per_year <= 0:
            raise ValueError("periods_per_year must be positive")
        if self.window is not None and self.window < 2:
            raise ValueError("window must be at least 2 candles")


def resolve_risk_free_rate(config: SharpeConfig) -> float:
    """
    Resolve and validate the annualized risk-free rate.

    Raises:
        InvalidRiskFreeRate: If the rate is non-finite or outside [-1.0, 1.0]
    """
    rate = DEFAULT_RISK_FREE_RATE if config.risk_free_rate is None else config.risk_free_rate

    if not isinstance(rate, (int, float)) or not math.isfinite(rate):
        raise InvalidRiskFreeRate(rate)
    if abs(rate) > RISK_FREE_RATE_BOUND:
        raise InvalidRiskFreeRate(rate)

    return float(rate)


def sharpe_ratio(returns: Sequence[float], risk_free_rate_per_period: float) -> float:
    """
    Unannualized Sharpe ratio of a return series.

    Formula: (mean(returns) - rf) / sample_std_dev(returns)
    The rate must already be expressed per return period.

    Raises:
        InsufficientData: If fewer than 2 returns
        DegenerateSeries: If returns have zero variance
    """
    avg_return = mean(returns)
    std_dev = sample_std_dev(returns)
    return (avg_return - risk_free_rate_per_period) / std_dev


def calculate_sharpe(series: CandleSeries, config: SharpeConfig = SharpeConfig()) -> MetricResult:
    """
    Sharpe ratio from daily candles.

    Steps:
    1. Simple returns over the full series (or trailing window)
    2. Require at least min_candles returns
    3. Convert the annual risk-free rate to a per-period rate
    4. (mean - rf_per_period) / sample std, optionally annualized

    Args:
        series: Candle series in chronological order
        config: Sharpe configuration

    Returns:
        MetricResult stamped with the latest candle timestamp

    Raises:
        InsufficientCandles: If fewer than 2 candles
        InsufficientReturnData: If fewer returns than min_candles
        DegenerateSeries: If returns have zero variance (flat prices)
        InvalidRiskFreeRate: If the configured rate fails the sanity bound
    """
    if config.window is not None and len(series) > config.window:
        series = series.tail(config.window)

    returns = simple_returns(series)
    if len(returns) < config.min_candles:
        raise InsufficientReturnData(config.min_candles, available=len(returns))

    annual_rate = resolve_risk_free_rate(config)
    per_period_rate = annual_rate / config.periods_per_year

    ratio = sharpe_ratio(returns, per_period_rate)
    if config.annualize:
        ratio *= float(np.sqrt(config.periods_per_year))

    return MetricResult(
        metric=SHARPE_METRIC,
        symbol=series.symbol,
        timestamp=series.latest_timestamp,
        value=float(ratio),
    )
