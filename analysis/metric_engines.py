"""
Metric engines - bind a calculation to its configuration.
compute() never raises for data problems: it returns a MetricOutcome holding
either the result or the MetricError that stopped the calculation.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from analysis.candles import CandleSeries, MetricResult
from analysis.calculations.drawdown import DrawdownConfig, calculate_max_drawdown
from analysis.calculations.sharpe import SHARPE_METRIC, SharpeConfig, calculate_sharpe
from analysis.calculations.true_range import ATR_METRIC, AtrConfig, calculate_atr
from analysis.errors import MetricError

METRIC_CHOICES = ('atr', 'drawdown', 'sharpe', 'all')


@dataclass(frozen=True)
class MetricOutcome:
    """Result of one metric calculation for one symbol."""
    metric: str
    symbol: str
    result: Optional[MetricResult] = None
    error: Optional[MetricError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class MetricEngine:
    """A named metric calculation with its run-scoped configuration."""

    def __init__(self, metric: str, calculate: Callable[[CandleSeries], MetricResult]):
        self.metric = metric
        self._calculate = calculate

    def __repr__(self) -> str:
        return f"MetricEngine({self.metric!r})"

    def compute(self, series: CandleSeries) -> MetricOutcome:
        try:
            result = self._calculate(series)
        except MetricError as e:
            return MetricOutcome(metric=self.metric, symbol=series.symbol, error=e)
        return MetricOutcome(metric=self.metric, symbol=series.symbol, result=result)


def atr_engine(config: AtrConfig = AtrConfig()) -> MetricEngine:
    return MetricEngine(ATR_METRIC, lambda series: calculate_atr(series, config))


def drawdown_engine(config: DrawdownConfig = DrawdownConfig()) -> MetricEngine:
    return MetricEngine(config.metric, lambda series: calculate_max_drawdown(series, config))


def sharpe_engine(config: SharpeConfig = SharpeConfig()) -> MetricEngine:
    return MetricEngine(SHARPE_METRIC, lambda series: calculate_sharpe(series, config))


def build_engines(
    metric: str,
    atr_config: AtrConfig = AtrConfig(),
    drawdown_windows: Sequence[int] = (5, 20),
    sharpe_config: SharpeConfig = SharpeConfig()
) -> List[MetricEngine]:
    """
    Engines for a command-level metric choice.

    Args:
        metric: One of 'atr', 'drawdown', 'sharpe', 'all'
        atr_config: ATR settings
        drawdown_windows: One drawdown engine per window
        sharpe_config: Sharpe settings

    Returns:
        List of engines in execution order
    """
    if metric not in METRIC_CHOICES:
        raise ValueError(f"Unknown metric: {metric}. Choose from {', '.join(METRIC_CHOICES)}")

    engines = []
    if metric in ('atr', 'all'):
        engines.append(atr_engine(atr_config))
    if metric in ('drawdown', 'all'):
        if not drawdown_windows:
            raise ValueError("At least one drawdown window is required")
        engines.extend(drawdown_engine(DrawdownConfig(window=w)) for w in drawdown_windows)
    if metric in ('sharpe', 'all'):
        engines.append(sharpe_engine(sharpe_config))
    return engines
