"""
Tests for Sharpe ratio calculation.
Expected values are recomputed from the closes with numpy.
"""

import math
import pytest
import numpy as np

from analysis.candles import Candle, CandleSeries
from analysis.calculations.sharpe import (
    SHARPE_METRIC,
    DEFAULT_RISK_FREE_RATE,
    SharpeConfig,
    resolve_risk_free_rate,
    sharpe_ratio,
    calculate_sharpe
)
from analysis.errors import (
    InsufficientCandles,
    InsufficientReturnData,
    DegenerateSeries,
    InvalidRiskFreeRate
)

DAY = 86400
START = 1_700_000_000

# 16 closes -> 15 returns, enough for the default minimum of 14
CLOSES = [
    100.0, 101.5, 100.8, 102.3, 103.1, 102.0, 104.2, 105.0,
    104.1, 106.3, 105.7, 107.2, 108.0, 106.9, 109.4, 110.1
]


def make_series(closes, symbol='MSFT'):
    return CandleSeries(symbol, [
        Candle(symbol, START + i * DAY, open=c, high=c * 1.01, low=c * 0.99, close=c)
        for i, c in enumerate(closes)
    ])


def expected_sharpe(closes, annual_rate, periods=252):
    prices = np.asarray(closes)
    returns = np.diff(prices) / prices[:-1]
    return (returns.mean() - annual_rate / periods) / returns.std(ddof=1)


class TestSharpeRatio:
    """Tests for the raw sharpe_ratio formula."""

    def test_sharpe_ratio_formula(self):
        returns = [0.01, -0.005, 0.02, 0.0, 0.015]
        expected = (np.mean(returns) - 0.0001) / np.std(returns, ddof=1)

        assert sharpe_ratio(returns, 0.0001) == pytest.approx(expected, abs=1e-12)

    def test_sharpe_ratio_zero_variance(self):
        with pytest.raises(DegenerateSeries):
            sharpe_ratio([0.01] * 10, 0.0)


class TestCalculateSharpe:
    """Tests for calculate_sharpe function."""

    def test_calculate_sharpe_matches_formula(self):
        series = make_series(CLOSES)

        result = calculate_sharpe(series, SharpeConfig(risk_free_rate=0.02))

        assert result.value == pytest.approx(expected_sharpe(CLOSES, 0.02), abs=1e-9)

    def test_rate_is_converted_to_daily(self):
        """Using the annual rate unconverted would give a very different ratio."""
        series = make_series(CLOSES)
        prices = np.asarray(CLOSES)
        returns = np.diff(prices) / prices[:-1]
        unconverted = (returns.mean() - 0.02) / returns.std(ddof=1)

        result = calculate_sharpe(series, SharpeConfig(risk_free_rate=0.02))

        assert result.value != pytest.approx(unconverted, abs=1e-3)

    def test_default_rate_applied_when_unset(self):
        series = make_series(CLOSES)

        default = calculate_sharpe(series, SharpeConfig())
        explicit = calculate_sharpe(series, SharpeConfig(risk_free_rate=DEFAULT_RISK_FREE_RATE))

        assert default.value == explicit.value

    def test_higher_rate_lowers_ratio(self):
        series = make_series(CLOSES)

        low = calculate_sharpe(series, SharpeConfig(risk_free_rate=0.0))
        high = calculate_sharpe(series, SharpeConfig(risk_free_rate=0.5))

        assert high.value < low.value

    def test_result_shape(self):
        series = make_series(CLOSES)

        result = calculate_sharpe(series)

        assert result.metric == SHARPE_METRIC
        assert result.symbol == 'MSFT'
        assert result.timestamp == START + (len(CLOSES) - 1) * DAY

    def test_constant_series_is_degenerate(self):
        with pytest.raises(DegenerateSeries):
            calculate_sharpe(make_series([50.0] * 20))

    def test_constant_growth_is_degenerate(self):
        """Every return is 1%; rounding noise must not yield a huge ratio."""
        closes = [100.0 * 1.01 ** i for i in range(20)]

        with pytest.raises(DegenerateSeries):
            calculate_sharpe(make_series(closes))

    def test_insufficient_returns(self):
        """14 candles give only 13 returns."""
        with pytest.raises(InsufficientReturnData) as exc_info:
            calculate_sharpe(make_series(CLOSES[:14]))

        assert exc_info.value.minimum == 14
        assert exc_info.value.available == 13

    def test_exactly_minimum_returns(self):
        result = calculate_sharpe(make_series(CLOSES[:15]))
        assert math.isfinite(result.value)

    def test_custom_minimum(self):
        result = calculate_sharpe(make_series(CLOSES[:5]), SharpeConfig(min_candles=4))
        assert result.value == pytest.approx(expected_sharpe(CLOSES[:5], 0.02), abs=1e-9)

    def test_single_candle(self):
        with pytest.raises(InsufficientCandles):
            calculate_sharpe(make_series([100.0]), SharpeConfig(min_candles=1))

    def test_annualize_scales_by_sqrt_periods(self):
        series = make_series(CLOSES)

        plain = calculate_sharpe(series, SharpeConfig(risk_free_rate=0.01))
        annual = calculate_sharpe(series, SharpeConfig(risk_free_rate=0.01, annualize=True))

        assert annual.value == pytest.approx(plain.value * math.sqrt(252), rel=1e-12)

    def test_window_uses_trailing_candles(self):
        series = make_series(CLOSES)
        config = SharpeConfig(window=8, min_candles=5)

        result = calculate_sharpe(series, config)

        assert result.value == pytest.approx(expected_sharpe(CLOSES[-8:], 0.02), abs=1e-9)
        assert result.timestamp == series.latest_timestamp


class TestRiskFreeRate:
    """Tests for risk-free rate resolution and bounds."""

    def test_resolve_default(self):
        assert resolve_risk_free_rate(SharpeConfig()) == 0.02

    def test_resolve_negative_within_bound(self):
        assert resolve_risk_free_rate(SharpeConfig(risk_free_rate=-0.005)) == -0.005

    @pytest.mark.parametrize('rate', [float('nan'), float('inf'), 1.5, -2.0])
    def test_invalid_rate_rejected(self, rate):
        with pytest.raises(InvalidRiskFreeRate):
            resolve_risk_free_rate(SharpeConfig(risk_free_rate=rate))

    def test_invalid_rate_fails_calculation(self):
        with pytest.raises(InvalidRiskFreeRate, match="1.5"):
            calculate_sharpe(make_series(CLOSES), SharpeConfig(risk_free_rate=1.5))


class TestSharpeConfig:
    """Tests for SharpeConfig validation."""

    def test_defaults(self):
        config = SharpeConfig()

        assert config.risk_free_rate is None
        assert config.min_candles == 14
        assert config.periods_per_year == 252
        assert config.annualize is False

    def test_invalid_min_candles(self):
        with pytest.raises(ValueError):
            SharpeConfig(min_candles=0)

    def test_invalid_window(self):
        with pytest.raises(ValueError):
            SharpeConfig(window=1)
