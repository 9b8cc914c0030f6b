"""
Tests for statistics utilities.
Hand-verifiable series with known moments.
"""

import math
import pytest
import numpy as np

from analysis.calculations.statistics import (
    mean,
    sample_std_dev,
    exponential_moving_average,
    percentile
)
from analysis.errors import InsufficientData, DegenerateSeries


class TestMean:
    """Tests for mean function."""

    def test_mean_basic(self):
        assert mean([1.0, 2.0, 3.0]) == 2.0

    def test_mean_accepts_numpy(self):
        assert mean(np.array([0.01, -0.01, 0.03])) == pytest.approx(0.01)

    def test_mean_single_value(self):
        assert mean([5.0]) == 5.0

    def test_mean_empty(self):
        with pytest.raises(InsufficientData):
            mean([])

    def test_mean_nan(self):
        with pytest.raises(DegenerateSeries, match="NaN or infinite"):
            mean([1.0, float('nan')])


class TestSampleStdDev:
    """Tests for sample_std_dev function."""

    def test_sample_std_dev_uses_bessel_correction(self):
        """Population std of this series is 2.0; sample std divides by n-1."""
        values = [2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0]

        result = sample_std_dev(values)

        assert result == pytest.approx(math.sqrt(32.0 / 7.0), abs=1e-12)
        assert result != pytest.approx(2.0)

    def test_sample_std_dev_two_values(self):
        # mean 2, deviations +-1, variance 2/1
        assert sample_std_dev([1.0, 3.0]) == pytest.approx(math.sqrt(2.0))

    def test_sample_std_dev_insufficient(self):
        with pytest.raises(InsufficientData, match="at least 2"):
            sample_std_dev([1.0])

    def test_sample_std_dev_empty(self):
        with pytest.raises(InsufficientData):
            sample_std_dev([])

    def test_sample_std_dev_constant_series(self):
        """Zero variance is rejected so no caller divides by zero."""
        with pytest.raises(DegenerateSeries, match="zero"):
            sample_std_dev([0.01, 0.01, 0.01, 0.01])

    def test_sample_std_dev_constant_series_with_rounding(self):
        """np.std leaves ~1e-18 on ten copies of 0.01; still constant."""
        with pytest.raises(DegenerateSeries):
            sample_std_dev([0.01] * 10)

    def test_sample_std_dev_small_real_spread(self):
        assert sample_std_dev([1e-6, 2e-6, 3e-6]) == pytest.approx(1e-6)

    def test_sample_std_dev_infinite(self):
        with pytest.raises(DegenerateSeries):
            sample_std_dev([1.0, float('inf'), 2.0])


class TestExponentialMovingAverage:
    """Tests for exponential_moving_average function."""

    def test_ema_constant_series(self):
        assert exponential_moving_average([3.0] * 6, period=4) == pytest.approx(3.0)

    def test_ema_hand_calculated(self):
        # k = 2/3: 1 -> 5/3 -> 23/9
        result = exponential_moving_average([1.0, 2.0, 3.0], period=2)
        assert result == pytest.approx(23.0 / 9.0)

    def test_ema_weights_recent_values(self):
        rising = exponential_moving_average([1.0, 1.0, 1.0, 10.0], period=3)
        assert rising > mean([1.0, 1.0, 1.0, 10.0])

    def test_ema_insufficient(self):
        with pytest.raises(InsufficientData, match="need 4"):
            exponential_moving_average([1.0, 2.0, 3.0], period=4)

    def test_ema_invalid_period(self):
        with pytest.raises(ValueError):
            exponential_moving_average([1.0, 2.0], period=0)


class TestPercentile:
    """Tests for percentile function (linear interpolation)."""

    def test_percentile_median_interpolates(self):
        assert percentile([1.0, 2.0, 3.0, 4.0], 0.5) == pytest.approx(2.5)

    def test_percentile_bounds_are_min_and_max(self):
        values = [4.0, 1.0, 3.0, 2.0]
        assert percentile(values, 0.0) == 1.0
        assert percentile(values, 1.0) == 4.0

    def test_percentile_unsorted_input(self):
        # index 0.9 * 3 = 2.7 -> 4 * 0.3 + 6 * 0.7
        assert percentile([6.0, 2.0, 4.0, 2.0], 0.9) == pytest.approx(5.4)

    def test_percentile_matches_numpy_linear(self):
        values = [3.5, 1.25, 9.0, 4.0, 7.75]
        for q in (0.1, 0.33, 0.75):
            assert percentile(values, q) == pytest.approx(np.percentile(values, q * 100))

    def test_percentile_single_value(self):
        assert percentile([7.0], 0.3) == 7.0

    def test_percentile_empty(self):
        with pytest.raises(InsufficientData):
            percentile([], 0.5)

    @pytest.mark.parametrize('q', [-0.1, 1.5])
    def test_percentile_out_of_range(self, q):
        with pytest.raises(ValueError, match="between 0 and 1"):
            percentile([1.0, 2.0], q)
