"""
Statistics utilities shared by every metric.
Pure functions over numeric sequences.
"""

import numpy as np
from typing import Sequence

from analysis.errors import InsufficientData, DegenerateSeries

RELATIVE_STD_TOLERANCE = 1e-12


def _as_array(values: Sequence[float]) -> np.ndarray:
    array = np.asarray(values, dtype=float)
    if array.size and not np.all(np.isfinite(array)):
        raise DegenerateSeries("NaN or infinite values not allowed")
    return array


def mean(values: Sequence[float]) -> float:
    """
    Arithmetic mean.

    Raises:
        InsufficientData: If values is empty
        DegenerateSeries: If values contain NaN or infinity
    """
    array = _as_array(values)
    if array.size == 0:
        raise InsufficientData("Insufficient data: need at least 1 value for mean")
    return float(np.mean(array))


def sample_std_dev(values: Sequence[float]) -> float:
    """
    Sample standard deviation with Bessel's correction (divide by n - 1).

    A zero result is rejected so callers never divide by it.

    Args:
        values: Numeric sequence

    Returns:
        Standard deviation, strictly positive

    Raises:
        InsufficientData: If fewer than 2 values
        DegenerateSeries: If the standard deviation is zero or input is non-finite
    """
    array = _as_array(values)
    if array.size < 2:
        raise InsufficientData(
            f"Insufficient data: need at least 2 values for standard deviation, have {array.size}"
        )

    std_dev = float(np.std(array, ddof=1))
    # Rounding leaves ~1e-18 of spread on constant series; treat it as zero
    scale = float(np.max(np.abs(array)))
    if std_dev == 0.0 or std_dev <= scale * RELATIVE_STD_TOLERANCE:
        raise DegenerateSeries("Standard deviation is zero (constant series)")

    return std_dev


def exponential_moving_average(values: Sequence[float], period: int) -> float:
    """
    Exponential moving average of a series, returning the final value.

    Formula: ema_t = x_t * k + ema_{t-1} * (1 - k), k = 2 / (period + 1),
    seeded with the first value.

    Raises:
        InsufficientData: If fewer values than period
    """
    if period <= 0:
        raise ValueError("period must be positive")

    array = _as_array(values)
    if array.size < period:
        raise InsufficientData(
            f"Insufficient data: need {period} values for EMA, have {array.size}"
        )

    multiplier = 2.0 / (period + 1.0)
    ema = array[0]
    for value in array[1:]:
        ema = value * multiplier + ema * (1.0 - multiplier)

    return float(ema)


def percentile(values: Sequence[float], q: float) -> float:
    """
    Percentile with linear interpolation between the closest ranks.

    Formula: sorted values v, index = q * (n - 1),
    result = v[floor] * (1 - frac) + v[ceil] * frac

    Args:
        values: Numeric sequence (order does not matter)
        q: Percentile as a fraction in [0, 1] (0.5 = median)

    Returns:
        Interpolated percentile value

    Raises:
        ValueError: If q is outside [0, 1]
        InsufficientData: If values is empty
    """
    if not 0.0 <= q <= 1.0:
        raise ValueError(f"percentile must be between 0 and 1, got {q}")

    array = np.sort(_as_array(values))
    if array.size == 0:
        raise InsufficientData("Insufficient data: need at least 1 value for percentile")

    index = q * (array.size - 1)
    lower = int(np.floor(index))
    upper = int(np.ceil(index))
    weight = index - lower

    return float(array[lower] * (1.0 - weight) + array[upper] * weight)
