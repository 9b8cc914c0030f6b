"""
Error kinds for metric calculations, candle fetching and result storage.
Calculation functions raise these; batch boundaries turn them into failure entries.
"""

from typing import Optional


class MetricError(Exception):
    """Base class for per-symbol calculation failures."""
    kind = 'metric_error'


class InsufficientData(MetricError):
    """Raised when a statistic has too few values to be computed."""
    kind = 'insufficient_data'


class InsufficientCandles(MetricError):
    """Raised when a candle series is shorter than a metric requires."""
    kind = 'insufficient_candles'

    def __init__(self, required: int, available: Optional[int] = None):
        self.required = required
        self.available = available
        message = f"Insufficient candles: need {required}"
        if available is not None:
            message += f", have {available}"
        super().__init__(message)


class InsufficientReturnData(MetricError):
    """Raised when there are fewer returns than the configured minimum."""
    kind = 'insufficient_return_data'

    def __init__(self, minimum: int, available: Optional[int] = None):
        self.minimum = minimum
        self.available = available
        message = f"Insufficient return data: need {minimum} returns"
        if available is not None:
            message += f", have {available}"
        super().__init__(message)


class DegenerateSeries(MetricError):
    """Raised on zero variance, zero-price division or non-finite input."""
    kind = 'degenerate_series'


class InvalidRiskFreeRate(MetricError):
    """Raised when the risk-free rate is non-finite or outside [-1.0, 1.0]."""
    kind = 'invalid_risk_free_rate'

    def __init__(self, value: float):
        self.value = value
        super().__init__(f"Invalid risk-free rate: {value} (must be finite and within [-1.0, 1.0])")


class FetchError(Exception):
    """Raised by candle sources when a symbol cannot be fetched."""
    kind = 'fetch_error'


class StoreError(Exception):
    """Base class for metric store failures."""
    kind = 'store_error'


class StoreUnavailableError(StoreError):
    """Raised when the store itself cannot be read or written. Aborts a batch."""
    kind = 'store_unavailable'


class RowValidationError(StoreError):
    """Raised when a single row is rejected before writing. Skippable per symbol."""
    kind = 'row_validation'


class BatchError(Exception):
    """Raised when a batch cannot run at all."""
    pass
