"""
Tests for candle row validators.
"""

import pytest

from ingestion.transforms.validators import (
    ValidationError,
    validate_candle_row,
    check_timestamp_monotonicity
)


def valid_row(**overrides):
    row = {
        'symbol': 'AAPL',
        'timestamp': 1_705_276_800,
        'open': 185.25,
        'high': 186.80,
        'low': 184.50,
        'close': 185.92,
        'volume': 65284300,
    }
    row.update(overrides)
    return row


class TestValidateCandleRow:
    """Tests for validate_candle_row function."""

    def test_valid_row(self):
        validate_candle_row(valid_row())

    def test_missing_keys(self):
        row = valid_row()
        del row['close']

        with pytest.raises(ValidationError, match="Missing required keys"):
            validate_candle_row(row)

    def test_empty_symbol(self):
        with pytest.raises(ValidationError, match="symbol"):
            validate_candle_row(valid_row(symbol=''))

    def test_timestamp_must_be_integer(self):
        with pytest.raises(ValidationError, match="timestamp must be integer"):
            validate_candle_row(valid_row(timestamp='2024-01-15'))

    def test_timestamp_bool_rejected(self):
        with pytest.raises(ValidationError):
            validate_candle_row(valid_row(timestamp=True))

    @pytest.mark.parametrize('field', ['open', 'high', 'low', 'close'])
    def test_prices_must_be_positive(self, field):
        with pytest.raises(ValidationError, match=f"{field} must be positive"):
            validate_candle_row(valid_row(**{field: 0.0}))

    def test_price_must_be_finite(self):
        with pytest.raises(ValidationError, match="finite"):
            validate_candle_row(valid_row(close=float('nan')))

    def test_negative_volume(self):
        with pytest.raises(ValidationError, match="volume"):
            validate_candle_row(valid_row(volume=-1))

    def test_high_below_low(self):
        with pytest.raises(ValidationError, match="high"):
            validate_candle_row(valid_row(high=180.0, low=184.5, open=182.0, close=182.0))

    def test_close_above_high(self):
        with pytest.raises(ValidationError, match="must be >= open and close"):
            validate_candle_row(valid_row(close=190.0))

    def test_open_below_low(self):
        with pytest.raises(ValidationError, match="must be <= open and close"):
            validate_candle_row(valid_row(open=184.0))


class TestTimestampMonotonicity:
    """Tests for check_timestamp_monotonicity."""

    def test_increasing(self):
        check_timestamp_monotonicity([valid_row(timestamp=t) for t in (1, 2, 3)])

    def test_duplicate(self):
        with pytest.raises(ValidationError, match="not monotonic"):
            check_timestamp_monotonicity([valid_row(timestamp=t) for t in (1, 2, 2)])

    def test_per_symbol(self):
        rows = [
            valid_row(symbol='AAPL', timestamp=2),
            valid_row(symbol='MSFT', timestamp=1),
            valid_row(symbol='AAPL', timestamp=3),
        ]
        check_timestamp_monotonicity(rows)
