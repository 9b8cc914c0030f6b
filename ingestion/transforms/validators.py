"""
Core validators for canonical candle rows.
Pure functions - no IO, network, or side effects.
"""

import math
from typing import Dict, Any, List


class ValidationError(ValueError):
    """Raised when data validation fails."""
    pass


def validate_candle_row(row: Dict[str, Any]) -> None:
    """
    Validate a canonical candle row.

    Args:
        row: Dictionary containing candle data

    Raises:
        ValidationError: If validation fails
    """
    required_keys = {'symbol', 'timestamp', 'open', 'high', 'low', 'close', 'volume'}

    missing = required_keys - set(row.keys())
    if missing:
        raise ValidationError(f"Missing required keys: {missing}")

    if not isinstance(row['symbol'], str) or not row['symbol']:
        raise ValidationError(f"symbol must be non-empty string, got {row['symbol']!r}")

    if isinstance(row['timestamp'], bool) or not isinstance(row['timestamp'], int):
        raise ValidationError(f"timestamp must be integer, got {type(row['timestamp'])}")

    if row['timestamp'] < 0:
        raise ValidationError(f"timestamp must be non-negative, got {row['timestamp']}")

    # Numeric validations for prices
    for field in ['open', 'high', 'low', 'close']:
        value = row[field]
        if not isinstance(value, (int, float)):
            raise ValidationError(f"{field} must be numeric, got {type(value)}")

        if not math.isfinite(value):
            raise ValidationError(f"{field} must be finite, got {value}")

        if value <= 0:
            raise ValidationError(f"{field} must be positive, got {value}")

    volume = row['volume']
    if not isinstance(volume, int):
        raise ValidationError(f"volume must be integer, got {type(volume)}")

    if volume < 0:
        raise ValidationError(f"volume must be non-negative, got {volume}")

    # Price logic validations
    high = row['high']
    low = row['low']

    if high < low:
        raise ValidationError(f"high ({high}) must be >= low ({low})")

    if high < row['open'] or high < row['close']:
        raise ValidationError(f"high ({high}) must be >= open and close")

    if low > row['open'] or low > row['close']:
        raise ValidationError(f"low ({low}) must be <= open and close")


def check_timestamp_monotonicity(rows: List[Dict[str, Any]]) -> None:
    """
    Check that timestamps are strictly increasing for each symbol.

    Raises:
        ValidationError: If timestamps are not monotonic or have duplicates
    """
    last_seen: Dict[str, int] = {}

    for row in rows:
        symbol = row.get('symbol')
        timestamp = row.get('timestamp')

        if symbol in last_seen and timestamp <= last_seen[symbol]:
            raise ValidationError(
                f"Symbol {symbol} timestamps not monotonic: "
                f"{last_seen[symbol]} >= {timestamp}"
            )
        last_seen[symbol] = timestamp
