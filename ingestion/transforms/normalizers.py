"""
Normalizers for transforming provider data to canonical candle rows.
Pure functions - no IO, network, or side effects.
"""

from datetime import date
from typing import Dict, Any, List

from analysis.candles import to_timestamp


def normalize_candles(raw_rows: List[Dict[str, Any]], *, symbol: str) -> List[Dict[str, Any]]:
    """
    Transform provider-native price rows to canonical candle rows.

    Minimal normalization:
    - Date strings to epoch-second timestamps (UTC midnight)
    - Field name mapping (provider uses capitalized names)
    - Deduplication by timestamp (keep last to handle corrections)
    - Ascending order by timestamp

    Args:
        raw_rows: List of provider-specific price dictionaries
        symbol: Ticker symbol

    Returns:
        List of canonical candle dictionaries
    """
    if not raw_rows:
        return []

    by_timestamp = {}

    for raw in raw_rows:
        raw_date = raw.get('Date', '')
        row_date = date.fromisoformat(raw_date) if isinstance(raw_date, str) else raw_date

        canonical = {
            'symbol': symbol,
            'timestamp': to_timestamp(row_date),
            'open': float(raw.get('Open', 0)),
            'high': float(raw.get('High', 0)),
            'low': float(raw.get('Low', 0)),
            'close': float(raw.get('Close', 0)),
            'volume': int(raw.get('Volume', 0)),
        }

        by_timestamp[canonical['timestamp']] = canonical

    return [by_timestamp[ts] for ts in sorted(by_timestamp)]
