"""
Candle sources - callables that turn a symbol into a CandleSeries.
Any object with fetch(symbol) -> CandleSeries can feed the metrics batch.
"""

import logging
import sqlite3
from datetime import date, timedelta
from typing import Optional

from analysis.candles import CandleSeries, CandleSeriesError
from analysis.errors import FetchError
from ingestion.providers.yfinance_adapter import fetch_prices_window
from ingestion.transforms.normalizers import normalize_candles
from ingestion.transforms.validators import validate_candle_row, check_timestamp_monotonicity, ValidationError
from storage.loaders import get_candles

logger = logging.getLogger(__name__)


class YFinanceCandleSource:
    """Fetch daily candles from Yahoo Finance for a trailing calendar window."""

    def __init__(self, lookback_days: int = 100, timeout: float = 10, end_date: Optional[date] = None):
        if lookback_days <= 0:
            raise ValueError("lookback_days must be positive")
        self.lookback_days = lookback_days
        self.timeout = timeout
        self.end_date = end_date

    def fetch_rows(self, symbol: str) -> list:
        """
        Fetch, normalize and validate candle rows for a symbol.
        Invalid rows are dropped with a warning.

        Raises:
            FetchError: If the provider fails or times out, or rows are out of order
        """
        end = self.end_date or date.today()
        start = end - timedelta(days=self.lookback_days)

        raw_rows = fetch_prices_window(ticker=symbol, start=start, end=end, timeout=self.timeout)
        rows = normalize_candles(raw_rows, symbol=symbol)

        valid_rows = []
        for row in rows:
            try:
                validate_candle_row(row)
                valid_rows.append(row)
            except ValidationError as e:
                logger.warning(f"Dropping invalid candle for {symbol} at {row.get('timestamp')}: {e}")

        try:
            check_timestamp_monotonicity(valid_rows)
        except ValidationError as e:
            raise FetchError(f"Provider returned unordered candles for {symbol}: {e}") from e

        return valid_rows

    def fetch(self, symbol: str) -> CandleSeries:
        rows = self.fetch_rows(symbol)
        try:
            return CandleSeries.from_rows(symbol, rows)
        except CandleSeriesError as e:
            raise FetchError(f"Provider returned unusable candles for {symbol}: {e}") from e


class StoredCandleSource:
    """Read candles previously saved by the pull_quotes DAG."""

    def __init__(self, conn: sqlite3.Connection, count: Optional[int] = None):
        self.conn = conn
        self.count = count

    def fetch(self, symbol: str) -> CandleSeries:
        try:
            return get_candles(self.conn, symbol, self.count)
        except sqlite3.Error as e:
            raise FetchError(f"Failed to read stored candles for {symbol}: {e}") from e
