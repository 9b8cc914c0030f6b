"""
yfinance adapter - fetch daily candles from Yahoo Finance.
Network IO allowed here, but minimal business logic.
"""

import yfinance as yf
import pandas as pd
from datetime import date, timedelta
from typing import Dict, Any, List

from analysis.errors import FetchError


class YFinanceError(FetchError):
    """Raised when yfinance operations fail."""
    pass


def fetch_prices_window(
    ticker: str,
    start: date,
    end: date,
    timeout: float = 10
) -> List[Dict[str, Any]]:
    """
    Fetch daily price bars for a ticker within date window.
    Returns raw data in provider format - no normalization.

    Args:
        ticker: Stock ticker symbol (e.g., 'AAPL')
        start: Start date (inclusive)
        end: End date (inclusive)
        timeout: Request timeout in seconds

    Returns:
        List of raw price dictionaries in yfinance format

    Raises:
        YFinanceError: If fetch fails, times out or validation fails
    """
    _validate_date_range(start, end)
    _validate_ticker(ticker)

    try:
        # yfinance uses exclusive end dates, so add 1 day
        yf_end = end + timedelta(days=1)

        data = yf.download(
            ticker,
            start=start.isoformat(),
            end=yf_end.isoformat(),
            progress=False,
            auto_adjust=False,
            timeout=timeout
        )
    except Exception as e:
        raise YFinanceError(f"Failed to fetch prices for {ticker}: {e}") from e

    if data is None or data.empty:
        return []

    # Flatten multi-level columns (field, ticker) to field names
    if isinstance(data.columns, pd.MultiIndex):
        data.columns = data.columns.get_level_values(0)

    rows = []
    for date_idx, row in data.iterrows():
        row_dict = {'Date': date_idx.strftime('%Y-%m-%d')}

        for field in ['Open', 'High', 'Low', 'Close', 'Volume']:
            if field in data.columns and pd.notna(row[field]):
                row_dict[field] = float(row[field]) if field != 'Volume' else int(row[field])

        rows.append(row_dict)

    return rows


def _validate_date_range(start: date, end: date) -> None:
    """
    Validate date range parameters.

    Raises:
        YFinanceError: If validation fails
    """
    if start > end:
        raise YFinanceError(f"start date ({start}) must be <= end date ({end})")

    today = date.today()
    if start > today or end > today:
        raise YFinanceError("Future dates not allowed for historical data")

    max_days = 365 * 3
    if (end - start).days > max_days:
        raise YFinanceError(f"Date range too long (max {max_days} days)")


def _validate_ticker(ticker: str) -> None:
    """
    Basic ticker validation.

    Raises:
        YFinanceError: If ticker is invalid
    """
    if not ticker or not isinstance(ticker, str):
        raise YFinanceError("Ticker must be non-empty string")

    if len(ticker) > 10:
        raise YFinanceError("Ticker too long (max 10 characters)")

    allowed_chars = set('ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789.-^=')
    if not set(ticker.upper()).issubset(allowed_chars):
        raise YFinanceError(f"Ticker contains invalid characters: {ticker}")
