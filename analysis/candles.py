"""
Candle and metric result types.
CandleSeries is the shared input of every metric calculation.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterator, List, Sequence, Union

import numpy as np


class CandleSeriesError(ValueError):
    """Raised when candles cannot form a valid series."""
    pass


@dataclass(frozen=True)
class Candle:
    """One period's OHLC summary for a symbol."""
    symbol: str
    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: int = 0


@dataclass(frozen=True)
class MetricResult:
    """A computed metric value, unique per (symbol, timestamp) within its metric table."""
    metric: str
    symbol: str
    timestamp: int
    value: float


def to_timestamp(day: Union[date, datetime]) -> int:
    """
    Convert a trading day to epoch seconds at UTC midnight.

    Args:
        day: date or datetime (pandas Timestamp included)

    Returns:
        Integer epoch seconds
    """
    if isinstance(day, datetime):
        day = day.date()
    return int(datetime(day.year, day.month, day.day, tzinfo=timezone.utc).timestamp())


def from_timestamp(timestamp: int) -> date:
    """Inverse of to_timestamp."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).date()


class CandleSeries:
    """
    Ordered candles for a single symbol.

    Timestamps must be strictly ascending, mirroring the (symbol, timestamp)
    primary key used in storage.
    """

    def __init__(self, symbol: str, candles: Sequence[Candle]):
        if not symbol or not isinstance(symbol, str):
            raise CandleSeriesError("symbol must be non-empty string")

        candles = list(candles)
        for candle in candles:
            if candle.symbol != symbol:
                raise CandleSeriesError(
                    f"Candle for {candle.symbol} cannot be added to series for {symbol}"
                )

        for i in range(1, len(candles)):
            if candles[i].timestamp <= candles[i - 1].timestamp:
                raise CandleSeriesError(
                    f"Timestamps for {symbol} not strictly ascending: "
                    f"{candles[i - 1].timestamp} >= {candles[i].timestamp}"
                )

        self.symbol = symbol
        self._candles = tuple(candles)

    def __len__(self) -> int:
        return len(self._candles)

    def __iter__(self) -> Iterator[Candle]:
        return iter(self._candles)

    def __getitem__(self, index: int) -> Candle:
        return self._candles[index]

    def __repr__(self) -> str:
        return f"CandleSeries({self.symbol!r}, {len(self)} candles)"

    @property
    def closes(self) -> np.ndarray:
        return np.array([c.close for c in self._candles], dtype=float)

    @property
    def highs(self) -> np.ndarray:
        return np.array([c.high for c in self._candles], dtype=float)

    @property
    def lows(self) -> np.ndarray:
        return np.array([c.low for c in self._candles], dtype=float)

    @property
    def timestamps(self) -> List[int]:
        return [c.timestamp for c in self._candles]

    @property
    def latest_timestamp(self) -> int:
        if not self._candles:
            raise CandleSeriesError(f"Series for {self.symbol} is empty")
        return self._candles[-1].timestamp

    def tail(self, n: int) -> 'CandleSeries':
        """Return the most recent n candles as a new series."""
        if n <= 0:
            raise CandleSeriesError("tail size must be positive")
        return CandleSeries(self.symbol, self._candles[-n:])

    def resample(self, group_size: int) -> 'CandleSeries':
        """
        Aggregate consecutive groups of candles into one candle each.

        With group_size=5 daily candles become weekly candles: open of the
        first, close of the last, highest high, lowest low, summed volume,
        stamped with the first candle's timestamp. A trailing partial group
        is kept.

        Args:
            group_size: Number of candles per aggregated candle

        Returns:
            New CandleSeries of aggregated candles
        """
        if group_size <= 0:
            raise CandleSeriesError("group_size must be positive")
        if group_size == 1:
            return self

        grouped = []
        for start in range(0, len(self._candles), group_size):
            group = self._candles[start:start + group_size]
            grouped.append(Candle(
                symbol=self.symbol,
                timestamp=group[0].timestamp,
                open=group[0].open,
                high=max(c.high for c in group),
                low=min(c.low for c in group),
                close=group[-1].close,
                volume=sum(c.volume for c in group),
            ))
        return CandleSeries(self.symbol, grouped)

    @classmethod
    def from_rows(cls, symbol: str, rows: Sequence[dict]) -> 'CandleSeries':
        """
        Build a series from canonical candle rows, sorting by timestamp.

        Args:
            symbol: Ticker symbol
            rows: Dicts with timestamp/open/high/low/close and optional volume

        Returns:
            CandleSeries for symbol
        """
        candles = [
            Candle(
                symbol=symbol,
                timestamp=int(row['timestamp']),
                open=float(row['open']),
                high=float(row['high']),
                low=float(row['low']),
                close=float(row['close']),
                volume=int(row.get('volume') or 0),
            )
            for row in sorted(rows, key=lambda r: r['timestamp'])
        ]
        return cls(symbol, candles)

