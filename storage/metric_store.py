"""
Metric store - one SQLite table per metric kind, keyed by (symbol, timestamp).
Upserts are idempotent: rerunning a symbol/day replaces the row.
"""

import logging
import math
import re
import sqlite3
import threading
from typing import Iterable, List, Optional, Sequence, Tuple

from analysis.candles import MetricResult
from analysis.errors import RowValidationError, StoreUnavailableError

logger = logging.getLogger(__name__)

_TABLE_NAME = re.compile(r'^[a-z][a-z0-9_]{0,62}$')


def validate_metric_name(metric: str) -> str:
    """
    Metric names become table names, so only simple identifiers are allowed.

    Raises:
        RowValidationError: If the name is not a lowercase identifier
    """
    if not isinstance(metric, str) or not _TABLE_NAME.match(metric):
        raise RowValidationError(f"Invalid metric name: {metric!r}")
    return metric


def validate_result(result: MetricResult) -> None:
    """
    Validate a result before it is written.

    Raises:
        RowValidationError: If any field is unusable
    """
    validate_metric_name(result.metric)

    if not result.symbol or not isinstance(result.symbol, str):
        raise RowValidationError("symbol must be non-empty string")

    if isinstance(result.timestamp, bool) or not isinstance(result.timestamp, int):
        raise RowValidationError(f"timestamp must be integer, got {type(result.timestamp)}")

    if not isinstance(result.value, (int, float)) or not math.isfinite(result.value):
        raise RowValidationError(
            f"value must be finite for {result.symbol} {result.metric}, got {result.value}"
        )


class MetricStore:
    """
    SQLite-backed store of metric time series.

    Writes are serialized with a lock so worker threads sharing the
    connection never interleave transactions.
    """

    def __init__(self, conn: sqlite3.Connection, metrics: Sequence[str] = ()):
        self.conn = conn
        self.metrics = [validate_metric_name(m) for m in metrics]
        self._lock = threading.Lock()
        self._known_tables = set()

    def create_schema(self, metrics: Optional[Sequence[str]] = None) -> None:
        """
        Create one table per metric kind. Idempotent.

        Args:
            metrics: Metric names (defaults to those given at construction)

        Raises:
            StoreUnavailableError: If the database cannot be written
        """
        for metric in (metrics if metrics is not None else self.metrics):
            self._ensure_table(validate_metric_name(metric))

    def _ensure_table(self, metric: str) -> None:
        if metric in self._known_tables:
            return

        with self._lock:
            try:
                with self.conn:
                    self.conn.execute(f"""
                        CREATE TABLE IF NOT EXISTS {metric} (
                            symbol TEXT NOT NULL,
                            value REAL NOT NULL,
                            timestamp INTEGER NOT NULL,
                            PRIMARY KEY (symbol, timestamp)
                        )
                    """)
                    self.conn.execute(
                        f"CREATE INDEX IF NOT EXISTS idx_{metric}_symbol ON {metric}(symbol)"
                    )
            except sqlite3.Error as e:
                raise StoreUnavailableError(f"Failed to create table {metric}: {e}") from e

        self._known_tables.add(metric)
        logger.debug(f"Metric table ready: {metric}")

    def upsert(self, result: MetricResult) -> bool:
        """
        Insert or replace a result by (symbol, timestamp).

        Args:
            result: Metric result to persist

        Returns:
            True if a new row was inserted, False if an existing row was replaced

        Raises:
            RowValidationError: If the result is invalid (nothing is written)
            StoreUnavailableError: If the database cannot be written
        """
        validate_result(result)
        self._ensure_table(result.metric)

        with self._lock:
            try:
                with self.conn:
                    cursor = self.conn.execute(
                        f"SELECT COUNT(*) FROM {result.metric} WHERE symbol = ? AND timestamp = ?",
                        (result.symbol, result.timestamp)
                    )
                    exists = cursor.fetchone()[0] > 0

                    self.conn.execute(f"""
                        INSERT INTO {result.metric} (symbol, value, timestamp)
                        VALUES (?, ?, ?)
                        ON CONFLICT(symbol, timestamp) DO UPDATE SET value = excluded.value
                    """, (result.symbol, float(result.value), result.timestamp))
            except sqlite3.Error as e:
                raise StoreUnavailableError(
                    f"Failed to upsert {result.metric} for {result.symbol}: {e}"
                ) from e

        return not exists

    def upsert_many(self, results: Iterable[MetricResult]) -> Tuple[int, int]:
        """
        Upsert several results.

        Returns:
            Tuple of (inserted_count, updated_count)
        """
        inserted = 0
        updated = 0
        for result in results:
            if self.upsert(result):
                inserted += 1
            else:
                updated += 1
        return (inserted, updated)

    def query(
        self,
        metric: str,
        symbol: str,
        start: Optional[int] = None,
        end: Optional[int] = None
    ) -> List[MetricResult]:
        """
        Stored results for a symbol, ascending by timestamp.

        Args:
            metric: Metric name
            symbol: Ticker symbol
            start: Inclusive lower timestamp bound (optional)
            end: Inclusive upper timestamp bound (optional)

        Returns:
            List of MetricResult (empty if the metric table does not exist)
        """
        validate_metric_name(metric)

        query = f"SELECT symbol, value, timestamp FROM {metric} WHERE symbol = ?"
        params: list = [symbol]

        if start is not None:
            query += " AND timestamp >= ?"
            params.append(start)

        if end is not None:
            query += " AND timestamp <= ?"
            params.append(end)

        query += " ORDER BY timestamp ASC"

        try:
            rows = self.conn.execute(query, params).fetchall()
        except sqlite3.OperationalError as e:
            if 'no such table' in str(e):
                return []
            raise StoreUnavailableError(f"Failed to query {metric}: {e}") from e

        return [
            MetricResult(metric=metric, symbol=row[0], timestamp=row[2], value=row[1])
            for row in rows
        ]

    def latest(self, metric: str, symbol: str) -> Optional[MetricResult]:
        """Most recent stored result for a symbol, or None."""
        results = self.query(metric, symbol)
        return results[-1] if results else None
