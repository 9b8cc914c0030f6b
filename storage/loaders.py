"""
Database loaders - connection setup, schema and idempotent candle upserts.
Thin IO layer with focus on data integrity and idempotence.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple

from analysis.candles import CandleSeries

logger = logging.getLogger(__name__)


def init_database(conn: sqlite3.Connection) -> None:
    """
    Initialize database with candle and run tables.
    Idempotent - safe to call multiple times. Metric tables are created by
    MetricStore.create_schema().

    Args:
        conn: SQLite connection
    """
    conn.execute("""
        CREATE TABLE IF NOT EXISTS candles (
            symbol TEXT NOT NULL,
            timestamp INTEGER NOT NULL,
            open REAL NOT NULL,
            high REAL NOT NULL,
            low REAL NOT NULL,
            close REAL NOT NULL,
            volume INTEGER NOT NULL,
            PRIMARY KEY (symbol, timestamp)
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS runs (
            run_id INTEGER PRIMARY KEY AUTOINCREMENT,
            dag_name TEXT NOT NULL,
            started_at TEXT NOT NULL,
            finished_at TEXT,
            status TEXT NOT NULL CHECK(status IN ('running', 'completed', 'failed')),
            symbols_total INTEGER,
            symbols_succeeded INTEGER,
            symbols_failed INTEGER,
            error_message TEXT
        )
    """)

    conn.execute("CREATE INDEX IF NOT EXISTS idx_candles_symbol ON candles(symbol)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_runs_status ON runs(status)")

    conn.commit()


def get_connection(db_path: str = './data/metrics.db') -> sqlite3.Connection:
    """
    Get SQLite connection with proper configuration.

    The connection may be shared with worker threads; MetricStore serializes
    writes on it.

    Args:
        db_path: Path to SQLite database file (':memory:' allowed)

    Returns:
        Configured SQLite connection
    """
    if db_path != ':memory:':
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.execute("PRAGMA journal_mode = WAL")  # Better concurrency
    return conn


def upsert_candles(conn: sqlite3.Connection, rows: List[Dict[str, Any]]) -> Tuple[int, int]:
    """
    Upsert canonical candle rows into the candles table.
    Idempotent - can be called multiple times with same data.

    Args:
        conn: SQLite connection
        rows: List of canonical candle dictionaries

    Returns:
        Tuple of (inserted_count, updated_count)
    """
    if not rows:
        return (0, 0)

    inserted = 0
    updated = 0

    with conn:
        for row in rows:
            cursor = conn.execute(
                "SELECT COUNT(*) FROM candles WHERE symbol = ? AND timestamp = ?",
                (row['symbol'], row['timestamp'])
            )
            exists = cursor.fetchone()[0] > 0

            conn.execute("""
                INSERT INTO candles (symbol, timestamp, open, high, low, close, volume)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(symbol, timestamp) DO UPDATE SET
                    open = excluded.open, high = excluded.high, low = excluded.low,
                    close = excluded.close, volume = excluded.volume
            """, (
                row['symbol'], row['timestamp'], row['open'], row['high'],
                row['low'], row['close'], row.get('volume', 0)
            ))

            if exists:
                updated += 1
            else:
                inserted += 1

    logger.debug(f"Upserted candles: {inserted} inserted, {updated} updated")
    return (inserted, updated)


def get_candles(
    conn: sqlite3.Connection,
    symbol: str,
    count: Optional[int] = None
) -> CandleSeries:
    """
    Load the most recent candles for a symbol in chronological order.

    Args:
        conn: SQLite connection
        symbol: Ticker symbol
        count: Maximum number of most recent candles (None for all)

    Returns:
        CandleSeries, possibly empty
    """
    query = """
        SELECT timestamp, open, high, low, close, volume
        FROM candles
        WHERE symbol = ?
        ORDER BY timestamp DESC
    """
    params: list = [symbol]
    if count is not None:
        query += " LIMIT ?"
        params.append(count)

    rows = conn.execute(query, params).fetchall()
    return CandleSeries.from_rows(symbol, [
        {
            'timestamp': row[0],
            'open': row[1],
            'high': row[2],
            'low': row[3],
            'close': row[4],
            'volume': row[5],
        }
        for row in rows
    ])
