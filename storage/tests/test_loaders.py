"""
Tests for database loaders - candle upserts and schema setup.
Uses in-memory SQLite for fast, isolated tests.
"""

import pytest
import sqlite3

from storage.loaders import init_database, get_connection, upsert_candles, get_candles

DAY = 86400
START = 1_754_265_600  # 2025-08-04 UTC


@pytest.fixture
def in_memory_db():
    """Create in-memory SQLite database for testing."""
    conn = sqlite3.connect(':memory:')
    init_database(conn)
    return conn


def candle_row(day, close, symbol='AAPL'):
    return {
        'symbol': symbol,
        'timestamp': START + day * DAY,
        'open': close - 1.0,
        'high': close + 2.0,
        'low': close - 2.0,
        'close': close,
        'volume': 1_000_000,
    }


class TestCandleLoader:
    """Tests for candle upserts."""

    def test_upsert_candles_insert_new(self, in_memory_db):
        rows = [candle_row(0, 100.0), candle_row(1, 101.0)]

        inserted, updated = upsert_candles(in_memory_db, rows)

        assert (inserted, updated) == (2, 0)
        count = in_memory_db.execute("SELECT COUNT(*) FROM candles").fetchone()[0]
        assert count == 2

    def test_upsert_candles_update_existing(self, in_memory_db):
        upsert_candles(in_memory_db, [candle_row(0, 100.0)])

        inserted, updated = upsert_candles(in_memory_db, [candle_row(0, 99.5)])

        assert (inserted, updated) == (0, 1)
        close = in_memory_db.execute("SELECT close FROM candles").fetchone()[0]
        assert close == 99.5

    def test_upsert_candles_idempotent(self, in_memory_db):
        rows = [candle_row(i, 100.0 + i) for i in range(5)]

        upsert_candles(in_memory_db, rows)
        upsert_candles(in_memory_db, rows)

        count = in_memory_db.execute("SELECT COUNT(*) FROM candles").fetchone()[0]
        assert count == 5

    def test_upsert_candles_empty_list(self, in_memory_db):
        assert upsert_candles(in_memory_db, []) == (0, 0)

    def test_upsert_candles_same_day_different_symbols(self, in_memory_db):
        inserted, _ = upsert_candles(in_memory_db, [
            candle_row(0, 100.0, symbol='AAPL'),
            candle_row(0, 300.0, symbol='MSFT'),
        ])

        assert inserted == 2


class TestGetCandles:
    """Tests for loading stored candles."""

    def test_get_candles_chronological(self, in_memory_db):
        upsert_candles(in_memory_db, [candle_row(i, 100.0 + i) for i in (2, 0, 1)])

        series = get_candles(in_memory_db, 'AAPL')

        assert series.symbol == 'AAPL'
        assert list(series.closes) == [100.0, 101.0, 102.0]

    def test_get_candles_most_recent_count(self, in_memory_db):
        upsert_candles(in_memory_db, [candle_row(i, 100.0 + i) for i in range(10)])

        series = get_candles(in_memory_db, 'AAPL', count=3)

        assert list(series.closes) == [107.0, 108.0, 109.0]
        assert series.latest_timestamp == START + 9 * DAY

    def test_get_candles_unknown_symbol(self, in_memory_db):
        assert len(get_candles(in_memory_db, 'NOPE')) == 0


class TestDatabaseInit:
    """Tests for database initialization."""

    def test_init_database_creates_tables(self):
        conn = sqlite3.connect(':memory:')
        init_database(conn)

        tables = [
            row[0] for row in conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
            ).fetchall()
        ]

        assert 'candles' in tables
        assert 'runs' in tables

    def test_init_database_idempotent(self, in_memory_db):
        upsert_candles(in_memory_db, [candle_row(0, 100.0)])

        init_database(in_memory_db)

        count = in_memory_db.execute("SELECT COUNT(*) FROM candles").fetchone()[0]
        assert count == 1

    def test_get_connection_creates_parent_dir(self, tmp_path):
        db_path = tmp_path / 'nested' / 'metrics.db'

        conn = get_connection(str(db_path))
        init_database(conn)
        conn.close()

        assert db_path.exists()
