"""
Pull quotes DAG - fetches daily candles and stores them locally.
Composes: Provider → Transform → Validate → Store → Track.

Stored candles let later metric runs use --source db without refetching.
"""

import logging
import sqlite3
from datetime import datetime
from typing import Sequence

from analysis.errors import BatchError, FetchError
from ingestion.sources import YFinanceCandleSource
from pipeline.metrics_dag import BatchSummary, SymbolFailure, finish_tracking
from storage.loaders import upsert_candles
from storage.run_registry import start_run, RunStatus

logger = logging.getLogger(__name__)

CANDLES_METRIC = 'candles'


def run_pull_quotes(
    symbols: Sequence[str],
    source: YFinanceCandleSource,
    conn: sqlite3.Connection
) -> BatchSummary:
    """
    Fetch and store candles for every symbol.

    Pipeline stages per symbol:
    1. Fetch raw rows from provider
    2. Normalize and validate (invalid rows dropped)
    3. Upsert into the candles table

    A symbol fails when the provider errors or returns no valid candles;
    the remaining symbols are still processed.

    Args:
        symbols: Symbols to pull
        source: Provider-backed candle source
        conn: SQLite connection (candles and runs tables initialized)

    Returns:
        BatchSummary; rows_inserted/rows_updated count candles

    Raises:
        BatchError: If the symbol list is empty
        sqlite3.Error: If the candles table cannot be written
    """
    if not symbols:
        raise BatchError("Symbol list is empty")

    start_time = datetime.now()
    run_id = start_run(conn, 'pull_quotes')
    summary = BatchSummary(run_id=run_id, metrics=[CANDLES_METRIC], total=len(symbols))

    try:
        for symbol in symbols:
            try:
                rows = source.fetch_rows(symbol)
            except FetchError as e:
                logger.warning(f"Fetch failed for {symbol}: {e}")
                summary.failures.append(SymbolFailure(symbol, None, e.kind, str(e)))
                summary.failed += 1
                continue

            if not rows:
                message = f"No valid candles returned for {symbol}"
                logger.warning(message)
                summary.failures.append(SymbolFailure(symbol, None, 'fetch_error', message))
                summary.failed += 1
                continue

            inserted, updated = upsert_candles(conn, rows)
            summary.rows_inserted += inserted
            summary.rows_updated += updated
            summary.succeeded += 1

            logger.info(f"Successfully fetched and saved {len(rows)} candles for {symbol}")

    except sqlite3.Error as e:
        finish_tracking(conn, run_id, RunStatus.FAILED, summary, error_message=str(e))
        raise

    summary.duration_seconds = (datetime.now() - start_time).total_seconds()
    finish_tracking(conn, run_id, RunStatus.COMPLETED, summary)

    return summary
