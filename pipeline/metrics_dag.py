"""
Metrics batch DAG - runs metric engines over a symbol list.
Composes: Symbols → Fetch → Compute → Store → Track.

Per-symbol failures are recorded and the batch continues; only an
unreachable store (or an empty symbol list) stops the batch.
"""

import logging
import sqlite3
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from analysis.candles import CandleSeries
from analysis.errors import BatchError, RowValidationError, StoreUnavailableError
from analysis.metric_engines import MetricEngine, MetricOutcome
from storage.metric_store import MetricStore
from storage.run_registry import start_run, finish_run, RunStatus

logger = logging.getLogger(__name__)

CandleFetcher = Callable[[str], CandleSeries]


@dataclass
class MetricsBatchConfig:
    """Configuration for a metrics batch."""
    engines: List[MetricEngine]
    max_workers: int = 1
    dag_name: str = 'metrics'

    def __post_init__(self):
        if not self.engines:
            raise ValueError("at least one metric engine is required")
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")


@dataclass(frozen=True)
class SymbolFailure:
    """Why a symbol (or one of its metrics) produced no row."""
    symbol: str
    metric: Optional[str]
    error_kind: str
    message: str


@dataclass
class BatchSummary:
    """Outcome of a batch: counts plus the specific error per failed symbol."""
    run_id: Optional[int]
    metrics: List[str]
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    failures: List[SymbolFailure] = field(default_factory=list)
    rows_inserted: int = 0
    rows_updated: int = 0
    duration_seconds: float = 0.0

    @property
    def failed_symbols(self) -> List[str]:
        seen = []
        for failure in self.failures:
            if failure.symbol not in seen:
                seen.append(failure.symbol)
        return seen


def _error_kind(error: Exception) -> str:
    return getattr(error, 'kind', type(error).__name__)


def _process_symbol(
    symbol: str,
    fetch: CandleFetcher,
    engines: Sequence[MetricEngine]
) -> Tuple[List[MetricOutcome], Optional[SymbolFailure]]:
    """
    Fetch candles and compute every engine for one symbol.
    Runs on a worker thread when the batch is concurrent; never writes.
    """
    try:
        series = fetch(symbol)
    except Exception as e:
        # Collaborator boundary: any fetch problem (timeout included) is per-symbol
        logger.warning(f"Fetch failed for {symbol}: {e}")
        return [], SymbolFailure(symbol, None, 'fetch_error', str(e))

    logger.debug(f"Fetched {len(series)} candles for {symbol}")
    return [engine.compute(series) for engine in engines], None


def _store_outcomes(
    symbol: str,
    outcomes: Sequence[MetricOutcome],
    store: MetricStore,
    summary: BatchSummary
) -> List[SymbolFailure]:
    """
    Persist successful outcomes; failed calculations write nothing.

    Raises:
        StoreUnavailableError: If the store cannot be written
    """
    failures = []

    for outcome in outcomes:
        if not outcome.ok:
            logger.warning(f"{outcome.metric} failed for {symbol}: {outcome.error}")
            failures.append(SymbolFailure(
                symbol, outcome.metric, _error_kind(outcome.error), str(outcome.error)
            ))
            continue

        try:
            inserted = store.upsert(outcome.result)
        except RowValidationError as e:
            logger.warning(f"Rejected {outcome.metric} row for {symbol}: {e}")
            failures.append(SymbolFailure(symbol, outcome.metric, e.kind, str(e)))
            continue

        if inserted:
            summary.rows_inserted += 1
        else:
            summary.rows_updated += 1

    return failures


def run_metrics_batch(
    config: MetricsBatchConfig,
    symbols: Sequence[str],
    fetch: CandleFetcher,
    store: MetricStore,
    conn: Optional[sqlite3.Connection] = None
) -> BatchSummary:
    """
    Run every configured metric engine for each symbol.

    Pipeline stages per symbol (strictly sequential):
    1. Fetch candles
    2. Compute each metric
    3. Upsert successful results

    Symbols are independent; with max_workers > 1 stages 1-2 run in a thread
    pool and stage 3 runs on the calling thread as symbols complete.

    Args:
        config: Engines and concurrency settings
        symbols: Symbols to process
        fetch: Callable returning a CandleSeries for a symbol
        store: Metric store for results
        conn: Connection with the runs table, to track the batch (optional)

    Returns:
        BatchSummary with success/failure counts and per-symbol errors

    Raises:
        BatchError: If the symbol list is empty
        StoreUnavailableError: If the store cannot be written
        Exception: Unexpected errors propagate after the run is marked failed
    """
    if not symbols:
        raise BatchError("Symbol list is empty")

    start_time = datetime.now()
    metrics = [engine.metric for engine in config.engines]
    run_id = None
    if conn is not None:
        try:
            run_id = start_run(conn, config.dag_name)
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Could not start run tracking: {e}") from e

    summary = BatchSummary(run_id=run_id, metrics=metrics, total=len(symbols))
    failures_by_symbol: Dict[str, List[SymbolFailure]] = {}

    logger.info(f"Starting {config.dag_name} batch for {len(symbols)} symbols: {', '.join(metrics)}")

    try:
        store.create_schema(metrics)

        def handle(symbol, outcomes, fetch_failure):
            failures = [fetch_failure] if fetch_failure else []
            failures.extend(_store_outcomes(symbol, outcomes, store, summary))
            failures_by_symbol[symbol] = failures
            if not failures:
                logger.info(f"Stored {len(outcomes)} metrics for {symbol}")

        if config.max_workers == 1:
            for symbol in symbols:
                handle(symbol, *_process_symbol(symbol, fetch, config.engines))
        else:
            with ThreadPoolExecutor(max_workers=config.max_workers) as executor:
                futures = {
                    executor.submit(_process_symbol, symbol, fetch, config.engines): symbol
                    for symbol in symbols
                }
                try:
                    for future in as_completed(futures):
                        handle(futures[future], *future.result())
                except Exception:
                    executor.shutdown(wait=False, cancel_futures=True)
                    raise

    except Exception as e:
        # Any escaping error ends the run; the runs row must not stay running
        logger.error(f"Batch {config.dag_name} aborted: {e}")
        if run_id is not None:
            finish_tracking(conn, run_id, RunStatus.FAILED, summary, error_message=str(e))
        raise

    # Report failures in input order regardless of completion order
    for symbol in symbols:
        failures = failures_by_symbol.get(symbol, [])
        if failures:
            summary.failed += 1
            summary.failures.extend(failures)
        else:
            summary.succeeded += 1

    summary.duration_seconds = (datetime.now() - start_time).total_seconds()

    if run_id is not None:
        finish_tracking(conn, run_id, RunStatus.COMPLETED, summary)

    logger.info(
        f"Batch {config.dag_name} finished: {summary.succeeded} succeeded, "
        f"{summary.failed} failed in {summary.duration_seconds:.1f}s"
    )
    return summary


def finish_tracking(
    conn: sqlite3.Connection,
    run_id: int,
    status: RunStatus,
    summary: BatchSummary,
    error_message: Optional[str] = None
) -> None:
    try:
        finish_run(
            conn=conn,
            run_id=run_id,
            status=status,
            symbols_total=summary.total,
            symbols_succeeded=summary.succeeded,
            symbols_failed=summary.failed,
            error_message=error_message
        )
    except sqlite3.Error as e:
        logger.error(f"Could not record run {run_id} as {status.value}: {e}")
