"""
Run registry - track batch execution with status, symbol counts and timing.
Thin IO layer for run lifecycle management.
"""

import sqlite3
from datetime import datetime
from typing import Dict, Any, List, Optional
from enum import Enum


class RunStatus(str, Enum):
    """Enumeration of run statuses."""
    RUNNING = 'running'
    COMPLETED = 'completed'
    FAILED = 'failed'


class RunNotFoundError(Exception):
    """Raised when run ID is not found."""
    pass


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def start_run(
    conn: sqlite3.Connection,
    dag_name: str,
    started_at: Optional[datetime] = None
) -> int:
    """
    Start a new batch run and return run ID.

    Args:
        conn: SQLite connection
        dag_name: Name of the batch being run (e.g. 'metrics_sharpe')
        started_at: Start timestamp (defaults to now)

    Returns:
        Run ID for tracking this execution
    """
    if started_at is None:
        started_at = datetime.now()

    cursor = conn.execute("""
        INSERT INTO runs (dag_name, started_at, status)
        VALUES (?, ?, ?)
    """, (dag_name, started_at.isoformat(sep=' '), RunStatus.RUNNING.value))

    conn.commit()
    return cursor.lastrowid


def finish_run(
    conn: sqlite3.Connection,
    run_id: int,
    status: RunStatus,
    finished_at: Optional[datetime] = None,
    symbols_total: Optional[int] = None,
    symbols_succeeded: Optional[int] = None,
    symbols_failed: Optional[int] = None,
    error_message: Optional[str] = None
) -> None:
    """
    Mark a run as finished with final status and symbol counts.

    Args:
        conn: SQLite connection
        run_id: Run ID from start_run()
        status: Final status (COMPLETED or FAILED)
        finished_at: End timestamp (defaults to now)
        symbols_total: Symbols attempted
        symbols_succeeded: Symbols with every metric stored
        symbols_failed: Symbols with at least one failure
        error_message: Batch-level error if failed

    Raises:
        RunNotFoundError: If run_id doesn't exist
    """
    if finished_at is None:
        finished_at = datetime.now()

    cursor = conn.execute("SELECT run_id FROM runs WHERE run_id = ?", (run_id,))
    if cursor.fetchone() is None:
        raise RunNotFoundError(f"Run ID {run_id} not found")

    conn.execute("""
        UPDATE runs SET
            status = ?,
            finished_at = ?,
            symbols_total = ?,
            symbols_succeeded = ?,
            symbols_failed = ?,
            error_message = ?
        WHERE run_id = ?
    """, (
        RunStatus(status).value, finished_at.isoformat(sep=' '),
        symbols_total, symbols_succeeded, symbols_failed, error_message, run_id
    ))

    conn.commit()


def get_run_status(conn: sqlite3.Connection, run_id: int) -> Dict[str, Any]:
    """
    Get detailed status for a run.

    Raises:
        RunNotFoundError: If run_id doesn't exist
    """
    cursor = conn.execute("""
        SELECT run_id, dag_name, started_at, finished_at, status,
               symbols_total, symbols_succeeded, symbols_failed, error_message
        FROM runs
        WHERE run_id = ?
    """, (run_id,))

    row = cursor.fetchone()
    if row is None:
        raise RunNotFoundError(f"Run ID {run_id} not found")

    run_info = _row_to_run(row)
    run_info['error_message'] = row[8]

    if run_info['symbols_total']:
        run_info['success_rate'] = (run_info['symbols_succeeded'] or 0) / run_info['symbols_total']
    else:
        run_info['success_rate'] = None

    return run_info


def list_recent_runs(
    conn: sqlite3.Connection,
    limit: int = 20,
    dag_name: Optional[str] = None
) -> List[Dict[str, Any]]:
    """
    List recent runs, most recent first.

    Args:
        conn: SQLite connection
        limit: Maximum number of runs to return
        dag_name: Filter by batch name (optional)
    """
    query = """
        SELECT run_id, dag_name, started_at, finished_at, status,
               symbols_total, symbols_succeeded, symbols_failed
        FROM runs
    """
    params: list = []
    if dag_name:
        query += " WHERE dag_name = ?"
        params.append(dag_name)
    query += " ORDER BY run_id DESC LIMIT ?"
    params.append(limit)

    return [_row_to_run(row) for row in conn.execute(query, params).fetchall()]


def _row_to_run(row: tuple) -> Dict[str, Any]:
    run_info = {
        'run_id': row[0],
        'dag_name': row[1],
        'started_at': _parse_time(row[2]),
        'finished_at': _parse_time(row[3]),
        'status': RunStatus(row[4]),
        'symbols_total': row[5],
        'symbols_succeeded': row[6],
        'symbols_failed': row[7],
    }

    if run_info['started_at'] and run_info['finished_at']:
        duration = run_info['finished_at'] - run_info['started_at']
        run_info['duration_seconds'] = int(duration.total_seconds())
    else:
        run_info['duration_seconds'] = None

    return run_info
