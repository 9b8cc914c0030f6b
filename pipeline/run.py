#!/usr/bin/env python3
"""
Pipeline runner CLI - computes and stores per-symbol risk metrics.
Usage: python pipeline/run.py COMMAND SYMBOLS [options]

SYMBOLS is a symbol file (one symbol or comma-separated list per line)
or an inline comma-separated list.
"""

import sys
import argparse
import logging
from datetime import timedelta
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from analysis.candles import from_timestamp, to_timestamp
from analysis.calculations.drawdown import DrawdownConfig, drawdown_stats, parse_drawdown_metric
from analysis.calculations.sharpe import SharpeConfig
from analysis.calculations.true_range import AtrConfig, SMOOTHING_CHOICES
from analysis.errors import BatchError, StoreError
from analysis.metric_engines import build_engines
from ingestion.sources import YFinanceCandleSource, StoredCandleSource
from pipeline.metrics_dag import run_metrics_batch, MetricsBatchConfig, BatchSummary
from pipeline.pull_quotes_dag import run_pull_quotes
from pipeline.settings import load_settings, Settings
from storage.loaders import init_database, get_connection, get_candles
from storage.metric_store import MetricStore
from utils.symbols import load_symbols, SymbolListError

logger = logging.getLogger(__name__)

METRIC_COMMANDS = ('atr', 'drawdown', 'sharpe', 'all')


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    """Argument parser with defaults taken from settings."""
    parser = argparse.ArgumentParser(
        description='Compute ATR, max drawdown and Sharpe ratio from daily candles',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python pipeline/run.py pull_quotes data/symbols.csv
  python pipeline/run.py atr AAPL,MSFT --window 14
  python pipeline/run.py drawdown data/symbols.csv --window 5 --window 20
  python pipeline/run.py sharpe SPY --risk-free-rate 0.04 --source db
  python pipeline/run.py all data/symbols.csv --workers 4
  python pipeline/run.py show sharpe_ratio SPY
        """
    )
    parser.add_argument('--db-path', default=settings.db_path,
                        help=f'Path to SQLite database (default: {settings.db_path})')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')

    subparsers = parser.add_subparsers(dest='command', required=True)

    pull = subparsers.add_parser('pull_quotes', help='Fetch and store daily candles')
    pull.add_argument('symbols', help='Symbol file or comma-separated list')
    pull.add_argument('--lookback-days', type=int, default=settings.lookback_days)

    for command in METRIC_COMMANDS:
        sub = subparsers.add_parser(command, help=f'Compute {command} for symbols')
        sub.add_argument('symbols', help='Symbol file or comma-separated list')
        sub.add_argument('--source', choices=['yfinance', 'db'], default='yfinance',
                         help='Where candles come from (default: yfinance)')
        sub.add_argument('--lookback-days', type=int, default=settings.lookback_days)
        sub.add_argument('--workers', type=int, default=settings.max_workers)

        if command in ('atr', 'all'):
            sub.add_argument('--atr-window' if command == 'all' else '--window',
                             dest='atr_window', type=int, default=settings.atr_window)
            sub.add_argument('--group-size', type=int, default=1,
                             help='Aggregate N daily candles per bar (5 = weekly)')
            sub.add_argument('--smoothing', choices=list(SMOOTHING_CHOICES), default='sma',
                             help='Mean, EMA or percentile of the window true ranges')
            sub.add_argument('--percentile', type=float, default=0.5,
                             help='Percentile in [0, 1] for --smoothing percentile (default: %(default)s)')

        if command in ('drawdown', 'all'):
            sub.add_argument('--drawdown-window' if command == 'all' else '--window',
                             dest='drawdown_windows', type=int, action='append',
                             help=f'Window in trading days, repeatable (default: {settings.drawdown_windows})')

        if command in ('sharpe', 'all'):
            sub.add_argument('--risk-free-rate', type=float, default=settings.risk_free_rate,
                             help='Annualized risk-free rate (default: %(default)s)')
            sub.add_argument('--min-candles', type=int, default=settings.sharpe_min_candles)
            sub.add_argument('--sharpe-window', type=int, default=None,
                             help='Use only the trailing N candles')
            sub.add_argument('--annualize', action='store_true',
                             help='Scale the ratio by sqrt(252)')

    show = subparsers.add_parser('show', help='Print a stored metric series')
    show.add_argument('metric', help='Metric table, e.g. sharpe_ratio or max_drawdown_20d')
    show.add_argument('symbol')

    return parser


def main(argv=None) -> int:
    """Main CLI entry point. Returns the process exit status."""
    try:
        settings = load_settings()
    except ValueError as e:
        print(f"❌ Invalid configuration: {e}", file=sys.stderr)
        return 1

    args = build_parser(settings).parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, settings.log_level, logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    try:
        conn = get_connection(args.db_path)
        init_database(conn)
    except Exception as e:
        print(f"❌ Database connection failed: {e}", file=sys.stderr)
        return 1

    try:
        if args.command == 'show':
            return _show_metric(conn, args.metric, args.symbol.upper())

        symbols = load_symbols(args.symbols)

        if args.command == 'pull_quotes':
            source = YFinanceCandleSource(
                lookback_days=args.lookback_days,
                timeout=settings.fetch_timeout_s
            )
            print(f"🚀 Pulling quotes for {len(symbols)} symbols")
            summary = run_pull_quotes(symbols, source, conn)
        else:
            summary = _run_metrics(args, settings, symbols, conn)

    except SymbolListError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    except (BatchError, StoreError) as e:
        print(f"❌ Batch failed: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"❌ Invalid configuration: {e}", file=sys.stderr)
        return 1
    finally:
        conn.close()

    _display_summary(summary, args.db_path)
    return 0


def _run_metrics(args, settings: Settings, symbols, conn) -> BatchSummary:
    """Build engines and candle source from CLI arguments and run the batch."""
    atr_config = AtrConfig(
        window=getattr(args, 'atr_window', settings.atr_window),
        group_size=getattr(args, 'group_size', 1),
        smoothing=getattr(args, 'smoothing', 'sma'),
        percentile=getattr(args, 'percentile', 0.5),
    )
    sharpe_config = SharpeConfig(
        risk_free_rate=getattr(args, 'risk_free_rate', settings.risk_free_rate),
        min_candles=getattr(args, 'min_candles', settings.sharpe_min_candles),
        window=getattr(args, 'sharpe_window', None),
        annualize=getattr(args, 'annualize', False),
    )
    drawdown_windows = getattr(args, 'drawdown_windows', None) or settings.drawdown_windows

    engines = build_engines(
        args.command,
        atr_config=atr_config,
        drawdown_windows=drawdown_windows,
        sharpe_config=sharpe_config,
    )

    if args.source == 'db':
        fetch = StoredCandleSource(conn).fetch
    else:
        fetch = YFinanceCandleSource(
            lookback_days=args.lookback_days,
            timeout=settings.fetch_timeout_s
        ).fetch

    config = MetricsBatchConfig(
        engines=engines,
        max_workers=args.workers,
        dag_name=f'metrics_{args.command}',
    )

    print(f"🚀 Computing {', '.join(e.metric for e in engines)} for {len(symbols)} symbols")
    store = MetricStore(conn)
    return run_metrics_batch(config, symbols, fetch, store, conn=conn)


def _show_metric(conn, metric: str, symbol: str) -> int:
    """
    Print the last year of a stored metric series.
    Drawdown metrics also show the peak and trough of the current window.
    """
    store = MetricStore(conn)
    results = store.query(metric, symbol)
    if not results:
        print(f"No {metric} rows stored for {symbol}")
        return 0

    cutoff = to_timestamp(from_timestamp(results[-1].timestamp) - timedelta(days=365))
    print(f"📊 {metric} for {symbol}:")
    for result in store.query(metric, symbol, start=cutoff):
        print(f"   {from_timestamp(result.timestamp)}  {result.value:.6f}")

    window = parse_drawdown_metric(metric)
    if window is not None:
        candles = get_candles(conn, symbol, window)
        if len(candles) == window:
            stats = drawdown_stats(candles, DrawdownConfig(window=window))
            print(f"   Peak: {from_timestamp(stats['peak_timestamp'])}  "
                  f"Trough: {from_timestamp(stats['trough_timestamp'])}  "
                  f"({stats['max_drawdown_pct']:.2%} over {stats['drawdown_days']} candles)")
    return 0


def _display_summary(summary: BatchSummary, db_path: str) -> None:
    """Print the batch summary."""
    print()
    print("📊 Batch Results:")
    print(f"   Run ID: {summary.run_id}")
    print(f"   Symbols: {summary.total} ({summary.succeeded} succeeded, {summary.failed} failed)")
    print(f"   Rows: {summary.rows_inserted} inserted, {summary.rows_updated} updated")
    print(f"   Duration: {summary.duration_seconds:.1f}s")

    if summary.failures:
        print()
        print("❌ Failures:")
        for failure in summary.failures:
            metric = f" [{failure.metric}]" if failure.metric else ""
            print(f"   {failure.symbol}{metric} {failure.error_kind}: {failure.message}")

    print()
    print(f"💾 Data stored in: {db_path}")


if __name__ == '__main__':
    sys.exit(main())
