"""
Run settings loaded from the environment (and .env).
Only the CLI reads these; engines receive explicit config objects.
"""

import os
from dataclasses import dataclass, field
from typing import Tuple

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _parse_windows(raw: str) -> Tuple[int, ...]:
    windows = tuple(int(part) for part in raw.split(',') if part.strip())
    if not windows or any(w <= 0 for w in windows):
        raise ValueError(f"DRAWDOWN_WINDOWS must be positive integers, got {raw!r}")
    return windows


@dataclass(frozen=True)
class Settings:
    """Process-wide defaults for a metrics run."""
    db_path: str = './data/metrics.db'
    risk_free_rate: float = 0.02
    sharpe_min_candles: int = 14
    atr_window: int = 14
    drawdown_windows: Tuple[int, ...] = field(default=(5, 20))
    lookback_days: int = 100
    fetch_timeout_s: float = 10.0
    max_workers: int = 1
    log_level: str = 'INFO'


def load_settings() -> Settings:
    """
    Read settings from environment variables, falling back to defaults.

    Raises:
        ValueError: If a variable cannot be parsed
    """
    return Settings(
        db_path=os.getenv('METRICS_DB_PATH', './data/metrics.db'),
        risk_free_rate=float(os.getenv('RISK_FREE_RATE', '0.02')),
        sharpe_min_candles=int(os.getenv('SHARPE_MIN_CANDLES', '14')),
        atr_window=int(os.getenv('ATR_WINDOW', '14')),
        drawdown_windows=_parse_windows(os.getenv('DRAWDOWN_WINDOWS', '5,20')),
        lookback_days=int(os.getenv('LOOKBACK_DAYS', '100')),
        fetch_timeout_s=float(os.getenv('FETCH_TIMEOUT_S', '10')),
        max_workers=int(os.getenv('MAX_WORKERS', '1')),
        log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    )
