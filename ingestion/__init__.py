"""
Data Ingestion Module

Handles fetching and validating candle data:
- yfinance for daily OHLCV bars
- locally stored candles from previous pulls
"""

__version__ = "0.1.0"
