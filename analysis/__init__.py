"""
Analysis Engine Module

Calculates risk metrics from daily candle series:
- Simple and log returns
- Average True Range (ATR)
- Maximum drawdown over trailing windows
- Sharpe ratio
"""

__version__ = "0.1.0"
