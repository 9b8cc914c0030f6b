"""
Test Suite for the Candle Risk Metrics Workbench

Includes:
- Unit tests for calculations (in each package's tests/ directory)
- End-to-end tests from symbol list to stored metric rows
"""
