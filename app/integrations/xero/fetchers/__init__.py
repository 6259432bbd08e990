"""
Xero Data Fetchers
Individual fetchers for different Xero data types.

Data Flow:
- ProfitLossFetcher: Fetches the monthly P&L report for normalization
- PayrollFetcher: Fetches payroll employees (optional Xero product)
"""

from app.integrations.xero.fetchers.payroll import PayrollFetcher
from app.integrations.xero.fetchers.profit_loss import ProfitLossFetcher

__all__ = [
    "PayrollFetcher",
    "ProfitLossFetcher",
]
