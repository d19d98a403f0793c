"""
FinanceFlow - Source Package

A personal finance tracker: income/expense transactions across several
accounts, inter-account transfers, category breakdowns and balances.

DESIGN PRINCIPLES:
1. Balances are computed, never stored
2. Fail early, fail visibly
3. A transfer is two legs or nothing
4. The core is pure; storage is swappable
5. Demo mode works without any backend
"""

__version__ = "1.0.0"
__author__ = "FinanceFlow Team"
