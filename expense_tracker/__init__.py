"""
Expense Tracker - Source Package

A personal income and expense tracker that records transactions in
any currency, normalizes them to USD, and reports over date ranges.

DESIGN PRINCIPLES:
1. Validate input → Convert to USD → Store → Reload the dashboard
2. Fail early, fail visibly
3. No silent corrections
4. Every step must be auditable
5. Storage and rate sources are swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
