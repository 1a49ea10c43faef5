"""
Ledgerboard - Source Package

A bookkeeping dashboard for small businesses: record sales and expenses,
see weekly revenue, expense breakdowns and month-over-month comparisons.

DESIGN PRINCIPLES:
1. Analytics are a pure function of the current data
2. Corrupt or legacy records never crash the dashboard
3. Every coercion and every write is auditable
4. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Ledgerboard Team"
