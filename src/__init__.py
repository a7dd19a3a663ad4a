"""
Household Expenses - Source Package

A shared-expense tracker for a small household or flat-share: expenses,
dated calendar notes, time-boxed comment threads and a monthly summary.

DESIGN PRINCIPLES:
1. Permissions are derived from the clock, never stored
2. Fail early, fail visibly
3. No silent corrections
4. Every change (and every refused change) is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Household Expenses Team"
