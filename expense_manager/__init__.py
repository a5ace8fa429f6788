"""
Expense Manager - Source Package

A personal finance tracker: users own categories, and categories classify
the expense and income transactions users record.

DESIGN PRINCIPLES:
1. Entities validate themselves → invalid data never exists
2. Fail early, fail visibly
3. No silent corrections
4. Every change must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Manager Team"
