"""
Expense Tracker - Source Package

A personal expense tracker: record expenses, browse and filter them,
view summaries and export them to CSV.

DESIGN PRINCIPLES:
1. One store owns the expense collection
2. The store is constructed and passed explicitly, never a hidden global
3. Every mutation rewrites the whole collection to its durable slot
4. Storage failures are visible through a typed status, not swallowed
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
