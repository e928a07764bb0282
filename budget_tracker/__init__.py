"""
Budget Tracker - Core Package

The persistence and derived-aggregation layer of a personal finance
tracker: transactions, categories, budgets, debts and repayments.

DESIGN PRINCIPLES:
1. Whole collections are read and written as one unit
2. Deleting a parent never corrupts its children
3. Aggregations are pure functions of their inputs
4. The local store is authoritative; the remote store is a mirror
5. Storage backend is swappable
"""

__version__ = "1.0.0"
