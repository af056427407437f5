"""
Finance Sync - Source Package

Personal finance records (transactions, categories, budgets, goals)
kept in sync with a hosted database that pushes realtime changes.

DESIGN PRINCIPLES:
1. One in-memory collection per entity, owned by one sync object
2. Every public operation returns a Result, never raises
3. The store's canonical row wins over the client's candidate
4. One realtime channel per table and user, shared by all listeners
5. Derived numbers are recomputed, never stored
"""

__version__ = "1.0.0"
__author__ = "Finance Sync Team"
