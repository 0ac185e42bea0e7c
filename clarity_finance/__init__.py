"""
Clarity Finance - Core Data Layer

The validated data-access layer behind the Clarity Finance desktop app
(accounts, budgets, transactions, goals) on a local SQLite file.

DESIGN PRINCIPLES:
1. Nothing reaches storage without passing schema validation
2. Every public operation returns a Result, nothing is thrown at callers
3. Records are never physically deleted, only flagged
4. The schema only moves forward through ordered, recorded migrations
5. One process, one connection, explicit lifecycle
"""

__version__ = "1.0.0"
__author__ = "Clarity Finance Team"
