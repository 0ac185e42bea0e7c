"""
Migration 001: Initial Schema

Creates every entity table, the transaction indexes, the pre-seeded
budget buckets and the default config values.

Every entity table carries id, created_at, updated_at and is_deleted.
Foreign keys are declared here and enforced by SQLite, not by the
data store.
"""

import json
from datetime import datetime, timezone

from clarity_finance.services.storage.connection import format_timestamp


TABLES = [
    """
    CREATE TABLE config (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        key TEXT NOT NULL UNIQUE,
        value TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        is_deleted INTEGER DEFAULT 0
    )
    """,
    """
    CREATE TABLE accounts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        bank_name TEXT NOT NULL,
        account_type TEXT NOT NULL,
        starting_balance REAL NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        is_deleted INTEGER DEFAULT 0
    )
    """,
    """
    CREATE TABLE income_sources (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        source_name TEXT NOT NULL,
        income_type TEXT NOT NULL,
        amount REAL NOT NULL,
        account_id INTEGER NOT NULL,
        pay_dates TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        is_deleted INTEGER DEFAULT 0,
        FOREIGN KEY (account_id) REFERENCES accounts(id)
    )
    """,
    """
    CREATE TABLE buckets (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        bucket_key TEXT NOT NULL UNIQUE,
        color TEXT NOT NULL,
        sort_order INTEGER NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        is_deleted INTEGER DEFAULT 0
    )
    """,
    """
    CREATE TABLE categories (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        bucket_id INTEGER NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        is_deleted INTEGER DEFAULT 0,
        FOREIGN KEY (bucket_id) REFERENCES buckets(id)
    )
    """,
    """
    CREATE TABLE planned_expenses (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        description TEXT NOT NULL,
        amount REAL NOT NULL,
        bucket_id INTEGER NOT NULL,
        category_id INTEGER NOT NULL,
        account_id INTEGER NOT NULL,
        due_dates TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        is_deleted INTEGER DEFAULT 0,
        FOREIGN KEY (bucket_id) REFERENCES buckets(id),
        FOREIGN KEY (category_id) REFERENCES categories(id),
        FOREIGN KEY (account_id) REFERENCES accounts(id)
    )
    """,
    """
    CREATE TABLE goals (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        target_amount REAL NOT NULL,
        target_date TEXT NOT NULL,
        funded_amount REAL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        is_deleted INTEGER DEFAULT 0
    )
    """,
    """
    CREATE TABLE transactions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        date TEXT NOT NULL,
        type TEXT NOT NULL,
        amount REAL NOT NULL,
        description TEXT,
        account_id INTEGER NOT NULL,
        bucket_id INTEGER,
        category_id INTEGER,
        income_source_id INTEGER,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        is_deleted INTEGER DEFAULT 0,
        FOREIGN KEY (account_id) REFERENCES accounts(id),
        FOREIGN KEY (bucket_id) REFERENCES buckets(id),
        FOREIGN KEY (category_id) REFERENCES categories(id),
        FOREIGN KEY (income_source_id) REFERENCES income_sources(id)
    )
    """,
    "CREATE INDEX idx_transactions_date ON transactions(date)",
    "CREATE INDEX idx_transactions_account ON transactions(account_id)",
    "CREATE INDEX idx_transactions_type ON transactions(type)",
    """
    CREATE TABLE planning_scenarios (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        data TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        is_deleted INTEGER DEFAULT 0
    )
    """,
]

# (name, bucket_key, color, sort_order). These cannot be deleted by the UI.
DEFAULT_BUCKETS = [
    ("Major Fixed Expense", "major_fixed", "#3B82F6", 1),
    ("Major Variable Expense", "major_variable", "#8B5CF6", 2),
    ("Minor Fixed Expense", "minor_fixed", "#10B981", 3),
    ("Minor Variable Expense", "minor_variable", "#F59E0B", 4),
    ("Non-Standard Expense/Goals", "goals", "#EC4899", 5),
]

DROP_ORDER = [
    "planning_scenarios",
    "transactions",
    "goals",
    "planned_expenses",
    "categories",
    "buckets",
    "income_sources",
    "accounts",
    "config",
]


def up(conn):
    for statement in TABLES:
        conn.execute(statement)

    current = datetime.now(timezone.utc)
    now = format_timestamp(current)

    defaults = {
        "userName": "User",
        "currentMonth": current.strftime("%Y-%m"),
    }
    for key, value in defaults.items():
        conn.execute(
            "INSERT INTO config (key, value, created_at, updated_at) VALUES (?, ?, ?, ?)",
            (key, json.dumps(value), now, now),
        )

    conn.executemany(
        """
        INSERT INTO buckets (name, bucket_key, color, sort_order, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        [(*bucket, now, now) for bucket in DEFAULT_BUCKETS],
    )


def down(conn):
    for table in DROP_ORDER:
        conn.execute(f"DROP TABLE IF EXISTS {table}")
