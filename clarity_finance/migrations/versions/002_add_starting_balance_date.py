"""
Migration 002: Add starting_balance_date to accounts

Tracks when an account's starting balance was set, so balances only
count transactions after that date. Existing accounts default to
their created_at.
"""

from clarity_finance.migrations.versions import add_column, drop_column


def up(conn):
    add_column(conn, "accounts", "starting_balance_date", "TEXT")
    conn.execute(
        "UPDATE accounts SET starting_balance_date = created_at "
        "WHERE starting_balance_date IS NULL"
    )


def down(conn):
    drop_column(conn, "accounts", "starting_balance_date")
