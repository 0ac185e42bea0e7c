"""
Migration 004: effective_from on budget items

Budget items show up in every month on or after effective_from.
Existing rows default to their created_at.
"""

from clarity_finance.migrations.versions import add_column, drop_column


TABLES = ["accounts", "income_sources", "planned_expenses", "goals"]


def up(conn):
    for table in TABLES:
        add_column(conn, table, "effective_from", "TEXT")
        conn.execute(
            f"UPDATE {table} SET effective_from = created_at WHERE effective_from IS NULL"
        )


def down(conn):
    for table in TABLES:
        drop_column(conn, table, "effective_from")
