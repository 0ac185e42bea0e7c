"""
Migration 005: effective_from on categories

Lets categories be scoped to a month. Existing rows default to their
created_at.
"""

from clarity_finance.migrations.versions import add_column, drop_column


def up(conn):
    add_column(conn, "categories", "effective_from", "TEXT")
    conn.execute(
        "UPDATE categories SET effective_from = created_at WHERE effective_from IS NULL"
    )


def down(conn):
    drop_column(conn, "categories", "effective_from")
