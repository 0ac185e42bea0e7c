"""
Migration 003: Recurring planned expenses

Adds is_recurring and recurrence_end_date to planned_expenses so items
like rent carry into future months.
"""

from clarity_finance.migrations.versions import add_column, drop_column


COLUMNS = [
    ("is_recurring", "INTEGER DEFAULT 0"),
    ("recurrence_end_date", "TEXT"),
]


def up(conn):
    for column, definition in COLUMNS:
        add_column(conn, "planned_expenses", column, definition)

    conn.execute(
        "UPDATE planned_expenses SET is_recurring = 0 WHERE is_recurring IS NULL"
    )


def down(conn):
    for column, _ in reversed(COLUMNS):
        drop_column(conn, "planned_expenses", column)
