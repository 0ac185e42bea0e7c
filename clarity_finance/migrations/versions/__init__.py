"""
Migration units.

Each module is named NNN_description and defines up(conn), optionally
down(conn). Both receive the raw sqlite3 connection and run inside the
runner's transaction, so they must use conn.execute() only.
"""


def column_names(conn, table: str) -> set[str]:
    """Columns currently present on a table."""
    return {row[1] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()}


def add_column(conn, table: str, column: str, definition: str) -> bool:
    """ALTER TABLE ADD COLUMN unless the column already exists."""
    if column in column_names(conn, table):
        return False
    conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {definition}")
    return True


def drop_column(conn, table: str, column: str) -> bool:
    """ALTER TABLE DROP COLUMN if present (needs SQLite 3.35+)."""
    if column not in column_names(conn, table):
        return False
    conn.execute(f"ALTER TABLE {table} DROP COLUMN {column}")
    return True
