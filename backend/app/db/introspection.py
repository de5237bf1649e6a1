"""Schema Introspection - catalog queries that make migrations verifiably idempotent.

Invariants:
    - Read-only: nothing here mutates the schema
    - Identifiers are quoted before interpolation into PRAGMA statements
"""

import sqlite3


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


def table_exists(conn: sqlite3.Connection, table: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
        (table,),
    ).fetchone()
    return row is not None


def column_names(conn: sqlite3.Connection, table: str) -> list[str]:
    """Column names in declaration order; empty when the table is absent."""
    rows = conn.execute(f"PRAGMA table_info({_quote(table)})").fetchall()
    return [row[1] for row in rows]


def has_column(conn: sqlite3.Connection, table: str, column: str) -> bool:
    return column in column_names(conn, table)


def index_exists(conn: sqlite3.Connection, index: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'index' AND name = ?",
        (index,),
    ).fetchone()
    return row is not None


def object_names(conn: sqlite3.Connection, kind: str) -> set[str]:
    """Names of every user object of one kind ('table', 'view', 'index', 'trigger')."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type = ? AND name NOT LIKE 'sqlite_%'",
        (kind,),
    ).fetchall()
    return {row[0] for row in rows}
