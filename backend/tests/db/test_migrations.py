"""Migration Registry - ordering, version bookkeeping and the two shipped migrations.

Invariants:
    - Registry rejects non-positive, duplicate or out-of-order versions at construction
    - current_version() creates the version table on first read
    - run() at latest version is a no-op; a failing step aborts the batch
      with earlier steps kept and the failing step rolled back

Design Decisions:
    - Plain in-memory sqlite3 connections: migrations are synchronous and need no store
"""

import re
import sqlite3

import pytest

from app.core.errors import MigrationError, MigrationRegistryError
from app.db.introspection import column_names, index_exists, table_exists
from app.db.migrations import (
    MIGRATIONS, Migration, MigrationRegistry, add_extended_features,
    default_registry, fix_budgets_table,
)
from app.db.schema import BOOTSTRAP_SCHEMA_SQL


def _noop(conn):
    pass


@pytest.fixture
def conn():
    connection = sqlite3.connect(":memory:", isolation_level=None)
    yield connection
    connection.close()


@pytest.fixture
def legacy_conn(conn):
    """Pre-migration image: old categories/transactions, budgets without period/is_active."""
    conn.executescript("""
        CREATE TABLE categories (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            type TEXT NOT NULL
        );
        CREATE TABLE transactions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            amount REAL NOT NULL,
            category_id INTEGER NOT NULL
        );
        CREATE TABLE budgets (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            category_id INTEGER NOT NULL,
            amount REAL NOT NULL,
            month INTEGER NOT NULL,
            year INTEGER NOT NULL,
            user_id INTEGER,
            created_at DATETIME DEFAULT CURRENT_TIMESTAMP
        );
        INSERT INTO categories (name, type) VALUES ('Food', 'expense');
        INSERT INTO budgets (category_id, amount, month, year, user_id)
            VALUES (1, 500.0, 3, 2024, 7);
    """)
    return conn


# ─── Registry validation ────────────────────────────────────────

def test_default_registry_is_ordered():
    registry = default_registry()
    assert [m.version for m in registry.migrations] == [1, 2]
    assert registry.latest_version == 2


def test_registry_rejects_duplicate_versions():
    with pytest.raises(MigrationRegistryError):
        MigrationRegistry([Migration(1, "a", _noop), Migration(1, "b", _noop)])


def test_registry_rejects_decreasing_versions():
    with pytest.raises(MigrationRegistryError) as exc:
        MigrationRegistry([Migration(2, "a", _noop), Migration(1, "b", _noop)])
    assert exc.value.version == 1


def test_registry_rejects_non_positive_version():
    with pytest.raises(MigrationRegistryError):
        MigrationRegistry([Migration(0, "zero", _noop)])


def test_empty_registry_latest_is_zero():
    assert MigrationRegistry([]).latest_version == 0


# ─── Version bookkeeping ────────────────────────────────────────

def test_current_version_creates_table(conn):
    registry = default_registry()
    assert not table_exists(conn, "schema_version")
    assert registry.current_version(conn) == 0
    assert table_exists(conn, "schema_version")


def test_stamp_records_every_version(conn):
    registry = default_registry()
    conn.executescript(BOOTSTRAP_SCHEMA_SQL)
    registry.stamp(conn)
    assert registry.current_version(conn) == registry.latest_version
    assert registry.pending(conn) == []


def test_run_at_latest_is_noop(conn):
    registry = default_registry()
    conn.executescript(BOOTSTRAP_SCHEMA_SQL)
    registry.stamp(conn)
    before = conn.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0]

    assert registry.run(conn) == []
    after = conn.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0]
    assert before == after


def test_run_twice_applies_once(legacy_conn):
    registry = default_registry()
    assert registry.run(legacy_conn) == [1, 2]
    assert registry.run(legacy_conn) == []
    versions = [r[0] for r in legacy_conn.execute(
        "SELECT version FROM schema_version ORDER BY version",
    )]
    assert versions == [1, 2]


# ─── Migration 1 ────────────────────────────────────────────────

def test_extended_features_adds_columns(legacy_conn):
    add_extended_features(legacy_conn)
    categories = column_names(legacy_conn, "categories")
    for column in ("icon_id", "color_id", "parent_id", "is_archived", "sort_order"):
        assert column in categories
    assert "account_id" in column_names(legacy_conn, "transactions")
    assert index_exists(legacy_conn, "idx_transactions_account")


def test_extended_features_defaults(legacy_conn):
    add_extended_features(legacy_conn)
    row = legacy_conn.execute(
        "SELECT is_archived, sort_order, parent_id FROM categories WHERE id = 1",
    ).fetchone()
    assert row == (0, 0, None)


def test_extended_features_is_idempotent(conn):
    conn.executescript(BOOTSTRAP_SCHEMA_SQL)
    before = column_names(conn, "categories")
    add_extended_features(conn)
    add_extended_features(conn)
    assert column_names(conn, "categories") == before


def test_extended_features_skips_missing_tables(conn):
    add_extended_features(conn)
    assert not table_exists(conn, "categories")


# ─── Migration 2 ────────────────────────────────────────────────

def test_fix_budgets_rebuilds_legacy_table(legacy_conn):
    default_registry().run(legacy_conn)

    columns = column_names(legacy_conn, "budgets")
    assert "is_active" in columns
    assert "period" in columns
    row = legacy_conn.execute(
        "SELECT amount, is_active, period, start_date, month, year, user_id FROM budgets",
    ).fetchone()
    assert row == (500.0, 1, "monthly", "2024-03-01", 3, 2024, 7)
    assert not table_exists(legacy_conn, "budgets_new")


def test_fix_budgets_start_date_format(legacy_conn):
    legacy_conn.execute(
        "INSERT INTO budgets (category_id, amount, month, year) VALUES (1, 10, 11, 2025)",
    )
    fix_budgets_table(legacy_conn)
    for (start_date,) in legacy_conn.execute("SELECT start_date FROM budgets"):
        assert re.fullmatch(r"\d{4}-\d{2}-01", start_date)


def test_fix_budgets_recreates_indexes(legacy_conn):
    fix_budgets_table(legacy_conn)
    for name in ("idx_budgets_category", "idx_budgets_active",
                 "idx_budgets_period", "idx_budgets_user"):
        assert index_exists(legacy_conn, name)


def test_fix_budgets_without_legacy_optional_columns(conn):
    conn.execute("""
        CREATE TABLE budgets (
            id INTEGER PRIMARY KEY, category_id INTEGER, amount REAL,
            month INTEGER, year INTEGER
        )
    """)
    conn.execute("INSERT INTO budgets VALUES (1, 1, 20.0, 12, 2023)")
    fix_budgets_table(conn)
    row = conn.execute("SELECT user_id, start_date, created_at FROM budgets").fetchone()
    assert row[0] is None
    assert row[1] == "2023-12-01"
    assert row[2] is not None


def test_fix_budgets_noop_on_current_shape(conn):
    conn.executescript(BOOTSTRAP_SCHEMA_SQL)
    conn.execute(
        "INSERT INTO budgets (category_id, amount, start_date) VALUES (1, 5, '2026-01-01')",
    )
    fix_budgets_table(conn)
    assert conn.execute("SELECT COUNT(*) FROM budgets").fetchone()[0] == 1


def test_fix_budgets_noop_without_table(conn):
    fix_budgets_table(conn)
    assert not table_exists(conn, "budgets")


# ─── Failure handling ───────────────────────────────────────────

def test_failing_migration_aborts_batch(conn):
    def create_a(c):
        c.execute("CREATE TABLE a (id INTEGER)")

    def half_then_fail(c):
        c.execute("CREATE TABLE b (id INTEGER)")
        raise RuntimeError("boom")

    def create_c(c):
        c.execute("CREATE TABLE c (id INTEGER)")

    registry = MigrationRegistry([
        Migration(1, "create_a", create_a),
        Migration(2, "half_then_fail", half_then_fail),
        Migration(3, "create_c", create_c),
    ])

    with pytest.raises(MigrationError) as exc:
        registry.run(conn)

    assert exc.value.version == 2
    assert registry.current_version(conn) == 1
    assert table_exists(conn, "a")
    assert not table_exists(conn, "b")
    assert not table_exists(conn, "c")
    assert not conn.in_transaction


def test_failed_migration_retried_next_run(conn):
    attempts = []

    def flaky(c):
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("first attempt fails")
        c.execute("CREATE TABLE flaky (id INTEGER)")

    registry = MigrationRegistry([Migration(1, "flaky", flaky)])
    with pytest.raises(MigrationError):
        registry.run(conn)
    assert registry.run(conn) == [1]
    assert table_exists(conn, "flaky")


def test_shipped_migrations_are_named():
    assert [m.name for m in MIGRATIONS] == ["add_extended_features", "fix_budgets_table"]
