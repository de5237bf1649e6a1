"""Migration Registry - ordered, versioned, idempotent schema upgrades for database images.

Invariants:
    - Versions are positive, unique and strictly increasing (validated at construction)
    - current_version() is the only place the schema_version table is created
    - Each descriptor's apply + version insert is one SQLite transaction
    - A failing descriptor aborts the run; earlier descriptors of the batch stay committed
    - The failing version is never recorded, so the next session retries it and everything after

Design Decisions:
    - Forward-only, resumable: no down migrations (ADR: user data never leaves the device)
    - Column/table presence checked through the catalog before mutating,
      never "ALTER and ignore the failure" (ADR: idempotence as a verified precondition)
    - apply bodies use execute() only: executescript() would commit the open transaction
"""

import logging
import sqlite3
from dataclasses import dataclass
from typing import Callable, Iterable

from app.core.errors import MigrationError, MigrationRegistryError
from app.db.introspection import column_names, has_column, table_exists

logger = logging.getLogger(__name__)

SCHEMA_VERSION_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT DEFAULT CURRENT_TIMESTAMP
)
"""


@dataclass(frozen=True)
class Migration:
    """One schema upgrade step. apply mutates the connection in place."""
    version: int
    name: str
    apply: Callable[[sqlite3.Connection], None]


class MigrationRegistry:
    """Validated, ordered collection of migrations plus the runner that applies them."""

    def __init__(self, migrations: Iterable[Migration]):
        self._migrations: tuple[Migration, ...] = tuple(migrations)
        _validate(self._migrations)

    @property
    def migrations(self) -> tuple[Migration, ...]:
        return self._migrations

    @property
    def latest_version(self) -> int:
        return self._migrations[-1].version if self._migrations else 0

    def current_version(self, conn: sqlite3.Connection) -> int:
        """Highest recorded version; creates the version table (returning 0) if absent."""
        if not table_exists(conn, "schema_version"):
            conn.execute(SCHEMA_VERSION_TABLE_SQL)
            return 0
        row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return row[0] or 0

    def pending(self, conn: sqlite3.Connection) -> list[Migration]:
        current = self.current_version(conn)
        return [m for m in self._migrations if m.version > current]

    def run(self, conn: sqlite3.Connection) -> list[int]:
        """Apply every pending migration in ascending order. Returns applied versions."""
        pending = self.pending(conn)
        if not pending:
            logger.info("No pending migrations")
            return []

        logger.info(f"Applying {len(pending)} migration(s)")
        applied: list[int] = []
        for migration in pending:
            self._apply_one(conn, migration)
            applied.append(migration.version)
        logger.info(
            "Migrations complete",
            extra={"migration_version": applied[-1]},
        )
        return applied

    def stamp(self, conn: sqlite3.Connection) -> None:
        """Record every registered version without running it.

        Used right after the bootstrap schema, which already has the latest shape.
        """
        self.current_version(conn)
        conn.execute("BEGIN")
        try:
            conn.executemany(
                "INSERT OR IGNORE INTO schema_version (version) VALUES (?)",
                [(m.version,) for m in self._migrations],
            )
            conn.execute("COMMIT")
        except sqlite3.Error:
            conn.execute("ROLLBACK")
            raise

    def _apply_one(self, conn: sqlite3.Connection, migration: Migration) -> None:
        logger.info(
            f"Applying migration {migration.version}: {migration.name}",
            extra={"migration_version": migration.version},
        )
        conn.execute("BEGIN")
        try:
            migration.apply(conn)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (migration.version,),
            )
            conn.execute("COMMIT")
        except Exception as e:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            logger.error(
                f"Migration {migration.version} ({migration.name}) failed: {e}",
                extra={"migration_version": migration.version},
            )
            raise MigrationError(migration.version, migration.name, str(e)) from e


def _validate(migrations: tuple[Migration, ...]) -> None:
    previous = 0
    for migration in migrations:
        if not isinstance(migration.version, int) or migration.version <= 0:
            raise MigrationRegistryError(
                migration.version, migration.name, "version must be a positive integer",
            )
        if migration.version <= previous:
            raise MigrationRegistryError(
                migration.version, migration.name,
                f"version must be unique and greater than {previous}",
            )
        previous = migration.version


# ─── Migration 1: extended category/transaction columns ─────────

_MIGRATION_0001_COLUMNS: tuple[tuple[str, str, str], ...] = (
    ("categories", "icon_id", "INTEGER REFERENCES category_icons(id)"),
    ("categories", "color_id", "INTEGER REFERENCES category_colors(id)"),
    ("categories", "parent_id", "INTEGER REFERENCES categories(id)"),
    ("categories", "is_archived", "BOOLEAN DEFAULT 0"),
    ("categories", "sort_order", "INTEGER DEFAULT 0"),
    ("transactions", "account_id", "INTEGER REFERENCES accounts(id)"),
)


def add_extended_features(conn: sqlite3.Connection) -> None:
    for table, column, definition in _MIGRATION_0001_COLUMNS:
        if not table_exists(conn, table) or has_column(conn, table, column):
            continue
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {definition}")
    if table_exists(conn, "transactions"):
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_transactions_account "
            "ON transactions(account_id)"
        )


# ─── Migration 2: rebuild budgets with period/is_active ─────────

_BUDGETS_NEW_SQL = """
CREATE TABLE budgets_new (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    category_id INTEGER NOT NULL,
    amount REAL NOT NULL,
    period TEXT NOT NULL CHECK(period IN ('monthly', 'yearly')) DEFAULT 'monthly',
    start_date TEXT NOT NULL,
    end_date TEXT,
    alert_percentage INTEGER DEFAULT 80,
    is_active BOOLEAN DEFAULT 1,
    month INTEGER CHECK(month BETWEEN 1 AND 12),
    year INTEGER CHECK(year >= 2020),
    user_id INTEGER,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (category_id) REFERENCES categories(id),
    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
)
"""

_BUDGETS_INDEXES: tuple[str, ...] = (
    "CREATE INDEX IF NOT EXISTS idx_budgets_category ON budgets(category_id)",
    "CREATE INDEX IF NOT EXISTS idx_budgets_active ON budgets(is_active)",
    "CREATE INDEX IF NOT EXISTS idx_budgets_period ON budgets(year, month)",
    "CREATE INDEX IF NOT EXISTS idx_budgets_user ON budgets(user_id)",
)


def fix_budgets_table(conn: sqlite3.Connection) -> None:
    columns = column_names(conn, "budgets")
    if not columns:
        return
    if "is_active" in columns and "period" in columns:
        return

    logger.info("Rebuilding budgets table", extra={"migration_version": 2})
    if table_exists(conn, "budgets_new"):
        conn.execute("DROP TABLE budgets_new")
    conn.execute(_BUDGETS_NEW_SQL)

    user_id = "user_id" if "user_id" in columns else "NULL"
    created_at = "created_at" if "created_at" in columns else "CURRENT_TIMESTAMP"
    conn.execute(f"""
        INSERT INTO budgets_new (
            id, category_id, amount, month, year, user_id, created_at,
            period, start_date, is_active
        )
        SELECT
            id,
            category_id,
            amount,
            month,
            year,
            {user_id},
            {created_at},
            'monthly',
            COALESCE(
                date(year || '-' || printf('%02d', month) || '-01'),
                date('now', 'start of month')
            ),
            1
        FROM budgets
    """)
    conn.execute("DROP TABLE budgets")
    conn.execute("ALTER TABLE budgets_new RENAME TO budgets")
    for statement in _BUDGETS_INDEXES:
        conn.execute(statement)


MIGRATIONS: tuple[Migration, ...] = (
    Migration(version=1, name="add_extended_features", apply=add_extended_features),
    Migration(version=2, name="fix_budgets_table", apply=fix_budgets_table),
)


def default_registry() -> MigrationRegistry:
    """Registry holding the application's migration set."""
    return MigrationRegistry(MIGRATIONS)
