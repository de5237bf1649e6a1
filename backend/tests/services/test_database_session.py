"""Database Session Facade - status transitions, subscriptions and backup triggers.

Invariants:
    - Status starts {is_initialized: False, is_loading: True, error: None}
    - initialize() never raises; failures land in status.error
    - import rejects non-.db names before touching the engine
    - Export names the file with the injected clock and hands it to the deliverer
"""

import sqlite3

import pytest

from app.core.domain_types import EngineState, SessionStatus
from app.core.errors import (
    CorruptImageError, DatabaseImportError, InvalidBackupFileError, NotInitializedError,
    StoreError,
)
from app.infrastructure.engine import EngineLifecycleManager
from app.services.database_session import DatabaseSession


async def test_initial_status(db_session):
    assert db_session.status == SessionStatus(
        is_initialized=False, is_loading=True, error=None,
    )


async def test_initialize_success_updates_status(db_session):
    assert await db_session.initialize() is True
    assert db_session.status.is_initialized is True
    assert db_session.status.is_loading is False
    assert db_session.status.error is None


async def test_initialize_failure_is_recorded(make_store):
    mgr = EngineLifecycleManager(make_store(b"corrupted image bytes here"))
    session = DatabaseSession(mgr)

    assert await session.initialize() is False
    assert session.status.is_initialized is False
    assert session.status.is_loading is False
    assert isinstance(session.status.error, CorruptImageError)


async def test_start_initializes_once(db_session, fake_store):
    first = await db_session.start()
    second = await db_session.start()
    assert first is True and second is True
    assert fake_store.load_calls == 1


async def test_subscribers_receive_every_change(db_session):
    seen = []
    db_session.subscribe(seen.append)
    await db_session.initialize()

    assert [s.is_loading for s in seen] == [True, False]
    assert seen[-1].is_initialized is True


async def test_unsubscribe_stops_notifications(db_session):
    seen = []
    unsubscribe = db_session.subscribe(seen.append)
    unsubscribe()
    unsubscribe()
    await db_session.initialize()
    assert seen == []


async def test_query_and_execute_pass_through(db_session):
    await db_session.initialize()
    result = db_session.execute(
        "INSERT INTO users (username, pin_hash, salt) VALUES (?, ?, ?)",
        ("ana", "h", "s"),
    )
    assert result.last_insert_id == 1
    assert db_session.query("SELECT username FROM users") == [{"username": "ana"}]


async def test_query_before_initialize_raises(db_session):
    with pytest.raises(NotInitializedError):
        db_session.query("SELECT 1")
    assert isinstance(db_session.status.error, NotInitializedError)


async def test_statement_errors_reach_error_channel(db_session):
    await db_session.initialize()
    seen = []
    db_session.subscribe(seen.append)

    with pytest.raises(sqlite3.OperationalError):
        db_session.query("SELECT * FROM no_such_table")
    assert isinstance(db_session.status.error, sqlite3.OperationalError)

    with pytest.raises(sqlite3.IntegrityError):
        db_session.execute(
            "INSERT INTO categories (name, type) VALUES (?, ?)", ("Bad", "neither"),
        )
    assert isinstance(db_session.status.error, sqlite3.IntegrityError)
    assert len(seen) == 2
    assert db_session.status.is_initialized is True


async def test_export_names_and_delivers(db_session, delivered):
    await db_session.initialize()
    exported = await db_session.export_database()

    assert exported.filename == "finora-backup-2026-10-18.db"
    assert exported.media_type == "application/x-sqlite3"
    assert exported.data.startswith(b"SQLite format 3\x00")
    assert delivered == [exported]


async def test_export_awaits_async_deliverer(manager):
    received = []

    async def deliver(exported):
        received.append(exported.filename)

    session = DatabaseSession(manager, deliver=deliver, backup_prefix="ledger")
    await session.initialize()
    exported = await session.export_database()
    assert received == [exported.filename]
    assert exported.filename.startswith("ledger-")


async def test_export_before_initialize_records_error(db_session):
    with pytest.raises(NotInitializedError):
        await db_session.export_database()
    assert isinstance(db_session.status.error, NotInitializedError)


async def test_import_rejects_wrong_extension(db_session, fake_store):
    await db_session.initialize()
    with pytest.raises(InvalidBackupFileError):
        await db_session.import_database("backup.sqlite", b"whatever")
    assert isinstance(db_session.status.error, InvalidBackupFileError)
    assert fake_store.save_calls == 1


async def test_import_replaces_data(db_session, make_store):
    source = EngineLifecycleManager(make_store())
    await source.initialize()
    source.execute(
        "INSERT INTO categories (name, type) VALUES (?, ?)", ("Rent", "expense"),
    )
    image = source.export_database()
    await source.close()

    await db_session.initialize()
    await db_session.import_database("finora-backup-2026-10-18.db", image)

    assert db_session.status.is_initialized is True
    assert db_session.status.error is None
    assert db_session.query("SELECT name FROM categories") == [{"name": "Rent"}]


async def test_failed_import_keeps_session_initialized(db_session):
    await db_session.initialize()
    with pytest.raises(DatabaseImportError):
        await db_session.import_database("broken.db", b"not sqlite")

    assert db_session.status.is_initialized is True
    assert db_session.status.is_loading is False
    assert isinstance(db_session.status.error, DatabaseImportError)


async def test_failed_import_without_rollback_clears_initialized(fake_store):
    mgr = EngineLifecycleManager(fake_store, import_rollback=False)
    session = DatabaseSession(mgr, store=fake_store)
    await session.initialize()

    with pytest.raises(DatabaseImportError):
        await session.import_database("broken.db", b"not sqlite")

    assert session.status.is_initialized is False
    assert mgr.state is EngineState.UNINITIALIZED


async def test_reset_clears_data(db_session):
    await db_session.initialize()
    db_session.execute(
        "INSERT INTO categories (name, type) VALUES (?, ?)", ("Rent", "expense"),
    )
    await db_session.reset_database()

    assert db_session.query("SELECT COUNT(*) AS n FROM categories") == [{"n": 0}]
    assert db_session.status.is_initialized is True
    assert db_session.status.is_loading is False


async def test_save_failure_recorded_and_raised(db_session, fake_store):
    await db_session.initialize()
    fake_store.fail_saves = True
    with pytest.raises(StoreError):
        await db_session.save_database()
    assert isinstance(db_session.status.error, StoreError)
    assert db_session.status.is_initialized is True


async def test_database_size_and_info(db_session, fake_store):
    assert await db_session.database_size() == 0
    assert await db_session.store_info() is None

    await db_session.initialize()
    size = await db_session.database_size()
    assert size == len(fake_store.data)
    assert (await db_session.store_info()).size_bytes == size


async def test_database_size_without_store(manager):
    session = DatabaseSession(manager)
    assert await session.database_size() == 0
    assert await session.store_info() is None
