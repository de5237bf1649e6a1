"""Backup Files - pure naming and formatting rules for exported database images.

Invariants:
    - Backup names are <prefix>-<ISO date>.db, date taken in UTC
    - Only names ending in .db are accepted for import (convenience check, not validation)
    - No IO in this module
"""

from datetime import datetime, timezone

BACKUP_SUFFIX = ".db"
DEFAULT_BACKUP_PREFIX = "finora-backup"

_SIZE_UNITS = ("Bytes", "KB", "MB")


def backup_filename(
    now: datetime | None = None, prefix: str = DEFAULT_BACKUP_PREFIX,
) -> str:
    """Timestamped backup filename, e.g. finora-backup-2026-10-18.db."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return f"{prefix}-{now.date().isoformat()}{BACKUP_SUFFIX}"


def is_backup_filename(filename: str) -> bool:
    return filename.endswith(BACKUP_SUFFIX)


def format_bytes(size: int) -> str:
    """Human-readable size: 0 Bytes, 512 Bytes, 1.5 KB, 2 MB."""
    if size <= 0:
        return "0 Bytes"
    exponent = 0
    while size >= 1024 ** (exponent + 1) and exponent < len(_SIZE_UNITS) - 1:
        exponent += 1
    value = round(size / 1024 ** exponent, 2)
    if value == int(value):
        value = int(value)
    return f"{value} {_SIZE_UNITS[exponent]}"
