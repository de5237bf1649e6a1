"""Persisted Image ORM - the single durable record holding the serialized database image.

Invariants:
    - key is the primary key; the store only ever writes one fixed key
    - data holds the full image bytes (never a diff)
    - last_modified is epoch milliseconds, set on every save

Design Decisions:
    - LargeBinary over file-on-disk: the save is one transactional put (ADR: no torn writes)
    - Epoch ms as BigInteger: matches the export/import record contract {key, data, lastModified}
"""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class PersistedImage(Base):
    """Key-value row: {key, data, last_modified}."""
    __tablename__ = "database_images"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    data: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    last_modified: Mapped[int] = mapped_column(BigInteger, nullable=False)


def epoch_ms_to_datetime(epoch_ms: int) -> datetime:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)
