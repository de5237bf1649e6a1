"""SQLAlchemy Declarative Base - shared base class for durable store ORM models.

Invariants:
    - All store models inherit from Base
    - Base is the single source of truth for durable store table metadata

Design Decisions:
    - Separate file for Base: avoids circular imports between models (ADR: SQLAlchemy best practice)
    - Only the durable store uses the ORM; the embedded engine is plain sqlite3
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all durable store ORM models."""
    pass
