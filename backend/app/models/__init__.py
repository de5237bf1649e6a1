"""ORM Models - SQLAlchemy declarative models for the durable image store.

Invariants:
    - All models inherit from Base (db/base.py)

Design Decisions:
    - Imported here so Base.metadata knows every table before create_all runs
      (ADR: standard SQLAlchemy pattern)
"""

from app.models.persisted_image import PersistedImage  # noqa: F401
