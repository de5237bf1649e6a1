"""Database Layer - embedded engine schema, migrations and durable store ORM plumbing.

Invariants:
    - schema.py and migrations.py act on a live sqlite3.Connection (the embedded engine)
    - base.py and session.py serve the durable store only (SQLAlchemy async)

Design Decisions:
    - aiosqlite driver for the durable store (ADR: async IO, single local file)
"""
