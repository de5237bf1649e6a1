"""Infrastructure Layer - embedded engine lifecycle, durable store, and logging.

Invariants:
    - Infrastructure never leaks driver exceptions: sqlite3 / SQLAlchemy errors mapped
      to the core/errors.py hierarchy at this boundary
    - The embedded engine is synchronous; only store IO and runtime load suspend

Design Decisions:
    - Lifecycle manager receives its store by injection (ADR: ExMA single responsibility)
"""
