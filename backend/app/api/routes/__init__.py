"""Route Modules - database backup/restore and health probes.

Invariants:
    - Each module owns one APIRouter with its prefix and tags
    - Handlers delegate to DatabaseSession; no SQL in this package
"""
