"""Services Layer - caller-facing facades over the engine lifecycle.

Invariants:
    - Services never open engine connections themselves; they go through the manager
    - Service state changes are observable, never returned through callbacks

Design Decisions:
    - One facade per session (ADR: ExMA no god objects)
"""
