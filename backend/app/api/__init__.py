"""API Layer - HTTP surface for the embedded database: backup routes, probes, error mapping.

Invariants:
    - Routes reach the engine only through the DatabaseSession on app.state
    - Every failure leaves as a JSON error envelope

Design Decisions:
    - Routers and handlers registered explicitly in main.py (ADR: ExMA no auto-discovery)
"""
