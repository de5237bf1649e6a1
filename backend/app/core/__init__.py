"""Core Layer - value types, errors, boundary protocols and backup naming rules.

Invariants:
    - Nothing in core/ touches a database connection or the durable store
    - core/ imports only from core/ and the standard library

Design Decisions:
    - Shared vocabulary lives here so infrastructure and services never import each other's types
      (ADR: ExMA impureim sandwich)
"""
