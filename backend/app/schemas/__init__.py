"""Pydantic Schemas - response contracts for the database endpoints.

Invariants:
    - Built from core value types at the API boundary, never passed back inward
    - Lifecycle state exposed as the EngineState string value

Design Decisions:
    - Kept apart from models/: schemas describe HTTP payloads, models describe the store row
"""
