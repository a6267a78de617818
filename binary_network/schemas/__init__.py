"""Pydantic Schemas — request/response validation for API endpoints.

Invariants:
    - Schemas validate at system boundary (registration input, API responses)
    - Domain enums from core/ used for side and state fields

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
