"""Services Layer — placement, aggregation, propagation, registration and reports.

Invariants:
    - Services depend on the ReferralDirectory protocol, never on SQLAlchemy
    - All IO is async; tree logic is delegated to the pure functions in core/

Design Decisions:
    - One class per engine component, wired explicitly by the caller
"""
