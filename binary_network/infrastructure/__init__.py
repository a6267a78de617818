"""Infrastructure Layer — database access and cross-cutting concerns.

Invariants:
    - SQLAlchemy is imported here and in models/ only
    - All database failures are mapped to DatabaseError (core/errors.py)

Design Decisions:
    - SqlReferralDirectory implements core's ReferralDirectory protocol
"""
