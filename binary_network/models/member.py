"""Member ORM — one row per registered account, the flat table the tree lives in.

Invariants:
    - referral_code is unique and immutable; every tree relation is a referral code
    - upline_code, left_child_code, right_child_code go empty -> set exactly once
    - version increments on every counter/income write (optimistic concurrency)
    - promotional_income and total_income never decrease

Design Decisions:
    - Codes instead of FKs between members: the tree is resolved by code lookups,
      and a slot may be claimed before the occupant row is re-read
    - Numeric(14, 2) for money: Decimal end to end, never float
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Integer, Numeric, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from binary_network.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Member(Base):
    """Member node — slot pointers, leg counters and accrued pair income."""
    __tablename__ = "members"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    referral_code: Mapped[str] = mapped_column(
        String(32), nullable=False, unique=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    referred_by: Mapped[str | None] = mapped_column(String(32), nullable=True)
    referral_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )

    # Placement (set once)
    upline_code: Mapped[str | None] = mapped_column(String(32), nullable=True)
    left_child_code: Mapped[str | None] = mapped_column(
        String(32), nullable=True,
    )
    right_child_code: Mapped[str | None] = mapped_column(
        String(32), nullable=True,
    )

    # Leg counters and credited pairs
    left_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    right_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pairs_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Ledger totals read by the earnings subsystem
    promotional_income: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0.00"),
    )
    total_income: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0.00"),
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )

    __table_args__ = (
        Index("ix_members_upline_code", "upline_code"),
    )
