"""PairCreditRecord ORM — income history, one row per non-zero pair credit.

Invariants:
    - Written in the same transaction as the versioned counter update it describes
    - event_code is the referral code of the registering member (NULL for reconciliation)
    - Append-only: rows are never updated or deleted
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Integer, Numeric, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from binary_network.db.base import Base


class PairCreditRecord(Base):
    """One credit of newly completed pairs to one member."""
    __tablename__ = "pair_credits"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    member_code: Mapped[str] = mapped_column(String(32), nullable=False)
    event_code: Mapped[str | None] = mapped_column(String(32), nullable=True)
    source: Mapped[str] = mapped_column(
        String(20), nullable=False, default="registration",
    )
    pairs: Mapped[int] = mapped_column(Integer, nullable=False)
    pairs_total_after: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("ix_pair_credits_member_code", "member_code"),
        Index("ix_pair_credits_event_code", "event_code"),
    )
