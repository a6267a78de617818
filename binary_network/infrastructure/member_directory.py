"""SQL Referral Directory — SQLAlchemy implementation of the ReferralDirectory protocol.

Invariants:
    - Every method opens its own short session; nothing is held across calls
    - claim_slot: conditional UPDATE of the parent slot (IS NULL) and of the child's
      upline (IS NULL) in one transaction; rowcount decides the winner
    - apply_counters: UPDATE ... WHERE version = expected, version + 1, plus the ledger
      row, in one transaction; rowcount 0 means a concurrent writer got there first
    - load_subtree: one batched IN query per tree level, never re-fetches a code

Design Decisions:
    - Core UPDATE statements with synchronize_session=False: nothing is cached in the
      session, and rowcount is the compare-and-set result
    - Rows are converted to frozen MemberNode snapshots before the session closes
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from binary_network.core.domain_types import (
    CreditSource, LegCounts, MemberNode, PairCredit, Side,
)
from binary_network.core.errors import (
    AlreadyPlacedError, DuplicateReferralCodeError, ErrorContext,
)
from binary_network.infrastructure.database import DatabaseSessionManager
from binary_network.models.member import Member
from binary_network.models.pair_credit import PairCreditRecord

logger = logging.getLogger(__name__)

_SLOT_COLUMNS = {
    Side.LEFT: Member.left_child_code,
    Side.RIGHT: Member.right_child_code,
}


def to_node(row: Member) -> MemberNode:
    return MemberNode(
        referral_code=row.referral_code,
        id=row.id,
        name=row.name,
        email=row.email,
        referred_by=row.referred_by,
        referral_count=row.referral_count,
        upline_code=row.upline_code,
        left_child_code=row.left_child_code,
        right_child_code=row.right_child_code,
        left_count=row.left_count,
        right_count=row.right_count,
        pairs_count=row.pairs_count,
        promotional_income=row.promotional_income,
        total_income=row.total_income,
        version=row.version,
        created_at=row.created_at,
    )


class SqlReferralDirectory:
    """Member store backed by the `members` and `pair_credits` tables."""

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    async def get(self, referral_code: str) -> MemberNode | None:
        async with self._db.session() as session:
            result = await session.execute(
                select(Member).where(Member.referral_code == referral_code),
            )
            row = result.scalar_one_or_none()
            return to_node(row) if row else None

    async def get_many(self, referral_codes: list[str]) -> dict[str, MemberNode]:
        if not referral_codes:
            return {}
        async with self._db.session() as session:
            result = await session.execute(
                select(Member).where(Member.referral_code.in_(referral_codes)),
            )
            return {row.referral_code: to_node(row) for row in result.scalars()}

    async def load_subtree(
        self, referral_code: str, max_depth: int,
    ) -> dict[str, MemberNode]:
        """Root plus descendants down to max_depth levels, as a flat mapping."""
        nodes: dict[str, MemberNode] = {}
        frontier = [referral_code]
        async with self._db.session() as session:
            for _ in range(max_depth + 1):
                pending = list(dict.fromkeys(c for c in frontier if c not in nodes))
                if not pending:
                    break
                result = await session.execute(
                    select(Member).where(Member.referral_code.in_(pending)),
                )
                for row in result.scalars():
                    nodes[row.referral_code] = to_node(row)
                frontier = [
                    child
                    for code in pending if code in nodes
                    for child in nodes[code].children()
                ]
        return nodes

    async def list_members(self) -> list[MemberNode]:
        async with self._db.session() as session:
            result = await session.execute(
                select(Member).order_by(Member.created_at, Member.referral_code),
            )
            return [to_node(row) for row in result.scalars()]

    async def create_member(
        self,
        referral_code: str,
        name: str,
        email: str | None = None,
        referred_by: str | None = None,
    ) -> MemberNode:
        """Insert a bare member: no upline, no children, zero counters."""
        async with self._db.session() as session:
            row = Member(
                referral_code=referral_code,
                name=name,
                email=email,
                referred_by=referred_by,
            )
            session.add(row)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise DuplicateReferralCodeError(
                    referral_code, ErrorContext(member_code=referral_code),
                )
            return to_node(row)

    async def increment_referral_count(self, referral_code: str) -> None:
        async with self._db.session() as session:
            await session.execute(
                update(Member)
                .where(Member.referral_code == referral_code)
                .values(referral_count=Member.referral_count + 1)
                .execution_options(synchronize_session=False),
            )
            await session.commit()

    async def claim_slot(
        self, parent_code: str, side: Side, child_code: str,
    ) -> bool:
        """Occupy parent's `side` slot with child_code if still empty."""
        slot = _SLOT_COLUMNS[side]
        now = datetime.now(timezone.utc)
        async with self._db.session() as session:
            slot_result = await session.execute(
                update(Member)
                .where(Member.referral_code == parent_code, slot.is_(None))
                .values({slot: child_code, Member.updated_at: now})
                .execution_options(synchronize_session=False),
            )
            if slot_result.rowcount != 1:
                await session.rollback()
                return False

            upline_result = await session.execute(
                update(Member)
                .where(
                    Member.referral_code == child_code,
                    Member.upline_code.is_(None),
                )
                .values(upline_code=parent_code, updated_at=now)
                .execution_options(synchronize_session=False),
            )
            if upline_result.rowcount != 1:
                await session.rollback()
                logger.warning(
                    f"Slot claim under {parent_code} undone: {child_code} already placed",
                    extra={"member_code": child_code, "ancestor_code": parent_code,
                           "side": side.value},
                )
                raise AlreadyPlacedError(
                    child_code, ErrorContext(member_code=child_code),
                )

            await session.commit()
            return True

    async def apply_counters(
        self,
        referral_code: str,
        expected_version: int,
        counts: LegCounts,
        pairs_count: int,
        credit: PairCredit | None = None,
    ) -> bool:
        """Versioned write of counters, pairs and (optionally) income."""
        values = {
            "left_count": counts.left,
            "right_count": counts.right,
            "pairs_count": pairs_count,
            "version": Member.version + 1,
            "updated_at": datetime.now(timezone.utc),
        }
        if credit is not None:
            values["promotional_income"] = Member.promotional_income + credit.amount
            values["total_income"] = Member.total_income + credit.amount

        async with self._db.session() as session:
            result = await session.execute(
                update(Member)
                .where(
                    Member.referral_code == referral_code,
                    Member.version == expected_version,
                )
                .values(**values)
                .execution_options(synchronize_session=False),
            )
            if result.rowcount != 1:
                await session.rollback()
                return False

            if credit is not None:
                session.add(PairCreditRecord(
                    member_code=credit.member_code,
                    event_code=credit.event_code,
                    source=credit.source.value,
                    pairs=credit.new_pairs,
                    pairs_total_after=credit.total_pairs,
                    amount=credit.amount,
                ))
            await session.commit()
            return True

    async def list_credits(
        self, referral_code: str, limit: int = 20,
    ) -> list[PairCredit]:
        """Most recent credits first."""
        async with self._db.session() as session:
            result = await session.execute(
                select(PairCreditRecord)
                .where(PairCreditRecord.member_code == referral_code)
                .order_by(PairCreditRecord.created_at.desc())
                .limit(limit),
            )
            return [
                PairCredit(
                    member_code=row.member_code,
                    new_pairs=row.pairs,
                    total_pairs=row.pairs_total_after,
                    amount=row.amount,
                    event_code=row.event_code,
                    source=CreditSource(row.source),
                )
                for row in result.scalars()
            ]
