"""Domain Types — rich types that replace bare primitives across the engine.

Invariants:
    - ReferralCode is the addressing key for every tree relation (never the member id)
    - EventCode is the referral code of the member whose registration triggered a propagation
    - MemberNode is an immutable snapshot of one directory row; writes go through the directory
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over wrapper classes: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
    - Frozen dataclasses for snapshots: a flat code -> node mapping is the tree
      (no object graph, no parent pointers held in memory)
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

ReferralCode = NewType("ReferralCode", str)
EventCode = NewType("EventCode", str)


# ─── Enums ───────────────────────────────────────────────────────

class Side(str, Enum):
    """A slot under a member. LEFT is always tried first."""
    LEFT = "left"
    RIGHT = "right"

    @property
    def opposite(self) -> "Side":
        return Side.RIGHT if self is Side.LEFT else Side.LEFT


class PropagationState(str, Enum):
    """Per-registration-event lifecycle."""
    UNPLACED = "unplaced"
    PLACED = "placed"
    PROPAGATING = "propagating"
    DONE = "done"
    FAILED = "failed"


class CreditSource(str, Enum):
    """Why a pair credit was written to the ledger."""
    REGISTRATION = "registration"
    RECONCILIATION = "reconciliation"


class AuditIssueType(str, Enum):
    """Structural or ledger problems reported by the network audit."""
    ORPHAN_SLOT = "orphan_slot"
    UPLINE_MISMATCH = "upline_mismatch"
    DUPLICATE_OCCUPANT = "duplicate_occupant"
    COUNTER_DRIFT = "counter_drift"
    PAIRS_MISMATCH = "pairs_mismatch"
    UNREADABLE_SUBTREE = "unreadable_subtree"


# ─── Snapshots ───────────────────────────────────────────────────

@dataclass(frozen=True)
class MemberNode:
    """One member row as read from the directory."""
    referral_code: str
    id: UUID | None = None
    name: str = ""
    email: str | None = None
    referred_by: str | None = None
    referral_count: int = 0
    upline_code: str | None = None
    left_child_code: str | None = None
    right_child_code: str | None = None
    left_count: int = 0
    right_count: int = 0
    pairs_count: int = 0
    promotional_income: Decimal = Decimal("0")
    total_income: Decimal = Decimal("0")
    version: int = 0
    created_at: datetime | None = None

    def child(self, side: Side) -> str | None:
        return self.left_child_code if side is Side.LEFT else self.right_child_code

    def children(self) -> tuple[str, ...]:
        """Occupied slots in pre-order (left first)."""
        return tuple(
            code for code in (self.left_child_code, self.right_child_code)
            if code
        )

    def open_side(self) -> Side | None:
        """First empty slot, left-biased."""
        if not self.left_child_code:
            return Side.LEFT
        if not self.right_child_code:
            return Side.RIGHT
        return None

    @property
    def is_placed(self) -> bool:
        return bool(self.upline_code)


@dataclass(frozen=True)
class LegCounts:
    """Members in the left and right subtree (child included)."""
    left: int = 0
    right: int = 0

    @property
    def pairs(self) -> int:
        return min(self.left, self.right)


@dataclass(frozen=True)
class Placement:
    """A claimed slot: the new member sits on `side` of `parent_code`."""
    parent_code: str
    side: Side


@dataclass(frozen=True)
class PairCredit:
    """Pairs credited to one ancestor by one atomic counter update."""
    member_code: str
    new_pairs: int
    total_pairs: int
    amount: Decimal
    event_code: str | None = None
    source: CreditSource = CreditSource.REGISTRATION


@dataclass
class PropagationReport:
    """Outcome of one ancestor-chain walk."""
    event_code: str
    state: PropagationState = PropagationState.PLACED
    ancestors_visited: list[str] = field(default_factory=list)
    credits: list[PairCredit] = field(default_factory=list)

    @property
    def total_credited(self) -> Decimal:
        return sum((c.amount for c in self.credits), Decimal("0"))
