"""Pair Ledger Math — pure counter and pair-credit arithmetic for one ancestor.

Invariants:
    - new_pairs = min(left, right) - stored_pairs, never negative
    - pairs_count written back is never lower than what was stored (credits are permanent)
    - amount = new_pairs * pair_bonus_rate, quantized to cents
    - Pure: the shell applies the plan in one versioned write

Design Decisions:
    - Optimistic increment kept as a separate function: it is the expected value the
      recount is compared against, so drift is observable rather than silently absorbed
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from binary_network.core.domain_types import LegCounts, MemberNode, Side


CENT = Decimal("0.01")


@dataclass(frozen=True)
class PairCreditPlan:
    """What one ancestor update will write."""
    counts: LegCounts
    total_pairs: int
    new_pairs: int
    amount: Decimal

    @property
    def credits_income(self) -> bool:
        return self.new_pairs > 0


def optimistic_counts(node: MemberNode, side: Side) -> LegCounts:
    """Stored counters with the just-filled side incremented by one."""
    if side is Side.LEFT:
        return LegCounts(left=node.left_count + 1, right=node.right_count)
    return LegCounts(left=node.left_count, right=node.right_count + 1)


def stored_counts(node: MemberNode) -> LegCounts:
    return LegCounts(left=node.left_count, right=node.right_count)


def plan_pair_credit(
    stored_pairs: int, counts: LegCounts, pair_bonus_rate: Decimal,
) -> PairCreditPlan:
    """Pairs newly completed since the last credit, and their bonus."""
    total_pairs = max(counts.pairs, stored_pairs)
    new_pairs = total_pairs - stored_pairs
    amount = (Decimal(new_pairs) * pair_bonus_rate).quantize(
        CENT, rounding=ROUND_HALF_UP,
    )
    return PairCreditPlan(
        counts=counts,
        total_pairs=total_pairs,
        new_pairs=new_pairs,
        amount=amount,
    )


def is_pair_regression(stored_pairs: int, counts: LegCounts) -> bool:
    """Recount shows fewer pairs than already credited (tree data damaged)."""
    return counts.pairs < stored_pairs
