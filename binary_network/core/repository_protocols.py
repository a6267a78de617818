"""Boundary Protocols — contracts between the engine and the member store.

Invariants:
    - Core and services NEVER import a concrete store; they receive a ReferralDirectory
    - claim_slot is one atomic conditional write: parent slot empty -> child, and
      child upline empty -> parent, both or neither
    - apply_counters is one atomic versioned write: it succeeds only if the row is
      still at expected_version, and bumps the version
    - load_subtree returns a flat code -> node mapping, levels 0..max_depth below the root

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Async methods: implementations do IO; pure tree logic in core/ stays sync and
      operates on the snapshots these methods return
"""

from typing import Protocol

from binary_network.core.domain_types import (
    LegCounts, MemberNode, PairCredit, Side,
)


class ReferralDirectory(Protocol):
    """Keyed member store addressed by referral code — implemented by the shell."""

    async def get(self, referral_code: str) -> MemberNode | None: ...

    async def get_many(self, referral_codes: list[str]) -> dict[str, MemberNode]: ...

    async def load_subtree(
        self, referral_code: str, max_depth: int,
    ) -> dict[str, MemberNode]: ...

    async def list_members(self) -> list[MemberNode]: ...

    async def create_member(
        self,
        referral_code: str,
        name: str,
        email: str | None = None,
        referred_by: str | None = None,
    ) -> MemberNode: ...

    async def increment_referral_count(self, referral_code: str) -> None: ...

    async def claim_slot(
        self, parent_code: str, side: Side, child_code: str,
    ) -> bool: ...

    async def apply_counters(
        self,
        referral_code: str,
        expected_version: int,
        counts: LegCounts,
        pairs_count: int,
        credit: PairCredit | None = None,
    ) -> bool: ...

    async def list_credits(
        self, referral_code: str, limit: int = 20,
    ) -> list[PairCredit]: ...
