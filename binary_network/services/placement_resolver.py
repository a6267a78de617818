"""Placement Resolver — assigns a newly created member to one slot of the tree.

Invariants:
    - Manual mode needs both upline and side; one without the other is rejected
    - Manual mode never falls back: an occupied slot raises SlotOccupiedError
    - Automatic mode searches from the referrer, left-biased pre-order, bounded by
      max_tree_depth; no resolvable referrer means no placement (returns None)
    - Every slot write is directory.claim_slot (one atomic conditional update);
      a lost automatic race re-runs the search, at most placement_max_attempts times
    - A member already holding an upline is never placed twice

Design Decisions:
    - Search on a snapshot, claim on the live row: the snapshot may be stale, the
      conditional update is the arbiter
    - Returns a Placement value; propagation is the orchestrator's call, so the
      resolver can be exercised alone
"""

import logging

from binary_network.config import Settings
from binary_network.core.domain_types import Placement, Side
from binary_network.core.errors import (
    AlreadyPlacedError,
    ConcurrentUpdateConflictError,
    ErrorContext,
    InvalidPlacementRequestError,
    MemberNotFoundError,
    SlotOccupiedError,
    UplineNotFoundError,
)
from binary_network.core.repository_protocols import ReferralDirectory
from binary_network.core.tree_walk import find_open_slot

logger = logging.getLogger(__name__)


class PlacementResolver:
    """Manual and automatic slot assignment over a ReferralDirectory."""

    def __init__(self, directory: ReferralDirectory, settings: Settings):
        self._directory = directory
        self._max_depth = settings.max_tree_depth
        self._max_attempts = settings.placement_max_attempts

    async def place(
        self,
        new_code: str,
        referrer_code: str | None = None,
        explicit_upline: str | None = None,
        explicit_side: Side | None = None,
    ) -> Placement | None:
        """Claim a slot for new_code. None when there is nothing to attach to."""
        if (explicit_upline is None) != (explicit_side is None):
            raise InvalidPlacementRequestError(
                "Manual placement requires both an upline and a side",
                ErrorContext(member_code=new_code),
            )

        await self._ensure_unplaced(new_code)

        if explicit_upline is not None:
            return await self._place_manual(new_code, explicit_upline, explicit_side)
        if not referrer_code:
            return None
        return await self._place_automatic(new_code, referrer_code)

    async def _ensure_unplaced(self, new_code: str) -> None:
        member = await self._directory.get(new_code)
        if member is None:
            raise MemberNotFoundError(new_code)
        if member.is_placed:
            raise AlreadyPlacedError(new_code, ErrorContext(member_code=new_code))
        if member.children():
            # a root with a downline could end up under its own descendant
            raise InvalidPlacementRequestError(
                f"Member '{new_code}' already has a downline and cannot be placed",
                ErrorContext(member_code=new_code),
            )

    async def _place_manual(
        self, new_code: str, upline_code: str, side: Side,
    ) -> Placement:
        if upline_code == new_code:
            raise InvalidPlacementRequestError(
                "A member cannot be placed under itself",
                ErrorContext(member_code=new_code),
            )
        upline = await self._directory.get(upline_code)
        if upline is None:
            raise UplineNotFoundError(
                upline_code, ErrorContext(member_code=new_code),
            )
        if upline.child(side) is not None:
            raise SlotOccupiedError(
                upline_code, side.value, ErrorContext(member_code=new_code),
            )

        if not await self._directory.claim_slot(upline_code, side, new_code):
            # filled between our read and the conditional write
            raise SlotOccupiedError(
                upline_code, side.value, ErrorContext(member_code=new_code),
            )

        logger.info(
            f"Placed {new_code} manually under {upline_code} ({side.value})",
            extra={"member_code": new_code, "ancestor_code": upline_code,
                   "side": side.value},
        )
        return Placement(parent_code=upline_code, side=side)

    async def _place_automatic(
        self, new_code: str, referrer_code: str,
    ) -> Placement | None:
        if referrer_code == new_code or await self._directory.get(referrer_code) is None:
            logger.info(
                f"Referrer {referrer_code} not found, {new_code} stays a root",
                extra={"member_code": new_code},
            )
            return None

        for attempt in range(1, self._max_attempts + 1):
            nodes = await self._directory.load_subtree(referrer_code, self._max_depth)
            slot = find_open_slot(nodes, referrer_code, self._max_depth)
            if await self._directory.claim_slot(slot.parent_code, slot.side, new_code):
                logger.info(
                    f"Placed {new_code} under {slot.parent_code} ({slot.side.value})",
                    extra={"member_code": new_code,
                           "ancestor_code": slot.parent_code,
                           "side": slot.side.value, "attempt": attempt},
                )
                return slot
            logger.warning(
                f"Lost slot race at {slot.parent_code} ({slot.side.value}), "
                f"re-resolving",
                extra={"member_code": new_code, "ancestor_code": slot.parent_code,
                       "side": slot.side.value, "attempt": attempt},
            )

        raise ConcurrentUpdateConflictError(
            f"Could not claim a slot under '{referrer_code}' after "
            f"{self._max_attempts} attempts",
            ErrorContext(member_code=new_code, attempt=self._max_attempts),
        )
