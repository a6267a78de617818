"""Placement Resolver — verifies manual and automatic slot assignment.

Invariants:
    - Manual placement into an occupied slot raises SlotOccupied and changes nothing
    - Automatic placement fills left before right and the left subtree first
    - No referrer / unknown referrer leaves the member a root
"""

import pytest

from binary_network.core.domain_types import Placement, Side
from binary_network.core.errors import (
    AlreadyPlacedError,
    InvalidPlacementRequestError,
    MaxDepthExceededError,
    MemberNotFoundError,
    SlotOccupiedError,
    UplineNotFoundError,
)
from binary_network.services.placement_resolver import PlacementResolver


async def _create(directory, *codes):
    for code in codes:
        await directory.create_member(code, code)


async def test_manual_placement_claims_requested_slot(directory, resolver):
    await _create(directory, "ROOT", "NEW")

    placement = await resolver.place("NEW", explicit_upline="ROOT", explicit_side=Side.RIGHT)

    assert placement == Placement("ROOT", Side.RIGHT)
    assert (await directory.get("ROOT")).right_child_code == "NEW"
    assert (await directory.get("NEW")).upline_code == "ROOT"


async def test_manual_placement_into_occupied_slot_changes_nothing(directory, resolver):
    await _create(directory, "ROOT", "FIRST", "SECOND")
    await resolver.place("FIRST", explicit_upline="ROOT", explicit_side=Side.LEFT)
    before = await directory.load_subtree("ROOT", 5)

    with pytest.raises(SlotOccupiedError) as exc_info:
        await resolver.place("SECOND", explicit_upline="ROOT", explicit_side=Side.LEFT)

    assert exc_info.value.http_status == 409
    assert await directory.load_subtree("ROOT", 5) == before
    assert (await directory.get("SECOND")).upline_code is None


async def test_manual_placement_unknown_upline(directory, resolver):
    await _create(directory, "NEW")
    with pytest.raises(UplineNotFoundError):
        await resolver.place("NEW", explicit_upline="GHOST", explicit_side=Side.LEFT)


async def test_manual_placement_needs_upline_and_side(directory, resolver):
    await _create(directory, "ROOT", "NEW")
    with pytest.raises(InvalidPlacementRequestError):
        await resolver.place("NEW", explicit_upline="ROOT")
    with pytest.raises(InvalidPlacementRequestError):
        await resolver.place("NEW", explicit_side=Side.LEFT)


async def test_manual_placement_under_self_rejected(directory, resolver):
    await _create(directory, "NEW")
    with pytest.raises(InvalidPlacementRequestError):
        await resolver.place("NEW", explicit_upline="NEW", explicit_side=Side.LEFT)


async def test_member_is_placed_only_once(directory, resolver):
    await _create(directory, "ROOT", "NEW")
    await resolver.place("NEW", referrer_code="ROOT")

    with pytest.raises(AlreadyPlacedError):
        await resolver.place("NEW", explicit_upline="ROOT", explicit_side=Side.RIGHT)


async def test_unknown_member_cannot_be_placed(resolver):
    with pytest.raises(MemberNotFoundError):
        await resolver.place("NOPE", referrer_code="ROOT")


async def test_no_referrer_means_no_placement(directory, resolver):
    await _create(directory, "NEW")
    assert await resolver.place("NEW") is None
    assert (await directory.get("NEW")).upline_code is None


async def test_unknown_referrer_means_no_placement(directory, resolver):
    await _create(directory, "NEW")
    assert await resolver.place("NEW", referrer_code="GHOST") is None


async def test_automatic_placement_is_left_first(directory, resolver):
    await _create(directory, "ROOT", "A", "B", "C", "D", "E")

    placements = [await resolver.place(code, referrer_code="ROOT")
                  for code in ("A", "B", "C", "D", "E")]

    assert placements == [
        Placement("ROOT", Side.LEFT),
        Placement("ROOT", Side.RIGHT),
        Placement("A", Side.LEFT),
        Placement("A", Side.RIGHT),
        Placement("C", Side.LEFT),
    ]


async def test_automatic_placement_searches_from_referrer(directory, resolver):
    await _create(directory, "ROOT", "A", "B", "NEW")
    await resolver.place("A", referrer_code="ROOT")
    await resolver.place("B", referrer_code="ROOT")

    assert await resolver.place("NEW", referrer_code="B") == Placement("B", Side.LEFT)


async def test_automatic_placement_respects_depth_bound(directory, settings, resolver):
    await _create(directory, "ROOT", "A", "B", "C", "D", "NEW")
    for code in ("A", "B", "C", "D"):
        await resolver.place(code, referrer_code="ROOT")

    # ROOT and A are full; B's open slot is never reached under a bound of 1
    shallow = PlacementResolver(directory, settings.model_copy(update={"max_tree_depth": 1}))
    with pytest.raises(MaxDepthExceededError):
        await shallow.place("NEW", referrer_code="ROOT")
    assert (await directory.get("NEW")).upline_code is None
