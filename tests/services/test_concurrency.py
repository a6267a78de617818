"""Concurrent Registrations — verifies slot exclusivity and quiescent counter invariants
when many registrations hit one referrer at once.

Invariants:
    - N concurrent automatic placements occupy N distinct slots
    - Every member occupies at most one slot and agrees with its upline
    - At quiescence pairs_count == min(left_count, right_count) for every member
    - Total income equals the number of credited pairs times the bonus rate
"""

import asyncio
from decimal import Decimal

from binary_network.core.domain_types import PropagationState
from binary_network.services.registration import RegistrationRequest

CONCURRENT_REGISTRATIONS = 8


async def test_concurrent_placements_get_distinct_slots(
    orchestrator, register, directory, reports, settings,
):
    await register("ROOT")

    outcomes = await asyncio.gather(*[
        orchestrator.register(RegistrationRequest(
            name=f"Member {i}", referral_code=f"M{i:03d}", referrer_code="ROOT",
        ))
        for i in range(CONCURRENT_REGISTRATIONS)
    ])

    placements = {(o.placement.parent_code, o.placement.side) for o in outcomes}
    assert len(placements) == CONCURRENT_REGISTRATIONS
    assert all(o.state is PropagationState.DONE for o in outcomes)

    audit = await reports.audit_network()
    assert audit.is_healthy, audit.issues

    members = await directory.list_members()
    occupants = [child for m in members for child in m.children()]
    assert len(occupants) == len(set(occupants)) == CONCURRENT_REGISTRATIONS
    for member in members:
        assert member.pairs_count == min(member.left_count, member.right_count)
        assert member.total_income == settings.pair_bonus_rate * member.pairs_count

    root = await directory.get("ROOT")
    assert root.left_count + root.right_count == CONCURRENT_REGISTRATIONS


async def test_concurrent_registrations_credit_each_pair_once(
    orchestrator, register, directory,
):
    await register("ROOT")
    await register("L", referrer="ROOT")

    # every one of these lands in ROOT's subtree; ROOT's right slot goes first
    outcomes = await asyncio.gather(*[
        orchestrator.register(RegistrationRequest(
            name=f"Member {i}", referral_code=f"N{i:03d}", referrer_code="ROOT",
        ))
        for i in range(4)
    ])
    assert all(o.propagation_error is None for o in outcomes)

    credits = await directory.list_credits("ROOT", limit=100)
    root = await directory.get("ROOT")
    assert sum(c.new_pairs for c in credits) == root.pairs_count
    assert sum((c.amount for c in credits), Decimal("0")) == root.total_income
