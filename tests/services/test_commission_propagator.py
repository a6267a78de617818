"""Commission Propagator — verifies pair crediting along the ancestor chain.

Invariants:
    - A registration completing a pair credits exactly pair_bonus_rate, once
    - Replaying a completed event credits nothing
    - Version conflicts are retried at the same ancestor; exhaustion names it
    - Cycles and the depth bound fail the event without retrying
"""

from decimal import Decimal

import pytest
from sqlalchemy import update

from binary_network.core.domain_types import PropagationReport, PropagationState, Side
from binary_network.core.errors import (
    ConcurrentUpdateConflictError, CycleDetectedError, MaxDepthExceededError,
)
from binary_network.models.member import Member
from binary_network.services.commission_propagator import CommissionPropagator
from binary_network.services.network_aggregator import NetworkAggregator


async def test_registration_scenario(register, directory):
    await register("A")

    b = await register("B", referrer="A")
    assert (b.placement.parent_code, b.placement.side) == ("A", Side.LEFT)
    assert b.propagation.credits == []

    c = await register("C", referrer="A")
    assert (c.placement.parent_code, c.placement.side) == ("A", Side.RIGHT)
    [credit] = c.propagation.credits
    assert credit.member_code == "A"
    assert credit.new_pairs == 1
    assert credit.amount == Decimal("400.00")

    d = await register("D", upline="B", side=Side.LEFT)
    assert d.propagation.ancestors_visited == ["B", "A"]
    assert d.propagation.credits == []

    a = await directory.get("A")
    assert (a.left_count, a.right_count, a.pairs_count) == (2, 1, 1)
    assert a.promotional_income == Decimal("400.00")
    assert a.total_income == Decimal("400.00")
    b_node = await directory.get("B")
    assert (b_node.left_count, b_node.right_count, b_node.pairs_count) == (1, 0, 0)


async def test_pair_completed_deep_in_tree_credits_each_ancestor(register, directory):
    await register("ROOT")
    for code, upline, side in (
        ("A", "ROOT", Side.LEFT), ("B", "ROOT", Side.RIGHT),
        ("C", "A", Side.LEFT), ("D", "A", Side.RIGHT),
        ("E", "B", Side.LEFT), ("F", "B", Side.RIGHT),
    ):
        await register(code, upline=upline, side=side)

    root = await directory.get("ROOT")
    assert (root.left_count, root.right_count, root.pairs_count) == (3, 3, 3)
    assert root.total_income == Decimal("1200.00")
    assert (await directory.get("A")).total_income == Decimal("400.00")
    assert (await directory.get("B")).total_income == Decimal("400.00")


async def test_replayed_event_credits_nothing(register, propagator, directory):
    await register("A")
    await register("B", referrer="A")
    await register("C", referrer="A")
    before = await directory.get("A")

    report = await propagator.propagate("C", "A", Side.RIGHT)

    assert report.state is PropagationState.DONE
    assert report.credits == []
    after = await directory.get("A")
    assert after.total_income == before.total_income
    assert after.pairs_count == 1
    assert len(await directory.list_credits("A")) == 1


async def test_conflicting_write_is_retried_at_same_ancestor(
    register, propagator, directory, monkeypatch,
):
    await register("A")
    await register("B", referrer="A")
    await directory.create_member("C", "C")
    await directory.claim_slot("A", Side.RIGHT, "C")

    real_apply = directory.apply_counters
    calls = []

    async def flaky_apply(code, version, counts, pairs, credit=None):
        calls.append(code)
        if len(calls) <= 2:
            return False
        return await real_apply(code, version, counts, pairs, credit)

    monkeypatch.setattr(directory, "apply_counters", flaky_apply)

    report = await propagator.propagate("C", "A", Side.RIGHT)

    assert calls == ["A", "A", "A"]
    assert [c.member_code for c in report.credits] == ["A"]
    assert (await directory.get("A")).total_income == Decimal("400.00")


async def test_conflict_exhaustion_names_ancestor(
    register, directory, aggregator, settings, monkeypatch,
):
    await register("A")
    await directory.create_member("B", "B")
    await directory.claim_slot("A", Side.LEFT, "B")

    async def always_stale(*args, **kwargs):
        return False

    monkeypatch.setattr(directory, "apply_counters", always_stale)
    propagator = CommissionPropagator(
        directory, aggregator, settings.model_copy(update={"conflict_max_retries": 2}),
    )
    report = PropagationReport(event_code="B")

    with pytest.raises(ConcurrentUpdateConflictError) as exc_info:
        await propagator.walk(report, "A", Side.LEFT)

    assert exc_info.value.context.ancestor_code == "A"
    assert exc_info.value.context.event_code == "B"
    assert report.state is PropagationState.FAILED


async def test_cycle_fails_event_without_retry(directory, propagator, db_manager):
    for code in ("P", "Q"):
        await directory.create_member(code, code)
    await directory.claim_slot("P", Side.LEFT, "Q")
    async with db_manager.session() as session:
        await session.execute(
            update(Member).where(Member.referral_code == "Q")
            .values(left_child_code="P"),
        )
        await session.execute(
            update(Member).where(Member.referral_code == "P")
            .values(upline_code="Q"),
        )
        await session.commit()
    report = PropagationReport(event_code="Q")

    with pytest.raises(CycleDetectedError):
        await propagator.walk(report, "P", Side.LEFT)

    assert report.state is PropagationState.FAILED
    assert report.ancestors_visited == ["P"]


async def test_ancestor_walk_depth_bound(register, directory, settings):
    await register("A")
    await register("B", upline="A", side=Side.LEFT)
    await register("C", upline="B", side=Side.LEFT)

    shallow = settings.model_copy(update={"max_tree_depth": 1})
    propagator = CommissionPropagator(
        directory, NetworkAggregator(directory, 1), shallow,
    )

    with pytest.raises(MaxDepthExceededError):
        await propagator.propagate("C", "B", Side.LEFT)
