"""Pair Ledger Math — verifies new-pair arithmetic, quantization and monotonicity."""

from decimal import Decimal

from binary_network.core.domain_types import LegCounts, MemberNode, Side
from binary_network.core.pair_ledger import (
    is_pair_regression, optimistic_counts, plan_pair_credit, stored_counts,
)

RATE = Decimal("400.00")


def test_first_balanced_pair_credits_one_bonus():
    plan = plan_pair_credit(0, LegCounts(left=1, right=1), RATE)
    assert plan.new_pairs == 1
    assert plan.total_pairs == 1
    assert plan.amount == Decimal("400.00")
    assert plan.credits_income


def test_unbalanced_growth_credits_nothing():
    plan = plan_pair_credit(1, LegCounts(left=5, right=1), RATE)
    assert plan.new_pairs == 0
    assert plan.amount == Decimal("0.00")
    assert not plan.credits_income


def test_several_pairs_completed_at_once():
    # recount reveals two legs that grew while this ancestor was not updated
    plan = plan_pair_credit(1, LegCounts(left=4, right=3), RATE)
    assert plan.new_pairs == 2
    assert plan.total_pairs == 3
    assert plan.amount == Decimal("800.00")


def test_replay_after_settlement_is_noop():
    plan = plan_pair_credit(3, LegCounts(left=3, right=3), RATE)
    assert plan.new_pairs == 0
    assert plan.total_pairs == 3


def test_pairs_never_decrease_on_regressed_recount():
    counts = LegCounts(left=1, right=1)
    plan = plan_pair_credit(2, counts, RATE)
    assert plan.total_pairs == 2
    assert plan.new_pairs == 0
    assert is_pair_regression(2, counts)
    assert not is_pair_regression(1, counts)


def test_amount_quantized_to_cents():
    plan = plan_pair_credit(0, LegCounts(left=3, right=3), Decimal("33.335"))
    assert plan.amount == Decimal("100.01")


def test_optimistic_counts_increment_filled_side_only():
    node = MemberNode(referral_code="R", left_count=2, right_count=1)
    assert optimistic_counts(node, Side.LEFT) == LegCounts(left=3, right=1)
    assert optimistic_counts(node, Side.RIGHT) == LegCounts(left=2, right=2)
    assert stored_counts(node) == LegCounts(left=2, right=1)
