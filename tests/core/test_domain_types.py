"""Domain Types — verifies snapshot helpers and enum values."""

from decimal import Decimal

from binary_network.core.domain_types import (
    CreditSource, LegCounts, MemberNode, PairCredit, PropagationReport,
    PropagationState, Side,
)


def test_side_opposite():
    assert Side.LEFT.opposite is Side.RIGHT
    assert Side.RIGHT.opposite is Side.LEFT
    assert Side("left") is Side.LEFT


def test_open_side_is_left_biased():
    assert MemberNode(referral_code="R").open_side() is Side.LEFT
    assert MemberNode(referral_code="R", left_child_code="A").open_side() is Side.RIGHT
    assert MemberNode(referral_code="R", right_child_code="B").open_side() is Side.LEFT
    full = MemberNode(referral_code="R", left_child_code="A", right_child_code="B")
    assert full.open_side() is None
    assert full.children() == ("A", "B")


def test_is_placed_follows_upline():
    assert not MemberNode(referral_code="R").is_placed
    assert MemberNode(referral_code="A", upline_code="R").is_placed


def test_leg_counts_pairs_is_weaker_leg():
    assert LegCounts(left=5, right=2).pairs == 2
    assert LegCounts().pairs == 0


def test_report_totals_credits():
    report = PropagationReport(event_code="NEW100001")
    assert report.state is PropagationState.PLACED
    report.credits.append(PairCredit("A", 1, 1, Decimal("400.00")))
    report.credits.append(PairCredit("B", 2, 3, Decimal("800.00")))
    assert report.total_credited == Decimal("1200.00")
    assert report.credits[0].source is CreditSource.REGISTRATION
