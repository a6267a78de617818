"""Network Reports — read models and repair entry points over the binary tree.

Invariants:
    - network_summary, team_structure and audit_network never write
    - reconcile_member goes through CommissionPropagator.settle, the same versioned
      unit as propagation, so income only ever increases
    - resume_propagation replays from the member's own upline; settled ancestors
      credit nothing
    - audit_network reports problems and repairs nothing (slots are append-only)

Design Decisions:
    - Audit loads every member once and recounts in memory: one query, no per-member
      round trips
    - team_structure is a display read: a slot pointing at a missing member renders
      as an empty slot instead of failing the whole tree
"""

import logging
from collections import Counter
from dataclasses import dataclass, field

from binary_network.core.domain_types import (
    AuditIssueType, CreditSource, LegCounts, MemberNode, PairCredit,
    PropagationReport, PropagationState, Side,
)
from binary_network.core.errors import (
    CycleDetectedError, ErrorContext, MemberNotFoundError, NetworkError,
    TreeIntegrityError,
)
from binary_network.core.pair_ledger import stored_counts
from binary_network.core.repository_protocols import ReferralDirectory
from binary_network.core.tree_walk import count_legs, side_under
from binary_network.services.commission_propagator import CommissionPropagator
from binary_network.services.network_aggregator import NetworkAggregator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NetworkSummary:
    member: MemberNode
    live_counts: LegCounts
    recent_credits: list[PairCredit]

    @property
    def is_consistent(self) -> bool:
        stored = stored_counts(self.member)
        return stored == self.live_counts and self.member.pairs_count == stored.pairs


@dataclass(frozen=True)
class TeamNode:
    member: MemberNode
    left: "TeamNode | None" = None
    right: "TeamNode | None" = None


@dataclass(frozen=True)
class AuditIssue:
    issue_type: AuditIssueType
    member_code: str
    detail: str
    related_code: str | None = None


@dataclass
class AuditReport:
    members_scanned: int = 0
    issues: list[AuditIssue] = field(default_factory=list)

    @property
    def is_healthy(self) -> bool:
        return not self.issues


@dataclass(frozen=True)
class ReconciliationResult:
    member: MemberNode
    credit: PairCredit | None


class NetworkReports:
    """Dashboard and admin views over the network."""

    def __init__(
        self,
        directory: ReferralDirectory,
        aggregator: NetworkAggregator,
        propagator: CommissionPropagator,
        max_depth: int,
    ):
        self._directory = directory
        self._aggregator = aggregator
        self._propagator = propagator
        self._max_depth = max_depth

    async def get_member(self, referral_code: str) -> MemberNode:
        member = await self._directory.get(referral_code)
        if member is None:
            raise MemberNotFoundError(referral_code)
        return member

    async def network_summary(self, referral_code: str) -> NetworkSummary:
        member = await self.get_member(referral_code)
        live = await self._aggregator.count_subtree(referral_code)
        credits = await self._directory.list_credits(referral_code)
        return NetworkSummary(member=member, live_counts=live, recent_credits=credits)

    async def team_structure(
        self, referral_code: str, max_depth: int = 5,
    ) -> TeamNode:
        """Nested left/right tree down to `max_depth` levels below the member."""
        nodes = await self._directory.load_subtree(referral_code, max_depth)
        if referral_code not in nodes:
            raise MemberNotFoundError(referral_code)
        return self._build_team_node(nodes, referral_code, max_depth, set())

    def _build_team_node(
        self,
        nodes: dict[str, MemberNode],
        code: str,
        remaining_depth: int,
        visited: set[str],
    ) -> TeamNode | None:
        if code in visited:
            raise CycleDetectedError(code)
        visited.add(code)
        member = nodes.get(code)
        if member is None:
            logger.warning(
                f"Team tree references missing member {code}",
                extra={"member_code": code},
            )
            return None

        left = right = None
        if remaining_depth > 0:
            if member.left_child_code:
                left = self._build_team_node(
                    nodes, member.left_child_code, remaining_depth - 1, visited,
                )
            if member.right_child_code:
                right = self._build_team_node(
                    nodes, member.right_child_code, remaining_depth - 1, visited,
                )
        return TeamNode(member=member, left=left, right=right)

    async def audit_network(self) -> AuditReport:
        """Check slot/upline agreement, single occupancy and counters for every member."""
        members = await self._directory.list_members()
        nodes = {m.referral_code: m for m in members}
        report = AuditReport(members_scanned=len(members))

        occupancy = Counter(
            child for m in members for child in m.children()
        )
        for member in members:
            report.issues.extend(self._check_slots(member, nodes, occupancy))
            report.issues.extend(self._check_upline(member, nodes))
            report.issues.extend(self._check_counters(member, nodes))

        if report.issues:
            logger.warning(
                f"Network audit found {len(report.issues)} issue(s) "
                f"across {report.members_scanned} members",
            )
        return report

    def _check_slots(
        self,
        member: MemberNode,
        nodes: dict[str, MemberNode],
        occupancy: Counter,
    ) -> list[AuditIssue]:
        issues = []
        code = member.referral_code
        for side in Side:
            child_code = member.child(side)
            if not child_code:
                continue
            child = nodes.get(child_code)
            if child is None:
                issues.append(AuditIssue(
                    AuditIssueType.ORPHAN_SLOT, code,
                    f"{side.value} slot names missing member '{child_code}'",
                    child_code,
                ))
                continue
            if child.upline_code != code:
                issues.append(AuditIssue(
                    AuditIssueType.UPLINE_MISMATCH, child_code,
                    f"occupies {side.value} slot of '{code}' but names "
                    f"'{child.upline_code}' as upline",
                    code,
                ))
        if occupancy[code] > 1:
            issues.append(AuditIssue(
                AuditIssueType.DUPLICATE_OCCUPANT, code,
                f"occupies {occupancy[code]} slots",
            ))
        return issues

    def _check_upline(
        self, member: MemberNode, nodes: dict[str, MemberNode],
    ) -> list[AuditIssue]:
        if not member.upline_code:
            return []
        upline = nodes.get(member.upline_code)
        if upline is None:
            return [AuditIssue(
                AuditIssueType.ORPHAN_SLOT, member.referral_code,
                f"upline '{member.upline_code}' does not exist",
                member.upline_code,
            )]
        if member.referral_code not in upline.children():
            return [AuditIssue(
                AuditIssueType.UPLINE_MISMATCH, member.referral_code,
                f"names '{upline.referral_code}' as upline but holds none of its slots",
                upline.referral_code,
            )]
        return []

    def _check_counters(
        self, member: MemberNode, nodes: dict[str, MemberNode],
    ) -> list[AuditIssue]:
        code = member.referral_code
        try:
            live = count_legs(nodes, code, self._max_depth)
        except NetworkError as e:
            return [AuditIssue(
                AuditIssueType.UNREADABLE_SUBTREE, code,
                f"recount failed: {e.code}",
            )]

        issues = []
        stored = stored_counts(member)
        if stored != live:
            issues.append(AuditIssue(
                AuditIssueType.COUNTER_DRIFT, code,
                f"stored {stored.left}/{stored.right}, live {live.left}/{live.right}",
            ))
        if member.pairs_count != live.pairs:
            issues.append(AuditIssue(
                AuditIssueType.PAIRS_MISMATCH, code,
                f"{member.pairs_count} pairs credited, {live.pairs} complete",
            ))
        return issues

    async def reconcile_member(self, referral_code: str) -> ReconciliationResult:
        """Recount one member and pay any pairs it is missing."""
        await self.get_member(referral_code)
        _, credit = await self._propagator.settle(
            referral_code, source=CreditSource.RECONCILIATION,
        )
        return ReconciliationResult(
            member=await self.get_member(referral_code), credit=credit,
        )

    async def resume_propagation(self, referral_code: str) -> PropagationReport:
        """Replay the member's registration event from its upline."""
        member = await self.get_member(referral_code)
        if not member.upline_code:
            return PropagationReport(
                event_code=referral_code, state=PropagationState.UNPLACED,
            )
        upline = await self._directory.get(member.upline_code)
        if upline is None:
            raise TreeIntegrityError(
                f"Upline '{member.upline_code}' of '{referral_code}' does not exist",
                "ORPHAN_SLOT",
                ErrorContext(member_code=referral_code),
            )
        side = side_under(upline, referral_code)
        return await self._propagator.propagate(referral_code, upline.referral_code, side)
