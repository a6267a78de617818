"""Network Schemas — summary, team tree, audit, reconciliation and propagation responses."""

from decimal import Decimal

from pydantic import BaseModel

from binary_network.core.domain_types import PropagationReport
from binary_network.schemas.member import MemberResponse, PairCreditResponse
from binary_network.services.network_reports import (
    AuditReport, NetworkSummary, ReconciliationResult, TeamNode,
)


class LegCountsResponse(BaseModel):
    left: int
    right: int
    pairs: int


class NetworkSummaryResponse(BaseModel):
    member: MemberResponse
    live_counts: LegCountsResponse
    is_consistent: bool
    recent_credits: list[PairCreditResponse]

    @classmethod
    def from_summary(cls, summary: NetworkSummary) -> "NetworkSummaryResponse":
        live = summary.live_counts
        return cls(
            member=MemberResponse.from_node(summary.member),
            live_counts=LegCountsResponse(
                left=live.left, right=live.right, pairs=live.pairs,
            ),
            is_consistent=summary.is_consistent,
            recent_credits=[
                PairCreditResponse.from_credit(c) for c in summary.recent_credits
            ],
        )


class TeamNodeResponse(BaseModel):
    """One node of the nested left/right team tree."""
    referral_code: str
    name: str
    left_count: int
    right_count: int
    pairs_count: int
    left: "TeamNodeResponse | None" = None
    right: "TeamNodeResponse | None" = None

    @classmethod
    def from_team_node(cls, node: TeamNode | None) -> "TeamNodeResponse | None":
        if node is None:
            return None
        return cls(
            referral_code=node.member.referral_code,
            name=node.member.name,
            left_count=node.member.left_count,
            right_count=node.member.right_count,
            pairs_count=node.member.pairs_count,
            left=cls.from_team_node(node.left),
            right=cls.from_team_node(node.right),
        )


class AuditIssueResponse(BaseModel):
    issue_type: str
    member_code: str
    detail: str
    related_code: str | None = None


class AuditResponse(BaseModel):
    members_scanned: int
    is_healthy: bool
    issues: list[AuditIssueResponse]

    @classmethod
    def from_report(cls, report: AuditReport) -> "AuditResponse":
        return cls(
            members_scanned=report.members_scanned,
            is_healthy=report.is_healthy,
            issues=[
                AuditIssueResponse(
                    issue_type=issue.issue_type.value,
                    member_code=issue.member_code,
                    detail=issue.detail,
                    related_code=issue.related_code,
                )
                for issue in report.issues
            ],
        )


class ReconciliationResponse(BaseModel):
    member: MemberResponse
    credit: PairCreditResponse | None = None

    @classmethod
    def from_result(cls, result: ReconciliationResult) -> "ReconciliationResponse":
        return cls(
            member=MemberResponse.from_node(result.member),
            credit=(
                PairCreditResponse.from_credit(result.credit)
                if result.credit else None
            ),
        )


class PropagationReportResponse(BaseModel):
    event_code: str
    state: str
    ancestors_visited: list[str]
    credits: list[PairCreditResponse]
    total_credited: Decimal

    @classmethod
    def from_report(cls, report: PropagationReport) -> "PropagationReportResponse":
        return cls(
            event_code=report.event_code,
            state=report.state.value,
            ancestors_visited=report.ancestors_visited,
            credits=[PairCreditResponse.from_credit(c) for c in report.credits],
            total_credited=report.total_credited,
        )
