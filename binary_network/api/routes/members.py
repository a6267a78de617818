"""Member Routes — registration, member lookup, network views and repair actions.

Invariants:
    - Registration always answers 201 once the member record exists; a rejected or
      failed attachment is described in the body, not in the status code
    - Unknown codes surface as MEMBER_NOT_FOUND (404) via the global handler
    - tree depth is bounded 1..10 by the query validator

Design Decisions:
    - Domain errors are raised, not caught: error_handlers.py owns the envelope
"""

import logging

from fastapi import APIRouter, Depends, Query, status

from binary_network.api.dependencies import get_orchestrator, get_reports
from binary_network.schemas.member import (
    MemberResponse, RegisterMemberRequest, RegistrationResponse,
)
from binary_network.schemas.network import (
    NetworkSummaryResponse,
    PropagationReportResponse,
    ReconciliationResponse,
    TeamNodeResponse,
)
from binary_network.services.network_reports import NetworkReports
from binary_network.services.registration import (
    RegistrationOrchestrator, RegistrationRequest,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/members", tags=["members"])


@router.post(
    "", response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_member(
    body: RegisterMemberRequest,
    orchestrator: RegistrationOrchestrator = Depends(get_orchestrator),
):
    """Create a member, attach it to the tree and propagate pair credits."""
    outcome = await orchestrator.register(RegistrationRequest(
        name=body.name,
        email=body.email,
        referral_code=body.referral_code,
        referrer_code=body.referrer_code,
        upline_code=body.upline_code,
        side=body.side,
    ))
    return RegistrationResponse.from_outcome(outcome)


@router.get("/{referral_code}", response_model=MemberResponse)
async def get_member(
    referral_code: str, reports: NetworkReports = Depends(get_reports),
):
    return MemberResponse.from_node(await reports.get_member(referral_code))


@router.get("/{referral_code}/network", response_model=NetworkSummaryResponse)
async def get_network_summary(
    referral_code: str, reports: NetworkReports = Depends(get_reports),
):
    """Stored counters and income next to a live recount."""
    summary = await reports.network_summary(referral_code)
    return NetworkSummaryResponse.from_summary(summary)


@router.get("/{referral_code}/tree", response_model=TeamNodeResponse)
async def get_team_tree(
    referral_code: str,
    depth: int = Query(5, ge=1, le=10),
    reports: NetworkReports = Depends(get_reports),
):
    tree = await reports.team_structure(referral_code, depth)
    return TeamNodeResponse.from_team_node(tree)


@router.post("/{referral_code}/reconcile", response_model=ReconciliationResponse)
async def reconcile_member(
    referral_code: str, reports: NetworkReports = Depends(get_reports),
):
    """Recount and pay any pairs the member is missing."""
    result = await reports.reconcile_member(referral_code)
    if result.credit is not None:
        logger.info(
            f"Reconciliation paid {result.credit.new_pairs} pair(s) to {referral_code}",
            extra={"member_code": referral_code, "pairs": result.credit.new_pairs},
        )
    return ReconciliationResponse.from_result(result)


@router.post(
    "/{referral_code}/propagation", response_model=PropagationReportResponse,
)
async def resume_propagation(
    referral_code: str, reports: NetworkReports = Depends(get_reports),
):
    """Replay the member's registration event; settled ancestors credit nothing."""
    report = await reports.resume_propagation(referral_code)
    return PropagationReportResponse.from_report(report)
