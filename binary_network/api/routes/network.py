"""Network Routes — whole-tree administrative views."""

from fastapi import APIRouter, Depends

from binary_network.api.dependencies import get_reports
from binary_network.schemas.network import AuditResponse
from binary_network.services.network_reports import NetworkReports

router = APIRouter(prefix="/api/v1/network", tags=["network"])


@router.get("/audit", response_model=AuditResponse)
async def audit_network(reports: NetworkReports = Depends(get_reports)):
    """Read-only invariant scan over every member."""
    return AuditResponse.from_report(await reports.audit_network())
