"""Health & Readiness Probes — liveness and readiness endpoints for container orchestration.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 if the database is unreachable or the
      members table cannot be read (migrations not applied)

Design Decisions:
    - Separate liveness/readiness: liveness restarts, readiness removes from the
      load balancer
"""

import logging
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import select

import binary_network.infrastructure.database as database
from binary_network.core.errors import DatabaseError
from binary_network.models.member import Member

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "binary-network-api",
        "version": "1.0.0",
    }


async def _members_table_ready(manager: database.DatabaseSessionManager) -> bool:
    try:
        async with manager.session() as db:
            await db.execute(select(Member.referral_code).limit(1))
        return True
    except DatabaseError as e:
        logger.error(f"Members table check failed: {e.message}")
        return False


@router.get("/ready")
async def readiness_check():
    """Readiness probe — database connectivity plus the member store schema."""
    manager = database.db_manager
    db_ok = await manager.health_check() if manager else False
    if not db_ok:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "database_unavailable",
            },
        )
    if not await _members_table_ready(manager):
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "schema_missing",
            },
        )
    return {
        "status": "ready",
        "checks": {"database": "healthy", "members_table": "healthy"},
    }
