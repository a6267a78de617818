"""Registration Orchestrator — create the member, place it, propagate, report.

Invariants:
    - Malformed manual placements (upline without side, upline equal to the
      supplied code) are rejected before anything is written
    - Referrer is resolved before anything is written; an unknown referrer is dropped
      (member becomes a root) unless strict_referrer is set
    - The member record is created first and never deleted, whatever happens next
    - A placement rejection leaves an unplaced root and is reported, not raised,
      unless strict_placement is set
    - A propagation failure is reported with the partial PropagationReport; the
      event can be resumed later (NetworkReports.resume_propagation)
    - The returned member is re-read after propagation

Design Decisions:
    - Dataclass request/outcome over pydantic: the HTTP layer owns validation,
      the orchestrator is callable from any account system
"""

import logging
import random
from dataclasses import dataclass

from binary_network.config import Settings
from binary_network.core.domain_types import (
    MemberNode, Placement, PropagationReport, PropagationState, Side,
)
from binary_network.core.errors import (
    DuplicateReferralCodeError,
    ErrorContext,
    InvalidPlacementRequestError,
    NetworkError,
    PLACEMENT_REJECTION_CODES,
    ReferrerNotFoundError,
)
from binary_network.core.referral_codes import (
    build_referral_code, generate_member_number, normalize_code,
)
from binary_network.core.repository_protocols import ReferralDirectory
from binary_network.services.commission_propagator import CommissionPropagator
from binary_network.services.placement_resolver import PlacementResolver

logger = logging.getLogger(__name__)

CODE_GENERATION_ATTEMPTS = 10


@dataclass(frozen=True)
class RegistrationRequest:
    name: str
    email: str | None = None
    referral_code: str | None = None
    referrer_code: str | None = None
    upline_code: str | None = None
    side: Side | None = None


@dataclass
class RegistrationOutcome:
    member: MemberNode
    placement: Placement | None = None
    placement_error: NetworkError | None = None
    propagation: PropagationReport | None = None
    propagation_error: NetworkError | None = None

    @property
    def state(self) -> PropagationState:
        if self.placement is None:
            return PropagationState.UNPLACED
        if self.propagation is None:
            return PropagationState.PLACED
        return self.propagation.state


class RegistrationOrchestrator:
    """Create bare member -> place -> propagate -> final record."""

    def __init__(
        self,
        directory: ReferralDirectory,
        resolver: PlacementResolver,
        propagator: CommissionPropagator,
        settings: Settings,
        rng: random.Random | None = None,
    ):
        self._directory = directory
        self._resolver = resolver
        self._propagator = propagator
        self._strict_referrer = settings.strict_referrer
        self._strict_placement = settings.strict_placement
        self._rng = rng

    async def register(self, request: RegistrationRequest) -> RegistrationOutcome:
        upline_code = normalize_code(request.upline_code)
        if (upline_code is None) != (request.side is None):
            raise InvalidPlacementRequestError(
                "Manual placement requires both an upline and a side",
            )
        if upline_code is not None and upline_code == normalize_code(request.referral_code):
            raise InvalidPlacementRequestError(
                "A member cannot be placed under itself",
                ErrorContext(member_code=upline_code),
            )

        referrer_code = await self._resolve_referrer(request.referrer_code)
        member = await self._create_member(request, referrer_code)
        code = member.referral_code
        if referrer_code:
            await self._directory.increment_referral_count(referrer_code)

        outcome = RegistrationOutcome(member=member)
        try:
            outcome.placement = await self._resolver.place(
                code, referrer_code, upline_code, request.side,
            )
        except NetworkError as e:
            if self._strict_placement or e.code not in PLACEMENT_REJECTION_CODES:
                raise
            outcome.placement_error = e
            logger.warning(
                f"Placement of {code} rejected: {e.message}",
                extra={"member_code": code, "error_code": e.code},
            )

        if outcome.placement is not None:
            outcome.propagation = PropagationReport(event_code=code)
            try:
                await self._propagator.walk(
                    outcome.propagation,
                    outcome.placement.parent_code,
                    outcome.placement.side,
                )
            except NetworkError as e:
                outcome.propagation_error = e

        outcome.member = await self._directory.get(code) or member
        return outcome

    async def _resolve_referrer(self, referrer_code: str | None) -> str | None:
        referrer_code = normalize_code(referrer_code)
        if referrer_code is None:
            return None
        if await self._directory.get(referrer_code) is not None:
            return referrer_code
        if self._strict_referrer:
            raise ReferrerNotFoundError(referrer_code)
        logger.info(
            f"Referrer {referrer_code} not found, registering as root",
            extra={"member_code": referrer_code},
        )
        return None

    async def _create_member(
        self, request: RegistrationRequest, referrer_code: str | None,
    ) -> MemberNode:
        supplied = normalize_code(request.referral_code)
        if supplied is not None:
            return await self._directory.create_member(
                supplied, request.name, request.email, referrer_code,
            )

        for attempt in range(1, CODE_GENERATION_ATTEMPTS + 1):
            code = build_referral_code(
                request.name, generate_member_number(self._rng),
            )
            try:
                return await self._directory.create_member(
                    code, request.name, request.email, referrer_code,
                )
            except DuplicateReferralCodeError:
                logger.info(
                    f"Generated code {code} already taken, retrying",
                    extra={"member_code": code, "attempt": attempt},
                )
        raise DuplicateReferralCodeError(
            build_referral_code(request.name, "*"),
            ErrorContext(attempt=CODE_GENERATION_ATTEMPTS),
        )
