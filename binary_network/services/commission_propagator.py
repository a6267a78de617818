"""Commission Propagator — bottom-up ancestor walk crediting newly completed pairs.

Invariants:
    - Ancestors are settled strictly bottom-up, one versioned write each; nothing is
      held across two ancestors
    - Per ancestor: optimistic increment, live recount (which wins), pairs plan,
      then one apply_counters call; a version conflict re-reads and retries this
      ancestor only, with exponential backoff and ±25% jitter
    - New pairs are min(left, right) - stored pairs_count, so replaying an event
      that already completed credits nothing
    - Walk is bounded by max_tree_depth ancestors and guarded by a visited set;
      integrity failures are fatal for the event and never retried

Design Decisions:
    - Idempotency from the stored pairs_count, not from the ledger: a replay that
      finds the counters settled writes no credit, while a genuinely missing pair
      is still paid on resume
    - walk() fills a caller-owned PropagationReport so a failed event still shows
      which ancestors were settled before the failure
"""

import asyncio
import logging
import random

from binary_network.config import Settings
from binary_network.core.domain_types import (
    CreditSource, MemberNode, PairCredit, PropagationReport, PropagationState, Side,
)
from binary_network.core.errors import (
    ConcurrentUpdateConflictError,
    CycleDetectedError,
    ErrorContext,
    MaxDepthExceededError,
    MemberNotFoundError,
    NetworkError,
    TreeIntegrityError,
)
from binary_network.core.pair_ledger import (
    is_pair_regression, optimistic_counts, plan_pair_credit,
)
from binary_network.core.repository_protocols import ReferralDirectory
from binary_network.core.tree_walk import side_under
from binary_network.services.network_aggregator import NetworkAggregator

logger = logging.getLogger(__name__)


class CommissionPropagator:
    """Settles counters and pair income along the ancestor chain of a placement."""

    def __init__(
        self,
        directory: ReferralDirectory,
        aggregator: NetworkAggregator,
        settings: Settings,
    ):
        self._directory = directory
        self._aggregator = aggregator
        self._rate = settings.pair_bonus_rate
        self._max_depth = settings.max_tree_depth
        self._max_retries = settings.conflict_max_retries
        self.base_delay_ms = settings.conflict_base_delay_ms
        self.max_delay_ms = settings.conflict_max_delay_ms

    async def propagate(
        self, new_code: str, parent_code: str, side: Side,
    ) -> PropagationReport:
        """Run one registration event from the freshly filled slot upward."""
        report = PropagationReport(event_code=new_code)
        await self.walk(report, parent_code, side)
        return report

    async def walk(
        self, report: PropagationReport, parent_code: str, side: Side,
    ) -> None:
        """Fill `report` in place. On failure its state is FAILED and the error propagates."""
        report.state = PropagationState.PROPAGATING
        try:
            await self._walk(report, parent_code, side)
        except NetworkError as e:
            report.state = PropagationState.FAILED
            logger.error(
                f"Propagation for {report.event_code} failed: {e.message}",
                extra={"event_code": report.event_code, "error_code": e.code,
                       "ancestor_code": e.context.ancestor_code},
            )
            raise
        report.state = PropagationState.DONE
        logger.info(
            f"Propagation for {report.event_code} done: "
            f"{len(report.ancestors_visited)} ancestors, "
            f"{report.total_credited} credited",
            extra={"event_code": report.event_code,
                   "amount": str(report.total_credited)},
        )

    async def _walk(
        self, report: PropagationReport, parent_code: str, side: Side,
    ) -> None:
        event_code = report.event_code
        visited = {event_code}
        current_code: str | None = parent_code
        current_side = side

        while current_code:
            if current_code in visited:
                raise CycleDetectedError(
                    current_code, ErrorContext(event_code=event_code),
                )
            visited.add(current_code)
            if len(report.ancestors_visited) >= self._max_depth:
                raise MaxDepthExceededError(
                    self._max_depth, parent_code,
                    ErrorContext(event_code=event_code, ancestor_code=current_code),
                )
            report.ancestors_visited.append(current_code)

            node, credit = await self.settle(
                current_code, current_side, event_code=event_code,
            )
            if credit is not None:
                report.credits.append(credit)

            if not node.upline_code:
                return
            upline = await self._directory.get(node.upline_code)
            if upline is None:
                raise TreeIntegrityError(
                    f"Upline '{node.upline_code}' of '{current_code}' does not exist",
                    "ORPHAN_SLOT",
                    ErrorContext(event_code=event_code, ancestor_code=current_code),
                )
            current_side = side_under(upline, current_code)
            current_code = upline.referral_code

    async def settle(
        self,
        referral_code: str,
        side: Side | None = None,
        event_code: str | None = None,
        source: CreditSource = CreditSource.REGISTRATION,
    ) -> tuple[MemberNode, PairCredit | None]:
        """Recount one member and credit any newly completed pairs.

        `side` is the leg that just grew; it only feeds the drift check, the
        recount is always what gets written. Returns the snapshot the successful
        write was based on, and the credit (None when no pair completed).
        """
        for attempt in range(self._max_retries + 1):
            node = await self._directory.get(referral_code)
            if node is None:
                raise MemberNotFoundError(
                    referral_code, ErrorContext(event_code=event_code),
                )

            counts = await self._aggregator.count_subtree(referral_code)
            if side is not None:
                expected = optimistic_counts(node, side)
                if expected != counts:
                    logger.info(
                        f"Counter drift at {referral_code}: expected "
                        f"{expected.left}/{expected.right}, "
                        f"recounted {counts.left}/{counts.right}",
                        extra={"ancestor_code": referral_code,
                               "event_code": event_code},
                    )
            if is_pair_regression(node.pairs_count, counts):
                logger.warning(
                    f"Recount at {referral_code} shows {counts.pairs} pairs, "
                    f"{node.pairs_count} already credited",
                    extra={"ancestor_code": referral_code, "event_code": event_code,
                           "pairs": counts.pairs},
                )

            plan = plan_pair_credit(node.pairs_count, counts, self._rate)
            credit = None
            if plan.credits_income:
                credit = PairCredit(
                    member_code=referral_code,
                    new_pairs=plan.new_pairs,
                    total_pairs=plan.total_pairs,
                    amount=plan.amount,
                    event_code=event_code,
                    source=source,
                )

            applied = await self._directory.apply_counters(
                referral_code, node.version, counts, plan.total_pairs, credit,
            )
            if applied:
                if credit is not None:
                    logger.info(
                        f"Credited {credit.new_pairs} pair(s) to {referral_code}: "
                        f"{credit.amount}",
                        extra={"ancestor_code": referral_code,
                               "event_code": event_code,
                               "pairs": credit.new_pairs,
                               "amount": str(credit.amount)},
                    )
                return node, credit

            if attempt < self._max_retries:
                delay = self._backoff(attempt)
                logger.warning(
                    f"Version conflict at {referral_code}, retry after {delay}ms",
                    extra={"ancestor_code": referral_code, "event_code": event_code,
                           "attempt": attempt + 1},
                )
                await asyncio.sleep(delay / 1000)

        raise ConcurrentUpdateConflictError(
            f"Counter update at '{referral_code}' kept conflicting after "
            f"{self._max_retries} retries",
            ErrorContext(
                ancestor_code=referral_code, event_code=event_code,
                attempt=self._max_retries,
            ),
        )

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311
