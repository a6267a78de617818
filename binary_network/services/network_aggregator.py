"""Network Aggregator — live left/right leg counts for one member.

Invariants:
    - Side-effect free: reads the directory, never writes
    - Counts come from slot pointers only; cached descendant counters are ignored
    - Bounded by max_depth and cycle-guarded (core/tree_walk.count_legs)
"""

import logging

from binary_network.core.domain_types import LegCounts
from binary_network.core.repository_protocols import ReferralDirectory
from binary_network.core.tree_walk import count_legs

logger = logging.getLogger(__name__)


class NetworkAggregator:
    """Recounts a member's legs from a fresh subtree snapshot."""

    def __init__(self, directory: ReferralDirectory, max_depth: int):
        self._directory = directory
        self._max_depth = max_depth

    async def count_subtree(self, referral_code: str) -> LegCounts:
        nodes = await self._directory.load_subtree(referral_code, self._max_depth)
        return count_legs(nodes, referral_code, self._max_depth)
