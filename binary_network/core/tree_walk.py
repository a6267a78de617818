"""Tree Walks — pure traversals over a flat code -> MemberNode snapshot.

Invariants:
    - Functions never do IO; the shell loads the snapshot (directory.load_subtree)
    - Every walk carries an explicit visited set and depth counter
    - A code reached twice raises CycleDetectedError; going past max_depth raises
      MaxDepthExceededError; a slot naming a missing member raises TreeIntegrityError
    - Automatic placement is pre-order and left-biased: a node's left slot, then its
      right slot, then the whole left subtree, then the whole right subtree

Design Decisions:
    - Explicit stacks over recursion: depth is a parameter, not the interpreter's
      call stack, so the bound is testable and independent of recursion limits
    - Recount walks only slot pointers, never descendants' cached counters
"""

from collections.abc import Mapping

from binary_network.core.domain_types import LegCounts, MemberNode, Placement, Side
from binary_network.core.errors import (
    CycleDetectedError,
    MaxDepthExceededError,
    MemberNotFoundError,
    TreeIntegrityError,
)


def find_open_slot(
    nodes: Mapping[str, MemberNode], start_code: str, max_depth: int,
) -> Placement:
    """First empty slot under start_code in left-biased pre-order."""
    if start_code not in nodes:
        raise MemberNotFoundError(start_code)

    visited: set[str] = set()
    stack: list[tuple[str, int]] = [(start_code, 0)]
    while stack:
        code, depth = stack.pop()
        node = _visit(nodes, code, visited)

        side = node.open_side()
        if side is not None:
            return Placement(parent_code=node.referral_code, side=side)

        if depth >= max_depth:
            raise MaxDepthExceededError(max_depth, start_code)
        # right pushed first so the left subtree is exhausted before it
        stack.append((node.right_child_code, depth + 1))
        stack.append((node.left_child_code, depth + 1))

    raise TreeIntegrityError(f"No open slot found under '{start_code}'")


def count_legs(
    nodes: Mapping[str, MemberNode], code: str, max_depth: int,
) -> LegCounts:
    """Members under the left and right child of `code` (child included)."""
    root = nodes.get(code)
    if root is None:
        raise MemberNotFoundError(code)

    visited = {code}
    left = _count_leg(nodes, root.left_child_code, code, max_depth, visited)
    right = _count_leg(nodes, root.right_child_code, code, max_depth, visited)
    return LegCounts(left=left, right=right)


def side_under(upline: MemberNode, child_code: str) -> Side:
    """Which slot of `upline` holds `child_code`."""
    if upline.left_child_code == child_code:
        return Side.LEFT
    if upline.right_child_code == child_code:
        return Side.RIGHT
    raise TreeIntegrityError(
        f"Member '{child_code}' names '{upline.referral_code}' as upline "
        f"but occupies neither of its slots",
    )


def _count_leg(
    nodes: Mapping[str, MemberNode],
    start_code: str | None,
    root_code: str,
    max_depth: int,
    visited: set[str],
) -> int:
    if not start_code:
        return 0
    if max_depth < 1:
        raise MaxDepthExceededError(max_depth, root_code)

    total = 0
    stack: list[tuple[str, int]] = [(start_code, 1)]
    while stack:
        code, depth = stack.pop()
        node = _visit(nodes, code, visited)
        total += 1
        for child in node.children():
            if depth >= max_depth:
                raise MaxDepthExceededError(max_depth, root_code)
            stack.append((child, depth + 1))
    return total


def _visit(
    nodes: Mapping[str, MemberNode], code: str, visited: set[str],
) -> MemberNode:
    if code in visited:
        raise CycleDetectedError(code)
    visited.add(code)
    node = nodes.get(code)
    if node is None:
        raise TreeIntegrityError(
            f"Slot references missing member '{code}'", "ORPHAN_SLOT",
        )
    return node
