"""Tree and ledger invariant checks.

Each check appends human-readable violations to an error list; an empty
list means the arena is healthy. Used by the service audit and the tests.
"""

from __future__ import annotations

from mlmsim.models.participant import Side
from mlmsim.placement.engine import PlacementEngine


def check_tree_shape(engine: PlacementEngine, errors: list[str]) -> None:
    """Single root; every non-root claimed by exactly one parent slot; no cycles."""
    roots = [p for p in engine.participants() if p.is_root]
    if len(roots) != 1:
        errors.append(f"expected exactly one root, found {len(roots)}")

    claims: dict[str, list[str]] = {}
    for node in engine.participants():
        for side in (Side.LEFT, Side.RIGHT):
            child_id = node.child_id(side)
            if child_id is None:
                continue
            claims.setdefault(child_id, []).append(f"{node.participant_id}.{side.value}")
            child = engine.get(child_id)
            if child is None:
                errors.append(f"{node.participant_id}.{side.value} points at unknown {child_id}")
                continue
            if child.parent_id != node.participant_id or child.side != side:
                errors.append(
                    f"{child_id} parent link ({child.parent_id}, {child.side}) "
                    f"disagrees with {node.participant_id}.{side.value}"
                )
            if child.depth != node.depth + 1:
                errors.append(f"{child_id} depth {child.depth} != parent depth + 1")

    for node in engine.participants():
        if node.is_root:
            if node.participant_id in claims:
                errors.append(f"root {node.participant_id} is claimed as a child")
            continue
        owners = claims.get(node.participant_id, [])
        if len(owners) != 1:
            errors.append(
                f"{node.participant_id} claimed by {len(owners)} slots: {owners}"
            )

    reached = sum(1 for _ in engine.iter_bfs())
    if reached != engine.count:
        errors.append(f"BFS from root reached {reached} of {engine.count} participants")


def check_ledger(engine: PlacementEngine, errors: list[str]) -> None:
    """Earnings totals, pair bookkeeping and volume consistency."""
    for node in engine.participants():
        pid = node.participant_id
        earnings = node.earnings
        if earnings.total != earnings.direct_bonus + earnings.pair_bonus:
            errors.append(f"{pid} total {earnings.total} != direct + pair")
        if node.pair_count != len(node.paid_pairs):
            errors.append(
                f"{pid} pair_count {node.pair_count} != {len(node.paid_pairs)} paid pairs"
            )
        expected_children = sum(1 for c in (node.left_id, node.right_id) if c is not None)
        if node.direct_referral_count != expected_children:
            errors.append(
                f"{pid} direct_referral_count {node.direct_referral_count} "
                f"!= {expected_children} placed children"
            )
        for key in node.paid_pairs:
            if key != f"{node.left_id}-{node.right_id}":
                errors.append(f"{pid} paid pair {key} does not match its children")
        if node.volume_pairs != min(node.left_volume, node.right_volume):
            errors.append(f"{pid} volume_pairs is stale")
        if node.activated_utc is not None and not node.active:
            errors.append(f"{pid} has an activation time but is inactive")


def verify(engine: PlacementEngine) -> list[str]:
    errors: list[str] = []
    check_tree_shape(engine, errors)
    check_ledger(engine, errors)
    return errors
