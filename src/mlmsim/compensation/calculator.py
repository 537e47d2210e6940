"""Compensation calculator — pairing bonus and subtree volumes.

Two separate responsibilities:

check_pair(node)
    The only place a pairing bonus is ever granted. A node qualifies when
    both child slots are filled and both children are active. The pair is
    keyed "<left_id>-<right_id>" (left first) and paid at most once: the
    key goes into node.paid_pairs on payment and a second check is a
    no-op. Child slots never change once filled, so a key identifies one
    sibling pair forever.

recompute() / recompute_subtree(node)
    Post-order pass refreshing left_volume / right_volume (active nodes in
    each subtree) and volume_pairs = min(left_volume, right_volume).

    volume_pairs is display-only. An alternative payout rule would pay
    min(left_volume, right_volume) units per node, overwriting whatever
    check_pair granted; that rule never consults paid_pairs and would
    defeat the double-payment guard, so recompute never writes
    pair_bonus, pair_count or total.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from mlmsim.models.participant import PairCheckResult, Participant
from mlmsim.placement.engine import PlacementEngine
from mlmsim.policy.resolver import PolicyResolver


def pair_key(left_id: str, right_id: str) -> str:
    return f"{left_id}-{right_id}"


class CompensationCalculator:
    """Pairing-bonus and volume computation over a placement arena.

    Usage:
        calc = CompensationCalculator(resolver, engine)
        calc.check_pair(engine.get("A"))
        active_total = calc.recompute()
    """

    def __init__(self, resolver: PolicyResolver, engine: PlacementEngine) -> None:
        self._engine = engine
        self._unit_pair_bonus = resolver.compensation_params()["unit_pair_bonus"]

    @property
    def unit_pair_bonus(self) -> Decimal:
        return self._unit_pair_bonus

    def check_pair(self, node: Participant) -> PairCheckResult:
        """Award node one pairing bonus if its two active children are unpaid."""
        left = self._engine.get(node.left_id) if node.left_id else None
        right = self._engine.get(node.right_id) if node.right_id else None
        if left is None or right is None or not (left.active and right.active):
            return PairCheckResult.NOT_ELIGIBLE

        key = pair_key(left.participant_id, right.participant_id)
        if key in node.paid_pairs:
            return PairCheckResult.ALREADY_PAID

        node.pair_count += 1
        node.earnings.pair_bonus += self._unit_pair_bonus
        node.earnings.refresh_total()
        node.paid_pairs.add(key)
        return PairCheckResult.AWARDED

    def recompute(self) -> int:
        """Refresh volumes over the whole tree; returns the active total."""
        return self.recompute_subtree(self._engine.root)

    def recompute_subtree(self, node: Optional[Participant]) -> int:
        """Refresh volumes below node.

        Returns the number of active participants in node's subtree,
        node included. An absent node is a no-op returning 0.
        """
        if node is None:
            return 0

        # Explicit stack: a sponsor chain can be far deeper than the recursion limit
        active_below: dict[str, int] = {}
        stack: list[tuple[Participant, bool]] = [(node, False)]
        while stack:
            current, children_done = stack.pop()
            if not children_done:
                stack.append((current, True))
                for child_id in (current.right_id, current.left_id):
                    if child_id is not None:
                        stack.append((self._engine.require(child_id), False))
                continue
            current.left_volume = active_below.pop(current.left_id, 0) if current.left_id else 0
            current.right_volume = active_below.pop(current.right_id, 0) if current.right_id else 0
            current.volume_pairs = min(current.left_volume, current.right_volume)
            active_below[current.participant_id] = (
                current.left_volume + current.right_volume + (1 if current.active else 0)
            )
        return active_below[node.participant_id]
