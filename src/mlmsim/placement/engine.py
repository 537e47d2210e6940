"""Placement engine — owns the binary tree and assigns spillover slots.

The tree is an arena of Participant records keyed by id. The root is
created once at construction and is never removed. Every later node is
placed by add_participant() and nothing else writes a child slot.

Spillover placement, breadth-first and left-biased:
1. BFS from the root for the sponsor. If it has an open slot, take it
   (left before right).
2. Otherwise BFS from the root again, ignoring sponsor identity, and
   take the first open slot in level order.
3. The new node keeps the caller's sponsor_id as referral credit; its
   parent_id/side record only where it was placed.
4. The placement parent gets +1 direct referral and one unit of direct
   bonus immediately, whether or not the new node ever activates.

Slot search is read-only. All writes happen after a slot is found, so a
failed placement leaves the arena exactly as it was.

Thread-safety: this class is not thread-safe. SimulatorService
serialises every call.
"""

from __future__ import annotations

from collections import deque
from datetime import datetime, timezone
from typing import Iterator, Optional

from mlmsim.errors import ParticipantNotFoundError, SponsorNotFoundError, TreeFullError
from mlmsim.models.participant import Participant, PlacementResult, Side
from mlmsim.policy.resolver import PolicyResolver


def participant_id_for(index: int) -> str:
    """Alphabetic id for the index-th participant: A..Z, AA..AZ, BA..

    index 0 is the root "A".
    """
    if index < 0:
        raise ValueError(f"index must be >= 0, got {index}")
    letters = []
    n = index + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        letters.append(chr(ord("A") + rem))
    return "".join(reversed(letters))


class PlacementEngine:
    """Binary tree arena with spillover placement.

    Usage:
        engine = PlacementEngine(resolver)
        result = engine.add_participant("A", "User B")
        node = engine.get(result.participant_id)
    """

    def __init__(self, resolver: PolicyResolver) -> None:
        self._resolver = resolver
        self._unit_direct_bonus = resolver.compensation_params()["unit_direct_bonus"]
        self._max_depth = resolver.max_depth()
        self._participants: dict[str, Participant] = {}

        root_id = participant_id_for(0)
        self._participants[root_id] = Participant(
            participant_id=root_id,
            name=resolver.root_name(),
            joined_utc=datetime.now(timezone.utc),
        )
        self._root_id = root_id

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @property
    def root(self) -> Participant:
        return self._participants[self._root_id]

    @property
    def root_id(self) -> str:
        return self._root_id

    @property
    def count(self) -> int:
        return len(self._participants)

    def get(self, participant_id: str) -> Optional[Participant]:
        return self._participants.get(participant_id)

    def require(self, participant_id: str) -> Participant:
        """Return the participant or raise ParticipantNotFoundError."""
        node = self._participants.get(participant_id)
        if node is None:
            raise ParticipantNotFoundError(participant_id)
        return node

    def participants(self) -> list[Participant]:
        """All participants in creation order."""
        return list(self._participants.values())

    def child(self, node: Participant, side: Side) -> Optional[Participant]:
        child_id = node.child_id(side)
        return self._participants[child_id] if child_id is not None else None

    def parent(self, node: Participant) -> Optional[Participant]:
        if node.parent_id is None:
            return None
        return self._participants[node.parent_id]

    def iter_bfs(self, start: Optional[Participant] = None) -> Iterator[Participant]:
        """Level order from start (default root), left before right."""
        queue = deque([start or self.root])
        while queue:
            node = queue.popleft()
            yield node
            for child_id in (node.left_id, node.right_id):
                if child_id is not None:
                    queue.append(self._participants[child_id])

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    def _can_hold_child(self, node: Participant) -> bool:
        if self._max_depth is not None and node.depth >= self._max_depth:
            return False
        return node.open_side() is not None

    def find_slot(self, sponsor_id: str) -> tuple[Participant, Side]:
        """Find the slot a new participant referred by sponsor_id goes into.

        Raises SponsorNotFoundError if sponsor_id is not in the tree.
        Raises TreeFullError if no node within max_depth has an open slot.
        """
        sponsor = None
        for node in self.iter_bfs():
            if node.participant_id == sponsor_id:
                sponsor = node
                break
        if sponsor is None:
            raise SponsorNotFoundError(sponsor_id)

        if self._can_hold_child(sponsor):
            return sponsor, sponsor.open_side()

        # Spillover: first open slot in global level order
        for node in self.iter_bfs():
            if self._can_hold_child(node):
                return node, node.open_side()

        raise TreeFullError(self._max_depth)

    def add_participant(self, sponsor_id: str, name: str) -> PlacementResult:
        """Place a new participant and pay the placement parent's direct bonus.

        Raises ValueError for a blank name, SponsorNotFoundError or
        TreeFullError when no slot can be assigned. Nothing is written
        unless a slot was found.
        """
        clean_name = name.strip() if isinstance(name, str) else ""
        if not clean_name:
            raise ValueError("Participant name must be non-empty")

        parent, side = self.find_slot(sponsor_id)

        new_id = participant_id_for(len(self._participants))
        node = Participant(
            participant_id=new_id,
            name=clean_name,
            sponsor_id=sponsor_id,
            parent_id=parent.participant_id,
            side=side,
            depth=parent.depth + 1,
            joined_utc=datetime.now(timezone.utc),
        )
        self._participants[new_id] = node

        if side == Side.LEFT:
            parent.left_id = new_id
        else:
            parent.right_id = new_id

        parent.direct_referral_count += 1
        parent.earnings.direct_bonus += self._unit_direct_bonus
        parent.earnings.refresh_total()

        return PlacementResult(
            participant_id=new_id,
            name=clean_name,
            sponsor_id=sponsor_id,
            parent_id=parent.participant_id,
            side=side,
            direct_bonus_awarded=self._unit_direct_bonus,
        )
