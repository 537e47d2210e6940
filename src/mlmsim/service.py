"""Simulator service — unified facade for the binary MLM engine.

This is the primary interface for programmatic access. It orchestrates:
- Placement (spillover slot assignment, direct bonus)
- Activation (status flip, local pairing check)
- Compensation (pairing bonus, subtree volumes)
- Audit trail (append-only event log)

Commands and queries return typed ServiceResult values; expected
failures (unknown sponsor, unknown participant, full tree, already
active) never raise. A failed command leaves the tree, the ledger and
the event log exactly as they were.

Concurrency: one re-entrant lock guards every command and query, so
slot assignment, activation, pair award and recompute are each atomic
from a reader's point of view. Queries hand out detached snapshots,
never live Participant objects. Volumes are recomputed synchronously
inside the same critical section as the mutation that changed them.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from loguru import logger

from mlmsim.compensation.calculator import CompensationCalculator
from mlmsim.compensation.ledger import ActivationLedger
from mlmsim.errors import Outcome, SimulationError
from mlmsim.models.participant import (
    ActivationOutcome,
    PairCheckResult,
    Participant,
    PlacementResult,
)
from mlmsim.persistence.event_log import (
    EventKind,
    EventLog,
    activation_message,
    pair_bonus_message,
    placement_message,
)
from mlmsim.placement.engine import PlacementEngine
from mlmsim.placement.invariants import verify
from mlmsim.policy.resolver import PolicyResolver


ACTIVE_MARK = "✅"
INACTIVE_MARK = "❌"


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation.

    success is False only for real failures. ALREADY_ACTIVE is a
    successful no-change result: success is True, changed is False.
    """
    success: bool
    outcome: Outcome = Outcome.OK
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return self.success and self.outcome == Outcome.OK

    @staticmethod
    def failure(error: SimulationError) -> ServiceResult:
        return ServiceResult(success=False, outcome=error.outcome, errors=[str(error)])


class SimulatorService:
    """Binary MLM simulator facade.

    Usage:
        resolver = PolicyResolver.from_config_dir(config_dir)
        service = SimulatorService(resolver)

        result = service.add_participant("A", "User B")
        result = service.add_participant("A", "User C")
        service.mark_active("B")
        service.mark_active("C")   # pairing bonus for A

        service.get_participant("A").data["earnings"]
        service.list_events()
    """

    def __init__(
        self,
        resolver: PolicyResolver,
        event_log: Optional[EventLog] = None,
    ) -> None:
        self._resolver = resolver
        self._engine = PlacementEngine(resolver)
        self._calculator = CompensationCalculator(resolver, self._engine)
        self._ledger = ActivationLedger(self._engine, self._calculator)
        self._event_log = event_log if event_log is not None else EventLog()
        self._lock = threading.RLock()
        self._log = logger.bind(service=self.__class__.__name__)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def add_participant(self, sponsor_id: str, name: str) -> ServiceResult:
        """Place a new participant referred by sponsor_id."""
        with self._lock:
            try:
                placement = self._engine.add_participant(sponsor_id, name)
            except SimulationError as e:
                self._log.warning("Placement rejected: {}", e)
                return ServiceResult.failure(e)
            except ValueError as e:
                self._log.warning("Placement rejected: {}", e)
                return ServiceResult(
                    success=False, outcome=Outcome.INVALID_REQUEST, errors=[str(e)],
                )

            parent = self._engine.require(placement.parent_id)
            event = self._event_log.record(
                EventKind.PARTICIPANT_PLACED,
                placement_message(
                    placement.name, placement.participant_id,
                    parent.name, parent.participant_id, placement.side.value,
                ),
                payload={
                    "participant_id": placement.participant_id,
                    "sponsor_id": placement.sponsor_id,
                    "parent_id": placement.parent_id,
                    "side": placement.side.value,
                    "direct_bonus": str(placement.direct_bonus_awarded),
                },
            )
            self._refresh_volumes()

            self._log.info(
                "Placed {} under {} on {} (sponsor {}, spillover={})",
                placement.participant_id, placement.parent_id,
                placement.side.value, placement.sponsor_id, placement.is_spillover,
            )
            return ServiceResult(
                success=True,
                data=self._placement_data(placement, [event.message]),
            )

    def mark_active(self, participant_id: str) -> ServiceResult:
        """Activate a participant; may pay its placement parent a pair bonus."""
        with self._lock:
            try:
                activation = self._ledger.mark_active(participant_id)
            except SimulationError as e:
                self._log.warning("Activation rejected: {}", e)
                return ServiceResult.failure(e)

            if activation.outcome == ActivationOutcome.ALREADY_ACTIVE:
                self._log.debug("{} already active, nothing to do", participant_id)
                return ServiceResult(
                    success=True,
                    outcome=Outcome.ALREADY_ACTIVE,
                    data={"participant_id": participant_id, "events": []},
                )

            node = self._engine.require(participant_id)
            messages = [
                self._event_log.record(
                    EventKind.PARTICIPANT_ACTIVATED,
                    activation_message(node.name, node.participant_id),
                    payload={"participant_id": participant_id},
                ).message,
            ]
            if activation.pair_parent_id is not None:
                parent = self._engine.require(activation.pair_parent_id)
                messages.append(self._record_pair_award(parent))

            self._refresh_volumes()
            self._log.info("Activated {}", participant_id)
            return ServiceResult(
                success=True,
                data={
                    "participant_id": participant_id,
                    "pair_bonus_to": activation.pair_parent_id,
                    "pair_key": activation.pair_key,
                    "events": messages,
                },
            )

    def check_pair(self, participant_id: str) -> ServiceResult:
        """Run the pairing-bonus check at one node explicitly."""
        with self._lock:
            node = self._engine.get(participant_id)
            if node is None:
                return ServiceResult(
                    success=False,
                    outcome=Outcome.PARTICIPANT_NOT_FOUND,
                    errors=[f"Participant not found: {participant_id}"],
                )
            result = self._calculator.check_pair(node)
            messages: list[str] = []
            if result == PairCheckResult.AWARDED:
                messages.append(self._record_pair_award(node))
                self._refresh_volumes()
            return ServiceResult(
                success=True,
                data={
                    "participant_id": participant_id,
                    "result": result.value,
                    "events": messages,
                },
            )

    def recompute(self) -> ServiceResult:
        """Refresh subtree volumes over the whole tree."""
        with self._lock:
            return ServiceResult(success=True, data={"active_total": self._refresh_volumes()})

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_participant(self, participant_id: str) -> ServiceResult:
        with self._lock:
            node = self._engine.get(participant_id)
            if node is None:
                return ServiceResult(
                    success=False,
                    outcome=Outcome.PARTICIPANT_NOT_FOUND,
                    errors=[f"Participant not found: {participant_id}"],
                )
            return ServiceResult(success=True, data=node.to_dict())

    def list_participants(self) -> list[dict[str, Any]]:
        """Flat listing of every participant in creation order."""
        with self._lock:
            return [p.to_dict() for p in self._engine.participants()]

    def get_tree(self) -> dict[str, Any]:
        """Nested snapshot of the whole tree from the root."""
        with self._lock:
            return self._tree_snapshot()

    def list_events(self) -> list[str]:
        with self._lock:
            return self._event_log.messages()

    def direct_referrals(self, sponsor_id: str) -> ServiceResult:
        """Participants whose referral credit is sponsor_id (level 1)."""
        with self._lock:
            if self._engine.get(sponsor_id) is None:
                return ServiceResult(
                    success=False,
                    outcome=Outcome.SPONSOR_NOT_FOUND,
                    errors=[f"Sponsor not found: {sponsor_id}"],
                )
            members = self._sponsored_by({sponsor_id})
            return ServiceResult(
                success=True,
                data={"sponsor_id": sponsor_id, "members": [p.to_dict() for p in members]},
            )

    def indirect_referrals(self, sponsor_id: str) -> ServiceResult:
        """Participants referred by sponsor_id's direct referrals (level 2)."""
        with self._lock:
            if self._engine.get(sponsor_id) is None:
                return ServiceResult(
                    success=False,
                    outcome=Outcome.SPONSOR_NOT_FOUND,
                    errors=[f"Sponsor not found: {sponsor_id}"],
                )
            level_one = {p.participant_id for p in self._sponsored_by({sponsor_id})}
            members = self._sponsored_by(level_one) if level_one else []
            return ServiceResult(
                success=True,
                data={"sponsor_id": sponsor_id, "members": [p.to_dict() for p in members]},
            )

    def network_stats(self) -> dict[str, Any]:
        with self._lock:
            participants = self._engine.participants()
            level_counts: dict[int, int] = {}
            direct_total = Decimal("0")
            pair_total = Decimal("0")
            for p in participants:
                level_counts[p.depth] = level_counts.get(p.depth, 0) + 1
                direct_total += p.earnings.direct_bonus
                pair_total += p.earnings.pair_bonus
            return {
                "total_members": len(participants),
                "active_members": self._ledger.active_count(),
                "inactive_members": self._ledger.inactive_count(),
                "level_counts": level_counts,
                "total_direct_bonus": str(direct_total),
                "total_pair_bonus": str(pair_total),
                "total_payout": str(direct_total + pair_total),
            }

    def verify(self) -> list[str]:
        """Run the tree-shape and ledger invariant checks."""
        with self._lock:
            return verify(self._engine)

    def status(self) -> dict[str, Any]:
        with self._lock:
            params = self._resolver.compensation_params()
            return {
                "root_id": self._engine.root_id,
                "participants": self._engine.count,
                "active": self._ledger.active_count(),
                "events": self._event_log.count,
                "unit_direct_bonus": str(params["unit_direct_bonus"]),
                "unit_pair_bonus": str(params["unit_pair_bonus"]),
                "max_depth": self._resolver.max_depth(),
            }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _refresh_volumes(self) -> int:
        active_total = self._calculator.recompute()
        self._log.debug("Recomputed volumes, {} active", active_total)
        return active_total

    def _record_pair_award(self, node: Participant) -> str:
        left = self._engine.require(node.left_id)
        right = self._engine.require(node.right_id)
        event = self._event_log.record(
            EventKind.PAIR_BONUS_AWARDED,
            pair_bonus_message(node.name, node.participant_id, left.name, right.name),
            payload={
                "participant_id": node.participant_id,
                "left_id": left.participant_id,
                "right_id": right.participant_id,
                "amount": str(self._calculator.unit_pair_bonus),
            },
        )
        self._log.info(
            "Pair bonus paid to {} for {}-{}",
            node.participant_id, left.participant_id, right.participant_id,
        )
        return event.message

    def _sponsored_by(self, sponsor_ids: set[str]) -> list[Participant]:
        return [p for p in self._engine.participants() if p.sponsor_id in sponsor_ids]

    def _tree_snapshot(self) -> dict[str, Any]:
        # Level order creates every parent entry before its children
        entries: dict[str, dict[str, Any]] = {}
        for node in self._engine.iter_bfs():
            mark = ACTIVE_MARK if node.active else INACTIVE_MARK
            entry = {
                "id": node.participant_id,
                "name": node.name,
                "label": f"{node.name} {mark}",
                "side": node.side.value if node.side else None,
                "active": node.active,
                "left_volume": node.left_volume,
                "right_volume": node.right_volume,
                "children": [],
            }
            entries[node.participant_id] = entry
            if node.parent_id is not None:
                entries[node.parent_id]["children"].append(entry)
        return entries[self._engine.root_id]

    @staticmethod
    def _placement_data(placement: PlacementResult, messages: list[str]) -> dict[str, Any]:
        return {
            "participant_id": placement.participant_id,
            "sponsor_id": placement.sponsor_id,
            "parent_id": placement.parent_id,
            "side": placement.side.value,
            "spillover": placement.is_spillover,
            "direct_bonus": str(placement.direct_bonus_awarded),
            "events": messages,
        }
