"""Activation ledger — per-participant active status.

mark_active() flips a participant from inactive to active exactly once
and then runs a local pairing check at its placement parent only. Deeper
ancestors are not paid here; the service follows every activation with a
full recompute of volumes.

Marking an already-active participant is a defined no-op: the result
carries ActivationOutcome.ALREADY_ACTIVE and nothing is written.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from mlmsim.compensation.calculator import CompensationCalculator, pair_key
from mlmsim.models.participant import (
    ActivationOutcome,
    ActivationResult,
    PairCheckResult,
)
from mlmsim.placement.engine import PlacementEngine


class ActivationLedger:
    """Tracks activation order and drives the pairing check.

    Usage:
        ledger = ActivationLedger(engine, calculator)
        result = ledger.mark_active("B")
        if result.pair_parent_id:
            ...  # a pairing bonus was paid to the placement parent
    """

    def __init__(
        self,
        engine: PlacementEngine,
        calculator: CompensationCalculator,
    ) -> None:
        self._engine = engine
        self._calculator = calculator
        self._activation_order: List[str] = []

    def mark_active(
        self,
        participant_id: str,
        now: Optional[datetime] = None,
    ) -> ActivationResult:
        """Activate a participant and check its placement parent for a pair.

        Raises ParticipantNotFoundError for an unknown id.
        """
        node = self._engine.require(participant_id)
        if node.active:
            return ActivationResult(
                participant_id=participant_id,
                outcome=ActivationOutcome.ALREADY_ACTIVE,
            )

        node.active = True
        node.activated_utc = now or datetime.now(timezone.utc)
        self._activation_order.append(participant_id)

        parent = self._engine.parent(node)
        if parent is not None and self._calculator.check_pair(parent) == PairCheckResult.AWARDED:
            return ActivationResult(
                participant_id=participant_id,
                outcome=ActivationOutcome.ACTIVATED,
                pair_parent_id=parent.participant_id,
                pair_key=pair_key(parent.left_id, parent.right_id),
            )
        return ActivationResult(
            participant_id=participant_id,
            outcome=ActivationOutcome.ACTIVATED,
        )

    def is_active(self, participant_id: str) -> bool:
        return self._engine.require(participant_id).active

    def activation_order(self) -> List[str]:
        """Participant ids in the order they were activated."""
        return list(self._activation_order)

    def active_count(self) -> int:
        return len(self._activation_order)

    def inactive_count(self) -> int:
        return self._engine.count - len(self._activation_order)
