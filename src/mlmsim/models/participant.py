"""Participant and placement data models.

A participant is one node of the binary placement tree. Nodes live in an
arena keyed by id and refer to each other by id only (parent_id,
left_id, right_id), so no live object graph is ever shared with callers.

All monetary values use Decimal. No floats in compensation.

Invariants enforced by the engines that own these records:
- A filled child slot is never reassigned or vacated.
- active goes False -> True at most once.
- earnings.total == earnings.direct_bonus + earnings.pair_bonus.
- pair_count == len(paid_pairs).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional


class Side(str, enum.Enum):
    """Which child slot of the placement parent a node occupies."""
    LEFT = "left"
    RIGHT = "right"


class PairCheckResult(str, enum.Enum):
    """Result of a pairing-bonus check at one node."""
    AWARDED = "awarded"
    ALREADY_PAID = "already_paid"
    NOT_ELIGIBLE = "not_eligible"


class ActivationOutcome(str, enum.Enum):
    ACTIVATED = "activated"
    ALREADY_ACTIVE = "already_active"


@dataclass
class Earnings:
    """Accumulated compensation for one participant."""
    direct_bonus: Decimal = Decimal("0")
    pair_bonus: Decimal = Decimal("0")
    total: Decimal = Decimal("0")

    def refresh_total(self) -> None:
        self.total = self.direct_bonus + self.pair_bonus

    def to_dict(self) -> dict[str, str]:
        return {
            "direct_bonus": str(self.direct_bonus),
            "pair_bonus": str(self.pair_bonus),
            "total": str(self.total),
        }


@dataclass
class Participant:
    """A single node in the binary tree.

    sponsor_id is referral credit (who introduced this participant).
    parent_id/side is placement (where spillover put them). The two
    differ whenever the sponsor's own slots were already full.

    Volume fields (left_volume, right_volume, volume_pairs) are derived
    and refreshed by CompensationCalculator.recompute(); they are for
    display only and never feed the pairing bonus.
    """
    participant_id: str
    name: str
    sponsor_id: Optional[str] = None
    parent_id: Optional[str] = None
    side: Optional[Side] = None
    depth: int = 0
    left_id: Optional[str] = None
    right_id: Optional[str] = None
    active: bool = False
    direct_referral_count: int = 0
    pair_count: int = 0
    earnings: Earnings = field(default_factory=Earnings)
    left_volume: int = 0
    right_volume: int = 0
    volume_pairs: int = 0
    paid_pairs: set[str] = field(default_factory=set)
    joined_utc: Optional[datetime] = None
    activated_utc: Optional[datetime] = None

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def child_id(self, side: Side) -> Optional[str]:
        return self.left_id if side == Side.LEFT else self.right_id

    def open_side(self) -> Optional[Side]:
        """First empty slot, left preferred. None when both are filled."""
        if self.left_id is None:
            return Side.LEFT
        if self.right_id is None:
            return Side.RIGHT
        return None

    def to_dict(self) -> dict[str, Any]:
        """Detached snapshot for queries and listings."""
        return {
            "id": self.participant_id,
            "name": self.name,
            "sponsor_id": self.sponsor_id,
            "parent_id": self.parent_id,
            "side": self.side.value if self.side else None,
            "depth": self.depth,
            "left_id": self.left_id,
            "right_id": self.right_id,
            "active": self.active,
            "direct_referral_count": self.direct_referral_count,
            "pair_count": self.pair_count,
            "earnings": self.earnings.to_dict(),
            "left_volume": self.left_volume,
            "right_volume": self.right_volume,
            "volume_pairs": self.volume_pairs,
            "paid_pairs": sorted(self.paid_pairs),
            "joined_utc": self.joined_utc.isoformat() if self.joined_utc else None,
            "activated_utc": (
                self.activated_utc.isoformat() if self.activated_utc else None
            ),
        }


@dataclass(frozen=True)
class PlacementResult:
    """Where a new participant landed and what the placement paid."""
    participant_id: str
    name: str
    sponsor_id: str
    parent_id: str
    side: Side
    direct_bonus_awarded: Decimal

    @property
    def is_spillover(self) -> bool:
        return self.parent_id != self.sponsor_id


@dataclass(frozen=True)
class ActivationResult:
    """Result of marking a participant active.

    pair_parent_id and pair_key are set only when the activation made the
    placement parent eligible for a pairing bonus it had not been paid yet.
    """
    participant_id: str
    outcome: ActivationOutcome
    pair_parent_id: Optional[str] = None
    pair_key: Optional[str] = None

    @property
    def changed(self) -> bool:
        return self.outcome == ActivationOutcome.ACTIVATED
