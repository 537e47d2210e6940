"""Placement subsystem — binary tree arena and spillover slot assignment."""

from mlmsim.placement.engine import PlacementEngine, participant_id_for
from mlmsim.placement.invariants import verify

__all__ = [
    "PlacementEngine",
    "participant_id_for",
    "verify",
]
