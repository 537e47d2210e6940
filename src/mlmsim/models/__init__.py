"""Core data models for the binary MLM simulator."""

from mlmsim.models.participant import (
    ActivationOutcome,
    ActivationResult,
    Earnings,
    PairCheckResult,
    Participant,
    PlacementResult,
    Side,
)

__all__ = [
    "ActivationOutcome",
    "ActivationResult",
    "Earnings",
    "PairCheckResult",
    "Participant",
    "PlacementResult",
    "Side",
]
