"""Engine error kinds.

Components raise these; the service layer catches them and turns them
into typed ServiceResult outcomes. A raised error always means nothing
was mutated: every check happens before the first write.
"""

from __future__ import annotations

import enum


class Outcome(str, enum.Enum):
    """Result state of a service command or query."""
    OK = "ok"
    ALREADY_ACTIVE = "already_active"
    SPONSOR_NOT_FOUND = "sponsor_not_found"
    PARTICIPANT_NOT_FOUND = "participant_not_found"
    TREE_FULL = "tree_full"
    INVALID_REQUEST = "invalid_request"


class SimulationError(Exception):
    """Base class for expected engine failures."""
    outcome: Outcome = Outcome.OK


class SponsorNotFoundError(SimulationError, LookupError):
    """Raised when a referenced sponsor id is not in the tree."""
    outcome = Outcome.SPONSOR_NOT_FOUND

    def __init__(self, sponsor_id: str) -> None:
        super().__init__(f"Sponsor not found: {sponsor_id}")
        self.sponsor_id = sponsor_id


class ParticipantNotFoundError(SimulationError, LookupError):
    """Raised when a participant id is unknown."""
    outcome = Outcome.PARTICIPANT_NOT_FOUND

    def __init__(self, participant_id: str) -> None:
        super().__init__(f"Participant not found: {participant_id}")
        self.participant_id = participant_id


class TreeFullError(SimulationError, RuntimeError):
    """Raised when no open slot exists within the configured depth."""
    outcome = Outcome.TREE_FULL

    def __init__(self, max_depth: object) -> None:
        super().__init__(f"No open slot in tree (max_depth={max_depth})")
        self.max_depth = max_depth
