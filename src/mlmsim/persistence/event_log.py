"""Append-only event log — the audit trail of placements and payouts.

Every placement, activation and pairing bonus produces one record with a
human-readable message. Records are immutable once written and are never
reordered; consumers read the log as a simple ordered trail of messages.
"""

from __future__ import annotations

import enum
import hashlib
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional


class EventKind(str, enum.Enum):
    """Classification of simulator events."""
    PARTICIPANT_PLACED = "participant_placed"
    PARTICIPANT_ACTIVATED = "participant_activated"
    PAIR_BONUS_AWARDED = "pair_bonus_awarded"


def placement_message(
    name: str, participant_id: str, parent_name: str, parent_id: str, side: str,
) -> str:
    return f"{name} ({participant_id}) added under {parent_name} ({parent_id}) on {side}"


def activation_message(name: str, participant_id: str) -> str:
    return f"{name} ({participant_id}) payment marked as done and is now active."


def pair_bonus_message(
    name: str, participant_id: str, left_name: str, right_name: str,
) -> str:
    return (
        f"Pairing bonus awarded to {name} ({participant_id}) "
        f"for left: {left_name} and right: {right_name}"
    )


@dataclass(frozen=True)
class EventRecord:
    """A single immutable entry in the audit trail.

    event_hash is the SHA-256 of the canonical JSON of the other fields,
    computed at creation.
    """
    sequence: int
    event_kind: EventKind
    timestamp_utc: str
    message: str
    payload: dict[str, Any]
    event_hash: str

    @staticmethod
    def create(
        sequence: int,
        event_kind: EventKind,
        message: str,
        payload: Optional[dict[str, Any]] = None,
        timestamp_utc: Optional[datetime] = None,
    ) -> EventRecord:
        """Create a new event record with computed hash."""
        ts = timestamp_utc or datetime.now(timezone.utc)
        ts_str = ts.strftime("%Y-%m-%dT%H:%M:%SZ")
        body = dict(payload or {})

        canonical = json.dumps(
            {
                "sequence": sequence,
                "event_kind": event_kind.value,
                "timestamp_utc": ts_str,
                "message": message,
                "payload": body,
            },
            sort_keys=True,
            ensure_ascii=False,
        ).encode("utf-8")
        digest = hashlib.sha256(canonical).hexdigest()

        return EventRecord(
            sequence=sequence,
            event_kind=event_kind,
            timestamp_utc=ts_str,
            message=message,
            payload=body,
            event_hash=f"sha256:{digest}",
        )


class EventLog:
    """In-memory append-only event log.

    Events can only be appended, never modified or deleted. Sequence
    numbers are issued by the log and start at 1.
    """

    def __init__(self) -> None:
        self._events: list[EventRecord] = []

    def append(self, event: EventRecord) -> None:
        """Append an event to the log.

        Raises ValueError if the sequence number is not the next one.
        """
        expected = len(self._events) + 1
        if event.sequence != expected:
            raise ValueError(
                f"Out-of-order event sequence {event.sequence}, expected {expected}"
            )
        self._events.append(event)

    def record(
        self,
        event_kind: EventKind,
        message: str,
        payload: Optional[dict[str, Any]] = None,
    ) -> EventRecord:
        """Create the next event and append it."""
        event = EventRecord.create(
            sequence=self.next_sequence(),
            event_kind=event_kind,
            message=message,
            payload=payload,
        )
        self.append(event)
        return event

    def next_sequence(self) -> int:
        return len(self._events) + 1

    def events(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        """Return events, optionally filtered by kind."""
        if kind is None:
            return list(self._events)
        return [e for e in self._events if e.event_kind == kind]

    def messages(self) -> list[str]:
        return [e.message for e in self._events]

    @property
    def count(self) -> int:
        return len(self._events)

    @property
    def last_event(self) -> Optional[EventRecord]:
        return self._events[-1] if self._events else None
