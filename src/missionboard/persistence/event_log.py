"""Append-only event log — the audit trail of mission writes.

Every mission creation, update and transition appends one immutable
event. Rejected transitions are logged too, so a refused action leaves
the same trace as an applied one. The log can be persisted to a JSONL
file (one JSON object per line) and is verified on load: a record whose
hash does not match its content, or a repeated event id, stops recovery.
"""

from __future__ import annotations

import enum
import hashlib
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
_HASHED_FIELDS = ("event_id", "event_kind", "timestamp_utc", "actor_id", "payload")


class EventKind(str, enum.Enum):
    """Classification of mission events."""
    MISSION_CREATED = "mission_created"
    MISSION_UPDATED = "mission_updated"
    MISSION_TRANSITION = "mission_transition"
    TRANSITION_REJECTED = "transition_rejected"


def _digest(fields: dict[str, Any]) -> str:
    body = {name: fields[name] for name in _HASHED_FIELDS}
    canonical = json.dumps(body, sort_keys=True, ensure_ascii=False).encode("utf-8")
    return "sha256:" + hashlib.sha256(canonical).hexdigest()


@dataclass(frozen=True)
class EventRecord:
    """One mission event.

    ``event_hash`` seals the other five fields; see ``from_dict`` for
    the check applied when a record is read back.
    """
    event_id: str
    event_kind: EventKind
    timestamp_utc: str
    actor_id: str
    payload: dict[str, Any]
    event_hash: str

    @property
    def mission_uid(self) -> Optional[str]:
        return self.payload.get("mission_uid")

    @classmethod
    def create(
        cls,
        event_id: str,
        event_kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        timestamp_utc: Optional[datetime] = None,
    ) -> EventRecord:
        when = (timestamp_utc or datetime.now(timezone.utc)).strftime(_TIMESTAMP_FORMAT)
        fields = {
            "event_id": event_id,
            "event_kind": EventKind(event_kind).value,
            "timestamp_utc": when,
            "actor_id": actor_id,
            "payload": payload,
        }
        return cls.from_dict({**fields, "event_hash": _digest(fields)})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EventRecord:
        """Rebuild a record, refusing one whose hash does not match."""
        expected = _digest(data)
        if data["event_hash"] != expected:
            raise ValueError(
                f"Integrity check failed: event {data['event_id']} "
                f"stored hash {data['event_hash']} != computed {expected}"
            )
        return cls(
            event_id=data["event_id"],
            event_kind=EventKind(data["event_kind"]),
            timestamp_utc=data["timestamp_utc"],
            actor_id=data["actor_id"],
            payload=data["payload"],
            event_hash=data["event_hash"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_kind": self.event_kind.value,
            "timestamp_utc": self.timestamp_utc,
            "actor_id": self.actor_id,
            "payload": self.payload,
            "event_hash": self.event_hash,
        }


class EventLog:
    """Append-only mission history with optional JSONL file persistence."""

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._storage_path = storage_path
        self._records: list[EventRecord] = []
        self._seen: set[str] = set()

        if storage_path and storage_path.exists():
            for line_num, record in self._read_lines(storage_path):
                if record.event_id in self._seen:
                    raise ValueError(
                        f"Duplicate event ID on recovery (line {line_num}): {record.event_id}"
                    )
                self._remember(record)

    def append(self, event: EventRecord) -> None:
        """Write ``event`` to the file (if any), then to memory.

        Raises ValueError on a duplicate event id.
        """
        if event.event_id in self._seen:
            raise ValueError(f"Duplicate event ID: {event.event_id}")
        if self._storage_path:
            line = json.dumps(event.to_dict(), sort_keys=True, ensure_ascii=False)
            with self._storage_path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        self._remember(event)

    def events(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        return [e for e in self._records if kind is None or e.event_kind == kind]

    def for_mission(self, mission_uid: str) -> list[EventRecord]:
        """History of a single mission, oldest first."""
        return [e for e in self._records if e.mission_uid == mission_uid]

    def status_history(self, mission_uid: str) -> list[str]:
        """Statuses a mission passed through, replayed from its events.

        Rejected transitions and field updates leave the status alone and
        are skipped.
        """
        return [
            e.payload["status"]
            for e in self.for_mission(mission_uid)
            if e.event_kind in (EventKind.MISSION_CREATED, EventKind.MISSION_TRANSITION)
            and "status" in e.payload
        ]

    @property
    def count(self) -> int:
        return len(self._records)

    @property
    def last_event(self) -> Optional[EventRecord]:
        return self._records[-1] if self._records else None

    def _remember(self, event: EventRecord) -> None:
        self._records.append(event)
        self._seen.add(event.event_id)

    @staticmethod
    def _read_lines(path: Path) -> Iterator[tuple[int, EventRecord]]:
        with path.open("r", encoding="utf-8") as f:
            for line_num, raw in enumerate(f, 1):
                if not raw.strip():
                    continue
                try:
                    yield line_num, EventRecord.from_dict(json.loads(raw))
                except ValueError as e:
                    raise ValueError(f"{e} (line {line_num})") from e
