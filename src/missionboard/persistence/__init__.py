"""Persistence collaborators — mission store and audit event log."""

from missionboard.persistence.event_log import EventKind, EventLog, EventRecord
from missionboard.persistence.store import InMemoryMissionStore, MissionStore, sanitize

__all__ = [
    "EventKind",
    "EventLog",
    "EventRecord",
    "InMemoryMissionStore",
    "MissionStore",
    "sanitize",
]
