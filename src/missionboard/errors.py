"""Error kinds raised by the mission engine and its store.

Every error carries a ``kind`` string so callers that only see the
exception (CLI, service results) can report it without isinstance chains.
Grouping and view functions never raise.
"""

from __future__ import annotations

from typing import Optional


class MissionError(Exception):
    """Base class for all mission engine errors."""
    kind = "MissionError"

    def __init__(self, message: str, mission_uid: Optional[str] = None) -> None:
        super().__init__(message)
        self.mission_uid = mission_uid


class NotFound(MissionError):
    """The mission identifier does not resolve in the store."""
    kind = "NotFound"


class NoData(MissionError):
    """The mission document exists but carries no payload."""
    kind = "NoData"


class PersistenceFailure(MissionError):
    """Opaque failure from the persistence collaborator."""
    kind = "PersistenceFailure"


class PreconditionViolation(MissionError):
    """A transition is not legal for the mission's current state or actor."""
    kind = "PreconditionViolation"

    def __init__(
        self,
        message: str,
        mission_uid: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> None:
        super().__init__(message, mission_uid)
        self.operation = operation
