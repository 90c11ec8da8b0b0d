"""Mission state machine — the closed set of lifecycle operations.

Mission lifecycle:
    unassigned → tentative → assigned → started → delivered → succeeded / failed

Operations:
- assign: propose a volunteer (tentative slot) → tentative.
- accept: volunteer confirms → assigned.
- start: confirmed volunteer sets off → started.
- deliver: confirmed volunteer hands over → delivered.
- unassigned: organizer releases the volunteer back to the pool → tentative.

The resulting status of each operation is fixed regardless of where the
mission started. Whether the operation may be applied at all is a
separate question answered by the legal-pair table below; the default
service policy does not consult it.
"""

from __future__ import annotations

import enum

from missionboard.errors import PreconditionViolation
from missionboard.models.mission import Mission, MissionStatus


class MissionOperation(str, enum.Enum):
    """Volunteer/organizer actions that move a mission through its lifecycle."""
    ASSIGN = "assign"
    ACCEPT = "accept"
    START = "start"
    DELIVER = "deliver"
    UNASSIGNED = "unassigned"


_RESULTING_STATUS: dict[MissionOperation, MissionStatus] = {
    MissionOperation.ASSIGN: MissionStatus.TENTATIVE,
    MissionOperation.ACCEPT: MissionStatus.ASSIGNED,
    MissionOperation.START: MissionStatus.STARTED,
    MissionOperation.DELIVER: MissionStatus.DELIVERED,
    # Release returns the mission to the available pool, not to proposal.
    MissionOperation.UNASSIGNED: MissionStatus.TENTATIVE,
}

# Legal operations: {from_status: {allowed_operations}}
_TRANSITIONS: dict[MissionStatus, set[MissionOperation]] = {
    MissionStatus.UNASSIGNED: {MissionOperation.ASSIGN},
    MissionStatus.TENTATIVE: {
        MissionOperation.ASSIGN,
        MissionOperation.ACCEPT,
        MissionOperation.UNASSIGNED,
    },
    MissionStatus.ASSIGNED: {
        MissionOperation.START,
        MissionOperation.UNASSIGNED,
    },
    MissionStatus.STARTED: {MissionOperation.DELIVER},
    MissionStatus.DELIVERED: set(),
    # Terminal states — no outgoing transitions
    MissionStatus.SUCCEEDED: set(),
    MissionStatus.FAILED: set(),
}

TERMINAL_STATUSES: frozenset[MissionStatus] = frozenset(
    {MissionStatus.SUCCEEDED, MissionStatus.FAILED}
)


class MissionStateMachine:
    """Answers which operations are legal and where they lead.

    Pure computation: nothing here touches a store. Deltas are built by
    ``missionboard.engine.transitions``.
    """

    @staticmethod
    def resulting_status(operation: MissionOperation) -> MissionStatus:
        """Status an operation writes, without any legality check."""
        return _RESULTING_STATUS[MissionOperation(operation)]

    @staticmethod
    def next_status(
        status: MissionStatus,
        operation: MissionOperation,
    ) -> MissionStatus:
        """Total transition function. Raises PreconditionViolation on illegal pairs."""
        status = MissionStatus(status)
        operation = MissionOperation(operation)
        if operation not in _TRANSITIONS[status]:
            raise PreconditionViolation(
                f"Illegal mission operation: {operation.value} from {status.value}",
                operation=operation.value,
            )
        return _RESULTING_STATUS[operation]

    @staticmethod
    def validate_transition(
        mission: Mission,
        operation: MissionOperation,
    ) -> list[str]:
        """Check if an operation is legal for a mission. Returns errors (empty = OK)."""
        operation = MissionOperation(operation)
        allowed = _TRANSITIONS.get(mission.status, set())
        if operation not in allowed:
            allowed_str = ", ".join(sorted(op.value for op in allowed))
            return [
                f"{mission.uid}: cannot {operation.value} a mission in "
                f"{mission.status.value}. Allowed: [{allowed_str}]"
            ]
        return []

    @staticmethod
    def is_terminal(status: MissionStatus) -> bool:
        return MissionStatus(status) in TERMINAL_STATUSES

    @staticmethod
    def valid_operations(status: MissionStatus) -> set[MissionOperation]:
        """Return the set of legal operations from the given status."""
        return set(_TRANSITIONS.get(MissionStatus(status), set()))
