"""Field deltas for each lifecycle operation.

Every delta carries the mission ``uid``, all six volunteer slot fields and
the new ``status``. Slots are always fully rewritten: the slot an
operation does not fill is sent back as empty strings, so a delta can
never leave both slots populated or keep a previous actor's contact
details.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from missionboard.engine.state_machine import MissionOperation, MissionStateMachine
from missionboard.models.mission import ActorProfile, Mission

Delta = dict[str, Any]

_EMPTY = ActorProfile()


def _slot(prefix: str, uid: str, user: ActorProfile) -> Delta:
    return {
        f"{prefix}Uid": uid,
        f"{prefix}DisplayName": user.display_name,
        f"{prefix}PhoneNumber": user.phone_number,
    }


def _delta(
    mission_uid: str,
    operation: MissionOperation,
    tentative: tuple[str, ActorProfile] = ("", _EMPTY),
    volunteer: tuple[str, ActorProfile] = ("", _EMPTY),
) -> Delta:
    return {
        "uid": mission_uid,
        **_slot("tentativeVolunteer", *tentative),
        **_slot("volunteer", *volunteer),
        "status": MissionStateMachine.resulting_status(operation).value,
    }


def assign(user_uid: str, user: ActorProfile, mission_uid: str) -> Delta:
    """User proposed as the tentative volunteer for a mission."""
    return _delta(mission_uid, MissionOperation.ASSIGN, tentative=(user_uid, user))


def accept(user_uid: str, user: ActorProfile, mission_uid: str) -> Delta:
    """User confirms as the mission's volunteer."""
    return _delta(mission_uid, MissionOperation.ACCEPT, volunteer=(user_uid, user))


def start(user_uid: str, user: ActorProfile, mission_uid: str) -> Delta:
    return _delta(mission_uid, MissionOperation.START, volunteer=(user_uid, user))


def deliver(user_uid: str, user: ActorProfile, mission_uid: str) -> Delta:
    return _delta(mission_uid, MissionOperation.DELIVER, volunteer=(user_uid, user))


def unassigned(mission_uid: str) -> Delta:
    """Organizer removes any volunteer; the mission goes back to the pool."""
    return _delta(mission_uid, MissionOperation.UNASSIGNED)


_BUILDERS: dict[MissionOperation, Callable[[str, ActorProfile, str], Delta]] = {
    MissionOperation.ASSIGN: assign,
    MissionOperation.ACCEPT: accept,
    MissionOperation.START: start,
    MissionOperation.DELIVER: deliver,
}


def build_delta(
    operation: MissionOperation,
    mission_uid: str,
    user_uid: str = "",
    user: Optional[ActorProfile] = None,
) -> Delta:
    """Dispatch to the delta builder for ``operation``.

    ``user_uid`` and ``user`` are ignored for ``unassigned``.
    """
    operation = MissionOperation(operation)
    if operation == MissionOperation.UNASSIGNED:
        return unassigned(mission_uid)
    return _BUILDERS[operation](user_uid, user or _EMPTY, mission_uid)


def apply_delta(mission: Mission, delta: Delta) -> Mission:
    """Return a new mission with the delta's fields written over it."""
    return Mission.from_dict({**mission.to_dict(), **delta})
