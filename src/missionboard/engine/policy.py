"""Transition precondition policies.

A policy decides whether an actor may apply an operation to a mission in
its current state. It runs before any delta is built and never changes
the shape of the delta. Stricter policies layer on top of looser ones:

- PermissivePolicy: everything is allowed (no checks at all).
- StateMachinePolicy: the (status, operation) pair must be legal.
- StrictPolicy: legal pair, and the actor must hold the right slot.
"""

from __future__ import annotations

from missionboard.engine.state_machine import MissionOperation, MissionStateMachine
from missionboard.errors import PreconditionViolation
from missionboard.models.mission import Mission


class TransitionPolicy:
    """Base policy. Subclasses override ``violations``."""

    name = "base"

    def violations(
        self,
        mission: Mission,
        operation: MissionOperation,
        actor_uid: str,
    ) -> list[str]:
        """Return the reasons the transition is refused (empty = allowed)."""
        return []

    def can_transition(
        self,
        mission: Mission,
        operation: MissionOperation,
        actor_uid: str,
    ) -> bool:
        return not self.violations(mission, operation, actor_uid)

    def check(
        self,
        mission: Mission,
        operation: MissionOperation,
        actor_uid: str,
    ) -> None:
        """Raise PreconditionViolation if the transition is refused."""
        errors = self.violations(mission, operation, actor_uid)
        if errors:
            raise PreconditionViolation(
                "; ".join(errors),
                mission_uid=mission.uid,
                operation=MissionOperation(operation).value,
            )


class PermissivePolicy(TransitionPolicy):
    name = "permissive"


class StateMachinePolicy(TransitionPolicy):
    name = "state_machine"

    def violations(
        self,
        mission: Mission,
        operation: MissionOperation,
        actor_uid: str,
    ) -> list[str]:
        return MissionStateMachine.validate_transition(mission, operation)


class StrictPolicy(StateMachinePolicy):
    """Legal pair plus actor checks.

    - assign: the tentative slot must be free or already held by the actor.
    - accept: a proposed volunteer may only be confirmed by themselves;
      a released mission (empty tentative slot) can be accepted by anyone.
    - start / deliver: only the confirmed volunteer.
    """

    name = "strict"

    def violations(
        self,
        mission: Mission,
        operation: MissionOperation,
        actor_uid: str,
    ) -> list[str]:
        errors = super().violations(mission, operation, actor_uid)
        if errors:
            return errors  # No point checking further

        operation = MissionOperation(operation)
        if operation == MissionOperation.UNASSIGNED:
            return errors

        if not actor_uid:
            return [f"{mission.uid}: {operation.value} requires an acting user"]

        tentative = mission.tentative_volunteer
        if operation in (MissionOperation.ASSIGN, MissionOperation.ACCEPT):
            if not tentative.is_empty and tentative.uid != actor_uid:
                errors.append(
                    f"{mission.uid}: tentative volunteer is {tentative.uid}, "
                    f"not {actor_uid}"
                )
        elif mission.volunteer_uid != actor_uid:
            errors.append(
                f"{mission.uid}: only the assigned volunteer can "
                f"{operation.value} this mission"
            )
        return errors


_POLICIES: dict[str, type[TransitionPolicy]] = {
    PermissivePolicy.name: PermissivePolicy,
    StateMachinePolicy.name: StateMachinePolicy,
    StrictPolicy.name: StrictPolicy,
}


def policy_from_name(name: str) -> TransitionPolicy:
    """Build a policy from its config name."""
    try:
        return _POLICIES[name.strip().lower()]()
    except KeyError:
        known = ", ".join(sorted(_POLICIES))
        raise ValueError(f"Unknown transition policy: {name!r}. Known: [{known}]") from None
