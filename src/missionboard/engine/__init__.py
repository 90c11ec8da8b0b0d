"""Mission transition engine — state machine, deltas, and precondition policies."""

from missionboard.engine.policy import (
    PermissivePolicy,
    StateMachinePolicy,
    StrictPolicy,
    TransitionPolicy,
    policy_from_name,
)
from missionboard.engine.state_machine import MissionOperation, MissionStateMachine

__all__ = [
    "MissionOperation",
    "MissionStateMachine",
    "PermissivePolicy",
    "StateMachinePolicy",
    "StrictPolicy",
    "TransitionPolicy",
    "policy_from_name",
]
