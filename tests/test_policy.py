"""Tests for transition precondition policies."""

import pytest

from missionboard.engine.policy import (
    PermissivePolicy,
    StateMachinePolicy,
    StrictPolicy,
    policy_from_name,
)
from missionboard.engine.state_machine import MissionOperation
from missionboard.errors import PreconditionViolation
from missionboard.models.mission import Mission, MissionStatus


def _make_mission(
    status: MissionStatus,
    tentative: str = "",
    volunteer: str = "",
) -> Mission:
    return Mission(
        uid="M-001",
        status=status,
        tentative_volunteer_uid=tentative,
        volunteer_uid=volunteer,
    )


class TestPermissivePolicy:
    def test_allows_everything(self) -> None:
        policy = PermissivePolicy()
        mission = _make_mission(MissionStatus.SUCCEEDED)
        for op in MissionOperation:
            assert policy.can_transition(mission, op, "")

    def test_check_never_raises(self) -> None:
        PermissivePolicy().check(
            _make_mission(MissionStatus.UNASSIGNED), MissionOperation.DELIVER, "u1",
        )


class TestStateMachinePolicy:
    def test_accept_on_unassigned_refused(self) -> None:
        policy = StateMachinePolicy()
        assert not policy.can_transition(
            _make_mission(MissionStatus.UNASSIGNED), MissionOperation.ACCEPT, "u1",
        )

    def test_ignores_actor(self) -> None:
        policy = StateMachinePolicy()
        mission = _make_mission(MissionStatus.ASSIGNED, volunteer="someone-else")
        assert policy.can_transition(mission, MissionOperation.START, "u1")

    def test_check_raises_with_context(self) -> None:
        with pytest.raises(PreconditionViolation) as exc:
            StateMachinePolicy().check(
                _make_mission(MissionStatus.FAILED), MissionOperation.ASSIGN, "u1",
            )
        assert exc.value.mission_uid == "M-001"
        assert exc.value.operation == "assign"


class TestStrictPolicy:
    def test_assign_free_slot(self) -> None:
        mission = _make_mission(MissionStatus.UNASSIGNED)
        assert StrictPolicy().can_transition(mission, MissionOperation.ASSIGN, "u1")

    def test_assign_taken_slot_refused(self) -> None:
        mission = _make_mission(MissionStatus.TENTATIVE, tentative="u2")
        errors = StrictPolicy().violations(mission, MissionOperation.ASSIGN, "u1")
        assert len(errors) == 1
        assert "u2" in errors[0]

    def test_accept_by_proposed_volunteer(self) -> None:
        mission = _make_mission(MissionStatus.TENTATIVE, tentative="u1")
        assert StrictPolicy().can_transition(mission, MissionOperation.ACCEPT, "u1")

    def test_accept_by_other_refused(self) -> None:
        mission = _make_mission(MissionStatus.TENTATIVE, tentative="u1")
        assert not StrictPolicy().can_transition(mission, MissionOperation.ACCEPT, "u2")

    def test_accept_from_pool_by_anyone(self) -> None:
        mission = _make_mission(MissionStatus.TENTATIVE)
        assert StrictPolicy().can_transition(mission, MissionOperation.ACCEPT, "u9")

    def test_start_requires_assigned_volunteer(self) -> None:
        mission = _make_mission(MissionStatus.ASSIGNED, volunteer="u1")
        assert StrictPolicy().can_transition(mission, MissionOperation.START, "u1")
        assert not StrictPolicy().can_transition(mission, MissionOperation.START, "u2")

    def test_deliver_requires_assigned_volunteer(self) -> None:
        mission = _make_mission(MissionStatus.STARTED, volunteer="u1")
        assert not StrictPolicy().can_transition(mission, MissionOperation.DELIVER, "u2")

    def test_missing_actor_refused(self) -> None:
        mission = _make_mission(MissionStatus.UNASSIGNED)
        assert not StrictPolicy().can_transition(mission, MissionOperation.ASSIGN, "")

    def test_unassign_needs_no_actor(self) -> None:
        mission = _make_mission(MissionStatus.ASSIGNED, volunteer="u1")
        assert StrictPolicy().can_transition(mission, MissionOperation.UNASSIGNED, "")

    def test_illegal_pair_reported_first(self) -> None:
        mission = _make_mission(MissionStatus.DELIVERED, volunteer="u1")
        errors = StrictPolicy().violations(mission, MissionOperation.START, "u2")
        assert len(errors) == 1
        assert "cannot start" in errors[0]


class TestPolicyFromName:
    @pytest.mark.parametrize("name,cls", [
        ("permissive", PermissivePolicy),
        ("state_machine", StateMachinePolicy),
        (" Strict ", StrictPolicy),
    ])
    def test_known_names(self, name, cls) -> None:
        assert isinstance(policy_from_name(name), cls)

    def test_unknown_name(self) -> None:
        with pytest.raises(ValueError, match="Unknown transition policy"):
            policy_from_name("lenient")
