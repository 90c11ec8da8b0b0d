"""Tests for MissionService — proves the facade orchestrates correctly."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from missionboard.engine.policy import StateMachinePolicy, StrictPolicy
from missionboard.engine.state_machine import MissionOperation
from missionboard.errors import NoData, NotFound, PersistenceFailure
from missionboard.identity import OrganizationSession
from missionboard.models.mission import (
    ActorProfile,
    Mission,
    MissionFundedStatus,
    MissionStatus,
)
from missionboard.persistence.event_log import EventKind, EventLog
from missionboard.persistence.store import InMemoryMissionStore
from missionboard.service import MissionService
from missionboard.views.partitioner import MissionView

ORG = "org-1"
ALICE = ActorProfile(display_name="Alice", phone_number="555")
BOB = ActorProfile(display_name="Bob", phone_number="777")
FIXED_NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def store() -> InMemoryMissionStore:
    return InMemoryMissionStore()


@pytest.fixture
def event_log() -> EventLog:
    return EventLog()


@pytest.fixture
def service(store: InMemoryMissionStore, event_log: EventLog) -> MissionService:
    return MissionService(
        OrganizationSession(ORG), store, event_log=event_log, clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def strict_service(store: InMemoryMissionStore, event_log: EventLog) -> MissionService:
    return MissionService(
        OrganizationSession(ORG), store, policy=StrictPolicy(), event_log=event_log,
    )


def _create(service: MissionService, **fields) -> str:
    result = service.create_mission(fields)
    assert result.success
    return result.data["mission_uid"]


class TestCreateMission:
    def test_defaults_and_forced_fields(self, service: MissionService) -> None:
        result = service.create_mission({"uid": "caller-uid", "createdDate": "0"})
        mission = result.data["mission"]
        assert mission.uid != "caller-uid"
        assert mission.created_date == str(int(FIXED_NOW.timestamp() * 1000))
        assert mission.status == MissionStatus.UNASSIGNED
        assert mission.organization_uid == ORG
        assert mission.recipient_display_name == "No Recipient Name"

    def test_caller_fields_kept(self, service: MissionService) -> None:
        uid = _create(service, groupUid="g1", groupDisplayName="Batch", deliveryNotes="x")
        mission = service.get_mission(uid)
        assert mission.group_uid == "g1"
        assert mission.delivery_notes == "x"

    def test_accepts_mission_object(self, service: MissionService) -> None:
        result = service.create_mission(Mission(funded_status=MissionFundedStatus.FUNDED))
        assert result.data["mission"].funded_status == MissionFundedStatus.FUNDED

    def test_unknown_fields_sanitized(self, service: MissionService) -> None:
        uid = _create(service, bogus="drop me")
        assert "bogus" not in service.get_mission(uid).to_dict()

    def test_records_event(self, service: MissionService, event_log: EventLog) -> None:
        uid = _create(service)
        event = event_log.last_event
        assert event.event_kind == EventKind.MISSION_CREATED
        assert event.mission_uid == uid

    def test_requires_organization(self, store: InMemoryMissionStore) -> None:
        service = MissionService(OrganizationSession(""), store)
        with pytest.raises(ValueError, match="No organization"):
            service.create_mission()


class TestLifecycle:
    def test_full_lifecycle(self, service: MissionService) -> None:
        uid = _create(service)

        assert service.assign("u1", ALICE, uid).data["status"] == "tentative"
        mission = service.get_mission(uid)
        assert mission.tentative_volunteer_uid == "u1"
        assert mission.volunteer_uid == ""

        assert service.accept("u1", ALICE, uid).data["status"] == "assigned"
        mission = service.get_mission(uid)
        assert mission.tentative_volunteer_uid == ""
        assert mission.volunteer_display_name == "Alice"

        assert service.start("u1", ALICE, uid).data["status"] == "started"
        assert service.deliver("u1", ALICE, uid).data["status"] == "delivered"
        assert service.get_mission(uid).status == MissionStatus.DELIVERED

    def test_unassign_releases_to_pool(self, service: MissionService) -> None:
        uid = _create(service)
        service.assign("u1", ALICE, uid)
        service.accept("u1", ALICE, uid)

        result = service.unassign(uid)
        assert result.success
        mission = service.get_mission(uid)
        assert mission.status == MissionStatus.TENTATIVE
        assert mission.volunteer.is_empty
        assert mission.tentative_volunteer.is_empty
        assert [m.uid for m in service.get_all_available()] == [uid]

    def test_result_carries_full_delta(self, service: MissionService) -> None:
        uid = _create(service)
        delta = service.assign("u1", ALICE, uid).data["delta"]
        assert delta["uid"] == uid
        assert delta["volunteerUid"] == ""
        assert delta["tentativeVolunteerPhoneNumber"] == "555"

    def test_permissive_allows_out_of_order(self, service: MissionService) -> None:
        uid = _create(service)
        result = service.deliver("u1", ALICE, uid)
        assert result.success
        assert service.get_mission(uid).status == MissionStatus.DELIVERED

    def test_transition_logs_event(self, service: MissionService, event_log: EventLog) -> None:
        uid = _create(service)
        service.assign("u1", ALICE, uid)
        event = event_log.last_event
        assert event.event_kind == EventKind.MISSION_TRANSITION
        assert event.actor_id == "u1"
        assert event.payload["operation"] == "assign"
        assert [e.event_kind for e in event_log.for_mission(uid)] == [
            EventKind.MISSION_CREATED, EventKind.MISSION_TRANSITION,
        ]

    def test_history(self, service: MissionService) -> None:
        uid = _create(service)
        service.assign("u1", ALICE, uid)
        service.unassign(uid)
        assert service.history(uid) == ["unassigned", "tentative", "tentative"]

    def test_history_without_log(self, store: InMemoryMissionStore) -> None:
        service = MissionService(OrganizationSession(ORG), store)
        assert service.history(_create(service)) == []

    def test_missing_mission_propagates_not_found(self, service: MissionService) -> None:
        with pytest.raises(NotFound):
            service.assign("u1", ALICE, "missing")


class TestPolicies:
    def test_strict_rejects_accept_by_other(self, strict_service: MissionService) -> None:
        uid = _create(strict_service)
        strict_service.assign("u1", ALICE, uid)

        result = strict_service.accept("u2", BOB, uid)
        assert not result.success
        assert result.data["error_kind"] == "PreconditionViolation"
        assert strict_service.get_mission(uid).status == MissionStatus.TENTATIVE

    def test_strict_rejection_logged(
        self, strict_service: MissionService, event_log: EventLog,
    ) -> None:
        uid = _create(strict_service)
        strict_service.start("u1", ALICE, uid)
        event = event_log.last_event
        assert event.event_kind == EventKind.TRANSITION_REJECTED
        assert event.payload["status"] == "unassigned"

    def test_strict_happy_path(self, strict_service: MissionService) -> None:
        uid = _create(strict_service)
        for op in ("assign", "accept", "start", "deliver"):
            assert strict_service.transition(MissionOperation(op), uid, "u1", ALICE).success

    def test_state_machine_policy_rejects_terminal(self, store: InMemoryMissionStore) -> None:
        service = MissionService(OrganizationSession(ORG), store, policy=StateMachinePolicy())
        uid = _create(service, status="succeeded")
        result = service.unassign(uid)
        assert not result.success

    def test_policy_fetch_propagates_no_data(self, tmp_path: Path) -> None:
        path = tmp_path / "missions.json"
        path.write_text('{"organizations": {"org-1": {"empty": {}}}}', encoding="utf-8")
        service = MissionService(
            OrganizationSession(ORG),
            InMemoryMissionStore(storage_path=path),
            policy=StrictPolicy(),
        )
        with pytest.raises(NoData):
            service.accept("u1", ALICE, "empty")


class TestReads:
    def test_get_missing(self, service: MissionService) -> None:
        with pytest.raises(NotFound):
            service.get_mission("nope")

    def test_available_are_tentative(self, service: MissionService) -> None:
        a = _create(service)
        b = _create(service)
        _create(service)
        service.assign("u1", ALICE, a)
        service.assign("u2", BOB, b)
        service.accept("u2", BOB, b)
        assert [m.uid for m in service.get_all_available()] == [a]

    def test_views(self, service: MissionService) -> None:
        proposed = _create(service)
        _create(service, fundedStatus="funded")
        planning = _create(service)
        service.assign("u1", ALICE, planning)
        done = _create(service, status="failed")

        assert [m.uid for m in service.view(MissionView.PROPOSED)] == [proposed]
        assert [m.uid for m in service.view(MissionView.PLANNING)] == [planning]
        assert [m.uid for m in service.view(MissionView.INCOMPLETE)] == [planning]
        assert [m.uid for m in service.view(MissionView.DONE)] == [done]
        assert service.view(MissionView.IN_PROGRESS) == []

    def test_view_descriptor_scoped(self, service: MissionService) -> None:
        assert service.view_descriptor(MissionView.DONE).doc == ORG

    def test_groups_over_view(self, service: MissionService) -> None:
        a = _create(service, groupUid="g1", groupDisplayName="Run")
        b = _create(service)
        c = _create(service, groupUid="g1")
        for uid in (a, b, c):
            service.assign("u1", ALICE, uid)
        _create(service, groupUid="g2")

        result = service.groups(MissionView.PLANNING)
        assert [g.group_uid for g in result.groups] == ["g1"]
        assert [m.uid for m in result.groups[0].missions] == [a, c]
        assert [m.uid for m in result.single_missions] == [b]

        everything = service.groups()
        assert [g.group_uid for g in everything.groups] == ["g1", "g2"]

    def test_status_summary(self, service: MissionService) -> None:
        uid = _create(service)
        _create(service)
        service.assign("u1", ALICE, uid)
        summary = service.status()
        assert summary["organization_uid"] == ORG
        assert summary["policy"] == "permissive"
        assert summary["missions"]["total"] == 2
        assert summary["missions"]["by_status"] == {"tentative": 1, "unassigned": 1}
        assert summary["missions"]["by_view"]["planning"] == 1
        assert summary["events"] == 3


class TestUpdateAndFailures:
    def test_update_sanitizes(self, service: MissionService) -> None:
        uid = _create(service)
        result = service.update_mission(uid, {"deliveryNotes": "done", "junk": 1})
        assert result.data["delta"] == {"deliveryNotes": "done"}
        assert service.get_mission(uid).delivery_notes == "done"

    def test_persistence_failure_propagates(
        self, service: MissionService, store: InMemoryMissionStore,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        uid = _create(service)

        def _fail(*args, **kwargs):
            raise PersistenceFailure("store offline")

        monkeypatch.setattr(store, "update", _fail)
        with pytest.raises(PersistenceFailure, match="store offline"):
            service.assign("u1", ALICE, uid)

    def test_event_log_failure_is_warning(
        self, service: MissionService, event_log: EventLog,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        uid = _create(service)

        def _fail(event):
            raise OSError("log disk full")

        monkeypatch.setattr(event_log, "append", _fail)
        result = service.assign("u1", ALICE, uid)
        assert result.success
        assert "log disk full" in result.data["warning"]
        assert service.get_mission(uid).status == MissionStatus.TENTATIVE

    def test_event_counter_resumes(self, tmp_path: Path, store: InMemoryMissionStore) -> None:
        path = tmp_path / "events.jsonl"
        first = MissionService(OrganizationSession(ORG), store, event_log=EventLog(path))
        _create(first)
        second = MissionService(OrganizationSession(ORG), store, event_log=EventLog(path))
        _create(second)
        assert EventLog(path).count == 2


class TestImmutableFields:
    def test_update_cannot_change_uid_or_organization(self, service: MissionService) -> None:
        uid = _create(service)
        result = service.update_mission(uid, {"uid": "hijacked", "organizationUid": "org-2"})
        assert not result.success
        assert result.data["error_kind"] == "PreconditionViolation"

        mission = service.get_mission(uid)
        assert mission.uid == uid
        assert mission.organization_uid == ORG

    def test_update_repeating_same_values_is_fine(self, service: MissionService) -> None:
        uid = _create(service)
        result = service.update_mission(
            uid, {"uid": uid, "organizationUid": ORG, "status": "succeeded"},
        )
        assert result.success
        assert service.get_mission(uid).status == MissionStatus.SUCCEEDED

    def test_rejected_update_not_logged(
        self, service: MissionService, event_log: EventLog,
    ) -> None:
        uid = _create(service)
        service.update_mission(uid, {"organizationUid": "org-2"})
        assert event_log.count == 1


class TestInvalidRecords:
    def test_bad_status_on_create_stores_nothing(
        self, service: MissionService, event_log: EventLog,
    ) -> None:
        kept = _create(service)
        with pytest.raises(ValueError, match="bogus"):
            service.create_mission({"status": "bogus"})

        assert [m.uid for m in service.groups().single_missions] == [kept]
        assert service.status()["missions"]["total"] == 1
        assert event_log.count == 1

    def test_bad_status_on_update_leaves_mission(self, service: MissionService) -> None:
        uid = _create(service)
        with pytest.raises(ValueError):
            service.update_mission(uid, {"fundedStatus": "maybe"})
        assert service.get_mission(uid).funded_status == MissionFundedStatus.NOT_FUNDED
        assert len(service.view(MissionView.PROPOSED)) == 1


class TestDeliveryLocation:
    HOME = {"address": "9 Oak", "lat": 51.5, "lng": -0.1, "label": "Home"}

    def test_defaults_to_recipient_location(self, service: MissionService) -> None:
        uid = _create(service, recipientLocation=self.HOME)
        mission = service.get_mission(uid)
        assert mission.delivery_location.address == "9 Oak"
        assert mission.delivery_location == mission.recipient_location

    def test_explicit_delivery_location_kept(self, service: MissionService) -> None:
        office = {"address": "1 Main", "lat": 0, "lng": 0, "label": "Office"}
        uid = _create(service, recipientLocation=self.HOME, deliveryLocation=office)
        assert service.get_mission(uid).delivery_location.label == "Office"

    def test_no_locations_stay_empty(self, service: MissionService) -> None:
        uid = _create(service)
        assert service.get_mission(uid).delivery_location.is_empty
