"""Mission service — facade over the transition engine and its collaborators.

Orchestrates:
- Mission creation (defaults merged, store-issued uid, creation timestamp)
- Lifecycle operations (assign, accept, start, deliver, unassign)
- Reads (by uid, available pool, named views, groups)
- Audit events for every write

Store failures (NotFound, NoData, PersistenceFailure) propagate to the
caller unchanged; the service has no retry or recovery of its own.
Policy rejections come back as a failed ServiceResult. An event log
failure after a successful store write is reported as a warning, not
rolled back: the store already holds the change.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

from missionboard.engine import transitions
from missionboard.engine.policy import PermissivePolicy, TransitionPolicy
from missionboard.engine.state_machine import MissionOperation
from missionboard.errors import PreconditionViolation
from missionboard.identity import OrganizationSession
from missionboard.models.mission import (
    ActorProfile,
    GroupingResult,
    Location,
    Mission,
    MissionStatus,
    default_mission_data,
)
from missionboard.persistence.event_log import EventKind, EventLog, EventRecord
from missionboard.persistence.store import MissionStore, sanitize
from missionboard.views.grouping import group_missions
from missionboard.views.partitioner import MissionView, ViewDescriptor, descriptor


def _as_location(value: Any) -> Location:
    return value if isinstance(value, Location) else Location.from_dict(value)


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)


class MissionService:
    """Unified mission engine facade.

    Usage:
        session = OrganizationSession("org-1")
        service = MissionService(session, InMemoryMissionStore())

        result = service.create_mission({"groupUid": "batch-7"})
        uid = result.data["mission_uid"]
        service.assign("vol-1", ActorProfile("Alice", "555"), uid)
        service.accept("vol-1", ActorProfile("Alice", "555"), uid)

        service.view(MissionView.PLANNING)
        service.groups(MissionView.INCOMPLETE)
    """

    def __init__(
        self,
        session: OrganizationSession,
        store: MissionStore,
        policy: Optional[TransitionPolicy] = None,
        event_log: Optional[EventLog] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._session = session
        self._store = store
        self._policy = policy or PermissivePolicy()
        self._event_log = event_log
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        # Initialize counter from persisted log to avoid ID collision on restart
        self._event_counter = event_log.count if event_log is not None else 0

    @property
    def organization_uid(self) -> str:
        return self._session.require()

    @property
    def policy(self) -> TransitionPolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Creation and updates
    # ------------------------------------------------------------------

    def create_mission(
        self,
        fields: Union[Mission, dict[str, Any], None] = None,
        actor_uid: str = "system",
    ) -> ServiceResult:
        """Create a mission from caller fields merged over the default record.

        ``uid`` and ``createdDate`` are always set here, whatever the
        caller passed.
        """
        org = self.organization_uid
        supplied = fields.to_dict() if isinstance(fields, Mission) else dict(fields or {})

        record = {**default_mission_data(), **supplied}
        if not record.get("organizationUid"):
            record["organizationUid"] = org
        record["uid"] = self._store.new_uid()
        record["createdDate"] = str(int(self._clock().timestamp() * 1000))
        if _as_location(record.get("deliveryLocation")).is_empty:
            record["deliveryLocation"] = _as_location(record.get("recipientLocation"))

        mission = self._store.create(org, sanitize(record))

        result_data: dict[str, Any] = {"mission_uid": mission.uid, "mission": mission}
        warning = self._record_event(
            EventKind.MISSION_CREATED, actor_uid,
            {"mission_uid": mission.uid, "status": mission.status.value},
        )
        if warning:
            result_data["warning"] = warning
        return ServiceResult(success=True, data=result_data)

    def update_mission(
        self,
        mission_uid: str,
        data: dict[str, Any],
        actor_uid: str = "system",
    ) -> ServiceResult:
        """Sanitize and write an arbitrary field delta.

        ``uid`` and ``organizationUid`` may be repeated but not changed; an
        attempt comes back as a failed result and nothing is written.
        """
        delta = sanitize(data)
        try:
            self._store.update(self.organization_uid, mission_uid, delta)
        except PreconditionViolation as e:
            return ServiceResult(
                success=False,
                errors=[str(e)],
                data={"error_kind": e.kind, "mission_uid": mission_uid},
            )

        result_data: dict[str, Any] = {"mission_uid": mission_uid, "delta": delta}
        warning = self._record_event(
            EventKind.MISSION_UPDATED, actor_uid,
            {"mission_uid": mission_uid, "fields": sorted(delta)},
        )
        if warning:
            result_data["warning"] = warning
        return ServiceResult(success=True, data=result_data)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def assign(self, user_uid: str, user: ActorProfile, mission_uid: str) -> ServiceResult:
        """User assigned as tentative volunteer for a mission."""
        return self.transition(MissionOperation.ASSIGN, mission_uid, user_uid, user)

    def accept(self, user_uid: str, user: ActorProfile, mission_uid: str) -> ServiceResult:
        return self.transition(MissionOperation.ACCEPT, mission_uid, user_uid, user)

    def start(self, user_uid: str, user: ActorProfile, mission_uid: str) -> ServiceResult:
        return self.transition(MissionOperation.START, mission_uid, user_uid, user)

    def deliver(self, user_uid: str, user: ActorProfile, mission_uid: str) -> ServiceResult:
        return self.transition(MissionOperation.DELIVER, mission_uid, user_uid, user)

    def unassign(self, mission_uid: str, organizer_uid: str = "") -> ServiceResult:
        """Volunteer is removed from a mission; it returns to the available pool."""
        return self.transition(MissionOperation.UNASSIGNED, mission_uid, organizer_uid)

    def transition(
        self,
        operation: MissionOperation,
        mission_uid: str,
        user_uid: str = "",
        user: Optional[ActorProfile] = None,
    ) -> ServiceResult:
        operation = MissionOperation(operation)
        org = self.organization_uid

        if not isinstance(self._policy, PermissivePolicy):
            mission = self._store.get_by_id(org, mission_uid)
            try:
                self._policy.check(mission, operation, user_uid)
            except PreconditionViolation as e:
                self._record_event(
                    EventKind.TRANSITION_REJECTED, user_uid or "system",
                    {
                        "mission_uid": mission_uid,
                        "operation": operation.value,
                        "status": mission.status.value,
                        "reason": str(e),
                    },
                )
                return ServiceResult(
                    success=False,
                    errors=[str(e)],
                    data={"error_kind": e.kind, "mission_uid": mission_uid},
                )

        delta = transitions.build_delta(operation, mission_uid, user_uid, user)
        self._store.update(org, mission_uid, sanitize(delta))

        result_data: dict[str, Any] = {
            "mission_uid": mission_uid,
            "status": delta["status"],
            "delta": delta,
        }
        warning = self._record_event(
            EventKind.MISSION_TRANSITION, user_uid or "system",
            {
                "mission_uid": mission_uid,
                "operation": operation.value,
                "status": delta["status"],
            },
        )
        if warning:
            result_data["warning"] = warning
        return ServiceResult(success=True, data=result_data)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_mission(self, mission_uid: str) -> Mission:
        """Fetch by uid. Raises NotFound or NoData."""
        return self._store.get_by_id(self.organization_uid, mission_uid)

    def get_all_available(self) -> list[Mission]:
        """All available missions. A mission is available if its status is tentative."""
        return self._store.where_status(self.organization_uid, MissionStatus.TENTATIVE)

    def history(self, mission_uid: str) -> list[str]:
        """Statuses the mission has passed through, from the audit log."""
        if self._event_log is None:
            return []
        return self._event_log.status_history(mission_uid)

    def view_descriptor(self, view: MissionView) -> ViewDescriptor:
        return descriptor(view, self.organization_uid)

    def view(self, view: MissionView) -> list[Mission]:
        return self._store.query(self.view_descriptor(view))

    def groups(self, view: Optional[MissionView] = None) -> GroupingResult:
        """Group the missions of ``view``, or of the whole organization."""
        if view is None:
            missions = self._store.list_all(self.organization_uid)
        else:
            missions = self.view(view)
        return group_missions(missions)

    def status(self) -> dict[str, Any]:
        """Return an organization-wide summary."""
        missions = self._store.list_all(self.organization_uid)
        by_status: dict[str, int] = {}
        for m in missions:
            by_status[m.status.value] = by_status.get(m.status.value, 0) + 1
        return {
            "organization_uid": self.organization_uid,
            "policy": self._policy.name,
            "missions": {
                "total": len(missions),
                "by_status": by_status,
                "by_view": {v.value: len(self.view(v)) for v in MissionView},
            },
            "events": self._event_log.count if self._event_log is not None else 0,
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _next_event_id(self) -> str:
        """Generate a monotonically increasing unique event ID."""
        self._event_counter += 1
        return f"EVT-{self._event_counter:08d}"

    def _record_event(
        self, kind: EventKind, actor_id: str, payload: dict[str, Any],
    ) -> Optional[str]:
        """Append an audit event. Returns a warning string or None."""
        if self._event_log is None:
            return None
        try:
            self._event_log.append(EventRecord.create(
                event_id=self._next_event_id(),
                event_kind=kind,
                actor_id=actor_id,
                payload=payload,
                timestamp_utc=self._clock(),
            ))
        except (ValueError, OSError) as e:
            return f"Event log failure: {e}"
        return None
