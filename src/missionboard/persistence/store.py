"""Mission store — the persistence collaborator and its in-memory backend.

Any store must satisfy the MissionStore Protocol. The engine never
reaches past it: missions live under ``organizations/<org>/missions/<uid>``
and are addressed by (organization uid, mission uid). View descriptors
from ``missionboard.views.partitioner`` are evaluated verbatim.

InMemoryMissionStore keeps documents in their wire form, optionally
snapshotting them to a JSON file after each write. It also serves the
live-view feed: subscribers get the current ordered result of their
view immediately and after every write.
"""

from __future__ import annotations

import enum
import json
import os
import uuid
from pathlib import Path
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from missionboard.errors import NoData, NotFound, PersistenceFailure, PreconditionViolation
from missionboard.models.mission import (
    NULLABLE_WIRE_KEYS,
    WIRE_KEYS,
    Location,
    Mission,
    MissionStatus,
    TimeWindow,
)
from missionboard.views.partitioner import ViewDescriptor

FeedCallback = Callable[[list[Mission]], None]


def sanitize(data: dict[str, Any]) -> dict[str, Any]:
    """Strip a document down to known mission fields.

    Unknown keys are dropped, ``None`` is dropped except on nullable
    fields, and enums / value types are reduced to their wire form.
    """
    clean: dict[str, Any] = {}
    for key, value in data.items():
        if key not in WIRE_KEYS:
            continue
        if value is None and key not in NULLABLE_WIRE_KEYS:
            continue
        if isinstance(value, enum.Enum):
            value = value.value
        elif isinstance(value, (TimeWindow, Location)):
            value = value.to_dict()
        clean[key] = value
    return clean


@runtime_checkable
class MissionStore(Protocol):
    """Contract between the engine and whatever holds the missions."""

    def new_uid(self) -> str:
        """Reserve a fresh document id."""
        ...

    def create(self, organization_uid: str, record: dict[str, Any]) -> Mission:
        ...

    def update(self, organization_uid: str, mission_uid: str, delta: dict[str, Any]) -> None:
        """Merge ``delta`` into the document. ``uid`` and ``organizationUid`` never change."""
        ...

    def get_by_id(self, organization_uid: str, mission_uid: str) -> Mission:
        """Raises NotFound if absent, NoData if the document is empty."""
        ...

    def query(self, descriptor: ViewDescriptor) -> list[Mission]:
        ...

    def where_status(self, organization_uid: str, status: MissionStatus) -> list[Mission]:
        ...

    def list_all(self, organization_uid: str) -> list[Mission]:
        ...


class InMemoryMissionStore:
    """Dict-backed store with optional JSON snapshot persistence.

    Snapshot layout: ``{"organizations": {org_uid: {mission_uid: doc}}}``.
    A failed snapshot write rolls the in-memory change back and raises
    PersistenceFailure.
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._storage_path = storage_path
        self._orgs: dict[str, dict[str, dict[str, Any]]] = {}
        self._subscriptions: dict[int, tuple[ViewDescriptor, FeedCallback]] = {}
        self._next_subscription = 0
        # Feed snapshot: {"ordered": {store_as: [Mission, ...]}}
        self.state: dict[str, dict[str, list[Mission]]] = {"ordered": {}}

        if storage_path and storage_path.exists():
            self._load_from_file(storage_path)

    # ------------------------------------------------------------------
    # MissionStore contract
    # ------------------------------------------------------------------

    def new_uid(self) -> str:
        return uuid.uuid4().hex[:20]

    def create(self, organization_uid: str, record: dict[str, Any]) -> Mission:
        uid = record.get("uid") or self.new_uid()
        missions = self._orgs.setdefault(organization_uid, {})
        if uid in missions:
            raise PersistenceFailure(f"Mission already exists: {uid}", mission_uid=uid)

        doc = {**record, "uid": uid}
        mission = Mission.from_dict(doc)  # raises ValueError before anything is stored
        missions[uid] = doc

        def _rollback() -> None:
            missions.pop(uid, None)

        self._commit(_rollback)
        return mission

    def update(self, organization_uid: str, mission_uid: str, delta: dict[str, Any]) -> None:
        doc = self._orgs.get(organization_uid, {}).get(mission_uid)
        if doc is None:
            raise NotFound(f"This mission: {mission_uid} does not exist", mission_uid=mission_uid)
        for key, stored in (("uid", mission_uid), ("organizationUid", doc.get("organizationUid"))):
            if key in delta and delta[key] != stored:
                raise PreconditionViolation(
                    f"{mission_uid}: {key} cannot change ({stored!r} -> {delta[key]!r})",
                    mission_uid=mission_uid,
                    operation="update",
                )
        Mission.from_dict({**doc, **delta})

        previous = dict(doc)
        doc.update(delta)

        def _rollback() -> None:
            doc.clear()
            doc.update(previous)

        self._commit(_rollback)

    def get_by_id(self, organization_uid: str, mission_uid: str) -> Mission:
        missions = self._orgs.get(organization_uid, {})
        if mission_uid not in missions:
            raise NotFound(f"This mission: {mission_uid} does not exist", mission_uid=mission_uid)
        doc = missions[mission_uid]
        if not doc:
            raise NoData(f"no data for this mission: {mission_uid}", mission_uid=mission_uid)
        return Mission.from_dict(doc)

    def query(self, descriptor: ViewDescriptor) -> list[Mission]:
        return [
            Mission.from_dict(doc)
            for doc in self._orgs.get(descriptor.organization_uid, {}).values()
            if doc and descriptor.matches(doc)
        ]

    def where_status(self, organization_uid: str, status: MissionStatus) -> list[Mission]:
        status_value = MissionStatus(status).value
        return [
            Mission.from_dict(doc)
            for doc in self._orgs.get(organization_uid, {}).values()
            if doc.get("status") == status_value
        ]

    def list_all(self, organization_uid: str) -> list[Mission]:
        return [
            Mission.from_dict(doc)
            for doc in self._orgs.get(organization_uid, {}).values()
            if doc
        ]

    # ------------------------------------------------------------------
    # Live-view feed
    # ------------------------------------------------------------------

    def subscribe(self, descriptor: ViewDescriptor, callback: FeedCallback) -> Callable[[], None]:
        """Feed ``callback`` the view's current result now and after every write.

        Returns an unsubscribe function.
        """
        key = self._next_subscription
        self._next_subscription += 1
        self._subscriptions[key] = (descriptor, callback)
        self._publish(descriptor, callback)

        def _unsubscribe() -> None:
            self._subscriptions.pop(key, None)

        return _unsubscribe

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    def _publish(self, descriptor: ViewDescriptor, callback: FeedCallback) -> None:
        missions = self.query(descriptor)
        self.state["ordered"][descriptor.store_as] = missions
        callback(list(missions))

    def _notify(self) -> None:
        for descriptor, callback in list(self._subscriptions.values()):
            self._publish(descriptor, callback)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _commit(self, on_rollback: Callable[[], None]) -> None:
        try:
            self._save_to_file()
        except OSError as e:
            on_rollback()
            raise PersistenceFailure(f"Persistence failure: {e}") from e
        self._notify()

    def _save_to_file(self) -> None:
        if self._storage_path is None:
            return
        tmp = self._storage_path.with_suffix(self._storage_path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump({"organizations": self._orgs}, f, indent=2, ensure_ascii=False)
        os.replace(tmp, self._storage_path)

    def _load_from_file(self, path: Path) -> None:
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceFailure(f"Cannot load mission store {path}: {e}") from e
        self._orgs = {
            org: dict(missions)
            for org, missions in data.get("organizations", {}).items()
        }
