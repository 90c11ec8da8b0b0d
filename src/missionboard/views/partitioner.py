"""Named mission views — predicates over status and funded status.

    proposed     status == unassigned AND fundedStatus == notfunded
    planning     status in {tentative, assigned}
    in_progress  status in {started, delivered}
    done         status in {succeeded, failed}
    incomplete   status in {tentative, assigned, started, delivered}

Views never copy or mutate missions; they only filter. Each view also
has a query descriptor that the store evaluates verbatim, and a store key
under which the live feed keeps its ordered result.

A mission that is unassigned and funded belongs to no view.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Union

from missionboard.models.mission import Mission, MissionFundedStatus, MissionStatus


class MissionView(str, enum.Enum):
    PROPOSED = "proposed"
    PLANNING = "planning"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    INCOMPLETE = "incomplete"

    @property
    def store_as(self) -> str:
        return _STORE_KEYS[self]


_STORE_KEYS: dict[MissionView, str] = {
    MissionView.PROPOSED: "missionsInProposed",
    MissionView.PLANNING: "missionsInPlanning",
    MissionView.IN_PROGRESS: "missionsInProgress",
    MissionView.DONE: "missionsInDone",
    MissionView.INCOMPLETE: "incompleteMissions",
}

_PLANNING = (MissionStatus.TENTATIVE, MissionStatus.ASSIGNED)
_IN_PROGRESS = (MissionStatus.STARTED, MissionStatus.DELIVERED)

# View -> allowed statuses. PROPOSED additionally pins fundedStatus.
_VIEW_STATUSES: dict[MissionView, tuple[MissionStatus, ...]] = {
    MissionView.PROPOSED: (MissionStatus.UNASSIGNED,),
    MissionView.PLANNING: _PLANNING,
    MissionView.IN_PROGRESS: _IN_PROGRESS,
    MissionView.DONE: (MissionStatus.SUCCEEDED, MissionStatus.FAILED),
    MissionView.INCOMPLETE: _PLANNING + _IN_PROGRESS,
}


Record = Union[Mission, Mapping[str, Any]]


@dataclass(frozen=True)
class WhereClause:
    """One ``[field, op, value]`` condition. Supported ops: ``==`` and ``in``."""
    field: str
    op: str
    value: Any

    def matches(self, record: Mapping[str, Any]) -> bool:
        actual = record.get(self.field)
        if self.op == "==":
            return actual == self.value
        if self.op == "in":
            return actual in self.value
        raise ValueError(f"Unsupported where operator: {self.op}")

    def to_list(self) -> list[Any]:
        value = list(self.value) if self.op == "in" else self.value
        return [self.field, self.op, value]


@dataclass(frozen=True)
class SubcollectionQuery:
    collection: str
    where: tuple[WhereClause, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "collection": self.collection,
            "where": [w.to_list() for w in self.where],
        }


@dataclass(frozen=True)
class ViewDescriptor:
    """Query for a pre-filtered mission collection of one organization."""
    collection: str
    doc: str
    subcollections: tuple[SubcollectionQuery, ...]
    store_as: str

    @property
    def organization_uid(self) -> str:
        return self.doc

    def matches(self, record: Record) -> bool:
        """Evaluate every where clause against a single record."""
        data = record.to_dict() if isinstance(record, Mission) else record
        return all(
            clause.matches(data)
            for sub in self.subcollections
            for clause in sub.where
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "collection": self.collection,
            "doc": self.doc,
            "subcollections": [s.to_dict() for s in self.subcollections],
            "storeAs": self.store_as,
        }


def _where(view: MissionView) -> tuple[WhereClause, ...]:
    statuses = _VIEW_STATUSES[view]
    if view == MissionView.PROPOSED:
        return (
            WhereClause("status", "==", statuses[0].value),
            WhereClause("fundedStatus", "==", MissionFundedStatus.NOT_FUNDED.value),
        )
    return (WhereClause("status", "in", tuple(s.value for s in statuses)),)


def descriptor(view: MissionView, organization_uid: str) -> ViewDescriptor:
    view = MissionView(view)
    return ViewDescriptor(
        collection="organizations",
        doc=organization_uid,
        subcollections=(SubcollectionQuery("missions", _where(view)),),
        store_as=view.store_as,
    )


def matches(
    view: MissionView,
    status: MissionStatus,
    funded_status: MissionFundedStatus,
) -> bool:
    """Does a status/funded-status pair belong to ``view``?"""
    view = MissionView(view)
    if MissionStatus(status) not in _VIEW_STATUSES[view]:
        return False
    if view == MissionView.PROPOSED:
        return MissionFundedStatus(funded_status) == MissionFundedStatus.NOT_FUNDED
    return True


def predicate(view: MissionView) -> Callable[[Mission], bool]:
    """Single-record classifier for ``view``."""
    view = MissionView(view)

    def _pred(mission: Mission) -> bool:
        return matches(view, mission.status, mission.funded_status)

    return _pred


def views_for(
    status: MissionStatus,
    funded_status: MissionFundedStatus,
) -> list[MissionView]:
    """All views a status/funded-status pair belongs to, in declaration order."""
    return [v for v in MissionView if matches(v, status, funded_status)]


def filter_view(missions: Iterable[Mission], view: MissionView) -> list[Mission]:
    pred = predicate(view)
    return [m for m in missions if pred(m)]


def filter_by_status(missions: Iterable[Mission], status: MissionStatus) -> list[Mission]:
    """Missions whose status equals ``status`` exactly, in input order."""
    status = MissionStatus(status)
    return [m for m in missions if m.status == status]


def select(state: Mapping[str, Any], view: MissionView) -> list[Any]:
    """Read the ordered result the live feed stored for ``view``.

    ``state`` is a feed snapshot shaped ``{"ordered": {store_as: [...]}}``.
    Missing entries read as an empty list.
    """
    ordered = state.get("ordered") or {}
    return list(ordered.get(MissionView(view).store_as) or [])
