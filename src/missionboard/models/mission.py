"""Mission record — the central entity of the delivery lifecycle.

A mission connects an organization, a recipient and a volunteer:

    unassigned → tentative → assigned → started → delivered → succeeded / failed

Status and funded status are independent axes. The record is stored by
the document store in its wire form (camelCase keys); in Python it is a
dataclass with snake_case attributes. ``Mission.from_dict`` always merges
over the default record, so partial documents load into complete missions.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Optional


class MissionStatus(str, enum.Enum):
    """Lifecycle state of a mission."""
    UNASSIGNED = "unassigned"
    TENTATIVE = "tentative"
    ASSIGNED = "assigned"
    STARTED = "started"
    DELIVERED = "delivered"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class MissionFundedStatus(str, enum.Enum):
    """Whether a mission's costs are covered."""
    NOT_FUNDED = "notfunded"
    FUNDED = "funded"


class MissionType(str, enum.Enum):
    ERRAND = "errand"


class TimeWindowType(str, enum.Enum):
    EXACT = "exact"
    WHENEVER = "whenever"


DEFAULT_RECIPIENT_DISPLAY_NAME = "No Recipient Name"
DEFAULT_RECIPIENT_UID = "No Recipient Id"


@dataclass
class Location:
    """An address with coordinates and a display label."""
    address: str = ""
    lat: float = 0
    lng: float = 0
    label: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.address or self.label or self.lat or self.lng)

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "lat": self.lat,
            "lng": self.lng,
            "label": self.label,
        }

    @staticmethod
    def from_dict(data: Optional[dict[str, Any]]) -> Location:
        data = data or {}
        return Location(
            address=data.get("address", ""),
            lat=data.get("lat", 0),
            lng=data.get("lng", 0),
            label=data.get("label", ""),
        )


@dataclass
class TimeWindow:
    """Either an exact start time or an open-ended "whenever" marker."""
    start_time: str = ""
    time_window_type: TimeWindowType = TimeWindowType.WHENEVER

    def to_dict(self) -> dict[str, Any]:
        return {
            "startTime": self.start_time,
            "timeWindowType": self.time_window_type.value,
        }

    @staticmethod
    def from_dict(data: Optional[dict[str, Any]]) -> TimeWindow:
        data = data or {}
        return TimeWindow(
            start_time=data.get("startTime", ""),
            time_window_type=TimeWindowType(
                data.get("timeWindowType", TimeWindowType.WHENEVER.value)
            ),
        )


@dataclass(frozen=True)
class ActorProfile:
    """Contact details supplied by the identity collaborator for the acting user."""
    display_name: str = ""
    phone_number: str = ""

    @staticmethod
    def from_dict(data: Optional[dict[str, Any]]) -> ActorProfile:
        data = data or {}
        return ActorProfile(
            display_name=data.get("displayName", ""),
            phone_number=data.get("phoneNumber", ""),
        )


@dataclass(frozen=True)
class VolunteerSlot:
    """Read view over one of the mission's three actor slots."""
    uid: str
    display_name: str
    phone_number: str

    @property
    def is_empty(self) -> bool:
        return not self.uid


# (attribute, wire key) in document order.
_WIRE_FIELDS: tuple[tuple[str, str], ...] = (
    ("uid", "uid"),
    ("mission_type", "type"),
    ("status", "status"),
    ("created_date", "createdDate"),
    ("mission_details", "missionDetails"),
    ("funded_status", "fundedStatus"),
    ("funded_date", "fundedDate"),
    ("ready_to_start", "readyToStart"),
    ("organization_uid", "organizationUid"),
    ("group_uid", "groupUid"),
    ("group_display_name", "groupDisplayName"),
    ("tentative_volunteer_display_name", "tentativeVolunteerDisplayName"),
    ("tentative_volunteer_uid", "tentativeVolunteerUid"),
    ("tentative_volunteer_phone_number", "tentativeVolunteerPhoneNumber"),
    ("volunteer_uid", "volunteerUid"),
    ("volunteer_display_name", "volunteerDisplayName"),
    ("volunteer_phone_number", "volunteerPhoneNumber"),
    ("recipient_display_name", "recipientDisplayName"),
    ("recipient_phone_number", "recipientPhoneNumber"),
    ("recipient_uid", "recipientUid"),
    ("recipient_location", "recipientLocation"),
    ("pick_up_window", "pickUpWindow"),
    ("pick_up_location", "pickUpLocation"),
    ("delivery_window", "deliveryWindow"),
    ("delivery_location", "deliveryLocation"),
    ("delivery_confirmation_image", "deliveryConfirmationImage"),
    ("delivery_notes", "deliveryNotes"),
    ("feedback_notes", "feedbackNotes"),
)

WIRE_KEYS: frozenset[str] = frozenset(wire for _, wire in _WIRE_FIELDS)
NULLABLE_WIRE_KEYS: frozenset[str] = frozenset({"missionDetails", "fundedDate"})

_ENUM_FIELDS: dict[str, type[enum.Enum]] = {
    "mission_type": MissionType,
    "status": MissionStatus,
    "funded_status": MissionFundedStatus,
}
_WINDOW_FIELDS = frozenset({"pick_up_window", "delivery_window"})
_LOCATION_FIELDS = frozenset({"pick_up_location", "delivery_location", "recipient_location"})


@dataclass
class Mission:
    """A single delivery/errand task.

    ``uid`` and ``organization_uid`` are fixed once the store has issued
    them. Everything under the actor slots is rewritten as a whole by the
    transition engine, never piecemeal.
    """
    uid: str = ""
    mission_type: MissionType = MissionType.ERRAND
    status: MissionStatus = MissionStatus.UNASSIGNED
    created_date: str = ""
    mission_details: Optional[Any] = None
    funded_status: MissionFundedStatus = MissionFundedStatus.NOT_FUNDED
    funded_date: Optional[str] = None
    ready_to_start: bool = False
    organization_uid: str = ""

    group_uid: str = ""
    group_display_name: str = ""

    tentative_volunteer_display_name: str = ""
    tentative_volunteer_uid: str = ""
    tentative_volunteer_phone_number: str = ""

    volunteer_uid: str = ""
    volunteer_display_name: str = ""
    volunteer_phone_number: str = ""

    recipient_display_name: str = DEFAULT_RECIPIENT_DISPLAY_NAME
    recipient_phone_number: str = ""
    recipient_uid: str = DEFAULT_RECIPIENT_UID
    recipient_location: Location = field(default_factory=Location)

    pick_up_window: TimeWindow = field(default_factory=TimeWindow)
    pick_up_location: Location = field(default_factory=Location)
    delivery_window: TimeWindow = field(default_factory=TimeWindow)
    delivery_location: Location = field(default_factory=Location)

    delivery_confirmation_image: str = ""
    delivery_notes: str = ""
    feedback_notes: str = ""

    @property
    def tentative_volunteer(self) -> VolunteerSlot:
        return VolunteerSlot(
            self.tentative_volunteer_uid,
            self.tentative_volunteer_display_name,
            self.tentative_volunteer_phone_number,
        )

    @property
    def volunteer(self) -> VolunteerSlot:
        return VolunteerSlot(
            self.volunteer_uid,
            self.volunteer_display_name,
            self.volunteer_phone_number,
        )

    @property
    def recipient(self) -> VolunteerSlot:
        return VolunteerSlot(
            self.recipient_uid,
            self.recipient_display_name,
            self.recipient_phone_number,
        )

    @property
    def is_grouped(self) -> bool:
        """A mission with an empty group uid is standalone, whatever its label."""
        return bool(self.group_uid)

    def to_dict(self) -> dict[str, Any]:
        """Wire form, as written to the document store."""
        data: dict[str, Any] = {}
        for attr, wire in _WIRE_FIELDS:
            value = getattr(self, attr)
            if isinstance(value, enum.Enum):
                value = value.value
            elif isinstance(value, (TimeWindow, Location)):
                value = value.to_dict()
            data[wire] = value
        return data

    @staticmethod
    def from_dict(data: Optional[dict[str, Any]]) -> Mission:
        """Load a wire-form document, merged over the default record.

        Unknown keys are ignored.
        """
        data = data or {}
        kwargs: dict[str, Any] = {}
        for attr, wire in _WIRE_FIELDS:
            if wire not in data:
                continue
            value = data[wire]
            if attr in _ENUM_FIELDS:
                value = _ENUM_FIELDS[attr](value)
            elif attr in _WINDOW_FIELDS:
                value = value if isinstance(value, TimeWindow) else TimeWindow.from_dict(value)
            elif attr in _LOCATION_FIELDS:
                value = value if isinstance(value, Location) else Location.from_dict(value)
            kwargs[attr] = value
        return Mission(**kwargs)


def default_mission_data() -> dict[str, Any]:
    """Return a fresh wire-form default record."""
    return Mission().to_dict()


@dataclass
class MissionGroup:
    """Missions sharing a batch identifier, displayed together."""
    group_uid: str
    group_display_name: str
    missions: list[Mission] = field(default_factory=list)


@dataclass
class GroupingResult:
    """Output of the grouping engine: groups in first-seen order plus standalone missions."""
    groups: list[MissionGroup] = field(default_factory=list)
    single_missions: list[Mission] = field(default_factory=list)
