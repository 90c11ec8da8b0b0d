"""Core data models for missionboard."""

from missionboard.models.mission import (
    ActorProfile,
    GroupingResult,
    Location,
    Mission,
    MissionFundedStatus,
    MissionGroup,
    MissionStatus,
    MissionType,
    TimeWindow,
    TimeWindowType,
    VolunteerSlot,
    default_mission_data,
)

__all__ = [
    "ActorProfile",
    "GroupingResult",
    "Location",
    "Mission",
    "MissionFundedStatus",
    "MissionGroup",
    "MissionStatus",
    "MissionType",
    "TimeWindow",
    "TimeWindowType",
    "VolunteerSlot",
    "default_mission_data",
]
