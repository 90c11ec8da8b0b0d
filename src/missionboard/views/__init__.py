"""Mission views — named partitions and batch grouping."""

from missionboard.views.grouping import group_missions
from missionboard.views.partitioner import (
    MissionView,
    ViewDescriptor,
    descriptor,
    filter_by_status,
    filter_view,
    predicate,
    select,
    views_for,
)

__all__ = [
    "MissionView",
    "ViewDescriptor",
    "descriptor",
    "filter_by_status",
    "filter_view",
    "group_missions",
    "predicate",
    "select",
    "views_for",
]
