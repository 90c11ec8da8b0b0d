"""Grouping engine — batch missions that share a group uid.

Single pass over the input with a dict index keyed by group uid:
- groups appear in first-seen order of their uid,
- each group's missions keep input order,
- a group's display name comes from the first mission seen for it,
- missions with an empty group uid are standalone.
"""

from __future__ import annotations

from typing import Iterable

from missionboard.models.mission import GroupingResult, Mission, MissionGroup


def group_missions(missions: Iterable[Mission]) -> GroupingResult:
    result = GroupingResult()
    index: dict[str, MissionGroup] = {}

    for mission in missions:
        if not mission.is_grouped:
            result.single_missions.append(mission)
            continue

        group = index.get(mission.group_uid)
        if group is None:
            group = MissionGroup(
                group_uid=mission.group_uid,
                group_display_name=mission.group_display_name,
            )
            index[mission.group_uid] = group
            result.groups.append(group)
        group.missions.append(mission)

    return result
