"""missionboard — mission lifecycle state machine and view engine.

A mission is a delivery/errand task connecting an organization, a
recipient and a volunteer. This package defines its states, the deltas
each volunteer/organizer action writes, the named views of a mission
collection, and batch grouping.
"""

from missionboard.models.mission import Mission, MissionFundedStatus, MissionStatus
from missionboard.service import MissionService, ServiceResult

__version__ = "0.1.0"

__all__ = [
    "Mission",
    "MissionFundedStatus",
    "MissionService",
    "MissionStatus",
    "ServiceResult",
]
