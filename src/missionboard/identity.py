"""Acting organization for the current session.

Every store path and view descriptor is scoped to one organization. The
session is handed in by whatever authenticated the caller; this module
only holds it.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class OrganizationSession:
    organization_uid: str = ""

    @property
    def is_set(self) -> bool:
        return bool(self.organization_uid.strip())

    def require(self) -> str:
        """Return the organization uid. Raises ValueError if none is set."""
        if not self.is_set:
            raise ValueError("No organization selected for this session")
        return self.organization_uid.strip()
