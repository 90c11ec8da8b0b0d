"""Runtime configuration from the environment and an optional ``.env`` file.

Variables:
    MISSIONBOARD_ORGANIZATION_UID   acting organization (default: empty)
    MISSIONBOARD_DATA_DIR           store and event log directory (default: data/)
    MISSIONBOARD_TRANSITION_POLICY  permissive | state_machine | strict
                                    (default: permissive)

Values already present in the process environment win over the file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from missionboard.engine.policy import TransitionPolicy, policy_from_name

ROOT = Path(__file__).resolve().parents[2]
DEFAULT_DATA_DIR = ROOT / "data"
DEFAULT_POLICY = "permissive"


@dataclass(frozen=True)
class MissionboardConfig:
    organization_uid: str = ""
    data_dir: Path = DEFAULT_DATA_DIR
    transition_policy: str = DEFAULT_POLICY

    @property
    def store_path(self) -> Path:
        return self.data_dir / "missions.json"

    @property
    def event_log_path(self) -> Path:
        return self.data_dir / "events.jsonl"

    def build_policy(self) -> TransitionPolicy:
        return policy_from_name(self.transition_policy)

    @staticmethod
    def from_env(env_file: Optional[Path] = None) -> MissionboardConfig:
        """Load ``env_file`` (or ``ROOT/.env``) and read the MISSIONBOARD_* variables."""
        load_dotenv(env_file or ROOT / ".env")

        data_dir = os.getenv("MISSIONBOARD_DATA_DIR")
        config = MissionboardConfig(
            organization_uid=os.getenv("MISSIONBOARD_ORGANIZATION_UID", "").strip(),
            data_dir=Path(data_dir) if data_dir else DEFAULT_DATA_DIR,
            transition_policy=os.getenv("MISSIONBOARD_TRANSITION_POLICY", DEFAULT_POLICY),
        )
        config.build_policy()  # raises ValueError on an unknown policy name
        return config
