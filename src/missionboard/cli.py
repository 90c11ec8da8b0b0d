"""missionboard CLI — command-line interface for the mission engine.

Usage:
    python -m missionboard.cli --org org-1 status
    python -m missionboard.cli --org org-1 create-mission --group G-1 --group-name "Tuesday run"
    python -m missionboard.cli --org org-1 assign --mission M --user u1 --name Alice --phone 555
    python -m missionboard.cli --org org-1 accept --mission M --user u1 --name Alice --phone 555
    python -m missionboard.cli --org org-1 unassign --mission M
    python -m missionboard.cli --org org-1 update --mission M --status succeeded
    python -m missionboard.cli --org org-1 view planning
    python -m missionboard.cli --org org-1 groups --view incomplete
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import sys
from pathlib import Path
from typing import Any

from missionboard.config import MissionboardConfig
from missionboard.engine.policy import policy_from_name
from missionboard.engine.state_machine import MissionOperation
from missionboard.errors import MissionError
from missionboard.identity import OrganizationSession
from missionboard.models.mission import (
    ActorProfile,
    Mission,
    MissionFundedStatus,
    MissionStatus,
)
from missionboard.persistence.event_log import EventLog
from missionboard.persistence.store import InMemoryMissionStore
from missionboard.service import MissionService, ServiceResult
from missionboard.views.partitioner import MissionView


def _make_service(args: argparse.Namespace) -> MissionService:
    """Create a MissionService with durable persistence."""
    config = MissionboardConfig.from_env(args.env_file)
    if args.data_dir:
        config = dataclasses.replace(config, data_dir=args.data_dir)
    config.data_dir.mkdir(parents=True, exist_ok=True)
    policy = policy_from_name(args.policy) if args.policy else config.build_policy()
    return MissionService(
        OrganizationSession(args.org or config.organization_uid),
        InMemoryMissionStore(storage_path=config.store_path),
        policy=policy,
        event_log=EventLog(storage_path=config.event_log_path),
    )


def _summary(mission: Mission) -> dict[str, Any]:
    return {
        "uid": mission.uid,
        "status": mission.status.value,
        "fundedStatus": mission.funded_status.value,
        "groupUid": mission.group_uid,
        "tentativeVolunteerUid": mission.tentative_volunteer_uid,
        "volunteerUid": mission.volunteer_uid,
    }


def _report(result: ServiceResult, ok_message: str) -> int:
    if result.success:
        print(ok_message)
        if "warning" in result.data:
            print(f"Warning: {result.data['warning']}", file=sys.stderr)
        return 0
    print(f"Failed: {'; '.join(result.errors)}", file=sys.stderr)
    return 1


def cmd_status(args: argparse.Namespace) -> int:
    service = _make_service(args)
    print(json.dumps(service.status(), indent=2))
    return 0


def cmd_create_mission(args: argparse.Namespace) -> int:
    service = _make_service(args)
    fields: dict[str, Any] = {
        "groupUid": args.group or "",
        "groupDisplayName": args.group_name or "",
        "fundedStatus": args.funded,
    }
    if args.recipient:
        fields["recipientDisplayName"] = args.recipient
    result = service.create_mission(fields)
    return _report(result, f"Created mission: {result.data.get('mission_uid')}")


def cmd_update(args: argparse.Namespace) -> int:
    service = _make_service(args)
    fields: dict[str, Any] = {
        "status": args.status,
        "fundedStatus": args.funded,
        "deliveryNotes": args.notes,
        "feedbackNotes": args.feedback,
    }
    result = service.update_mission(
        args.mission, {k: v for k, v in fields.items() if v is not None},
    )
    return _report(result, f"Updated mission: {args.mission}")


def cmd_transition(args: argparse.Namespace) -> int:
    service = _make_service(args)
    operation = MissionOperation(args.command)
    result = service.transition(
        operation,
        args.mission,
        args.user,
        ActorProfile(display_name=args.name, phone_number=args.phone),
    )
    return _report(result, f"{args.mission}: {result.data.get('status')}")


def cmd_unassign(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.unassign(args.mission, organizer_uid=args.organizer or "")
    return _report(result, f"{args.mission}: {result.data.get('status')}")


def cmd_show(args: argparse.Namespace) -> int:
    service = _make_service(args)
    print(json.dumps(service.get_mission(args.mission).to_dict(), indent=2))
    return 0


def cmd_history(args: argparse.Namespace) -> int:
    service = _make_service(args)
    print(json.dumps(service.history(args.mission), indent=2))
    return 0


def cmd_view(args: argparse.Namespace) -> int:
    service = _make_service(args)
    missions = service.view(MissionView(args.view))
    print(json.dumps([_summary(m) for m in missions], indent=2))
    return 0


def cmd_available(args: argparse.Namespace) -> int:
    service = _make_service(args)
    print(json.dumps([_summary(m) for m in service.get_all_available()], indent=2))
    return 0


def cmd_groups(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.groups(MissionView(args.view) if args.view else None)
    print(json.dumps(
        {
            "groups": [
                {
                    "groupUid": g.group_uid,
                    "groupDisplayName": g.group_display_name,
                    "missions": [m.uid for m in g.missions],
                }
                for g in result.groups
            ],
            "singleMissions": [m.uid for m in result.single_missions],
        },
        indent=2,
    ))
    return 0


def _add_actor_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--mission", required=True, help="Mission uid")
    p.add_argument("--user", required=True, help="Acting user uid")
    p.add_argument("--name", default="", help="Acting user display name")
    p.add_argument("--phone", default="", help="Acting user phone number")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="missionboard",
        description="missionboard — mission lifecycle CLI",
    )
    parser.add_argument("--env-file", type=Path, help="Path to .env file (default: .env)")
    parser.add_argument("--data-dir", type=Path, help="Store directory (default: data/)")
    parser.add_argument("--org", help="Acting organization uid")
    parser.add_argument(
        "--policy",
        choices=["permissive", "state_machine", "strict"],
        help="Transition precondition policy",
    )
    sub = parser.add_subparsers(dest="command")

    # status
    sub.add_parser("status", help="Show organization status")

    # create-mission
    p_create = sub.add_parser("create-mission", help="Create a new mission")
    p_create.add_argument("--group", help="Group uid")
    p_create.add_argument("--group-name", help="Group display name")
    p_create.add_argument("--recipient", help="Recipient display name")
    p_create.add_argument(
        "--funded", default=MissionFundedStatus.NOT_FUNDED.value,
        choices=[s.value for s in MissionFundedStatus],
        help="Funded status (default: notfunded)",
    )

    # update
    p_update = sub.add_parser("update", help="Set fields on a mission (e.g. close it out)")
    p_update.add_argument("--mission", required=True, help="Mission uid")
    p_update.add_argument("--status", choices=[s.value for s in MissionStatus])
    p_update.add_argument("--funded", choices=[s.value for s in MissionFundedStatus])
    p_update.add_argument("--notes", help="Delivery notes")
    p_update.add_argument("--feedback", help="Feedback notes")

    # lifecycle operations driven by a volunteer
    for op in ("assign", "accept", "start", "deliver"):
        _add_actor_args(sub.add_parser(op, help=f"{op.capitalize()} a mission"))

    # unassign
    p_unassign = sub.add_parser("unassign", help="Release a mission's volunteer")
    p_unassign.add_argument("--mission", required=True, help="Mission uid")
    p_unassign.add_argument("--organizer", help="Organizer uid")

    # reads
    p_show = sub.add_parser("show", help="Show one mission")
    p_show.add_argument("--mission", required=True, help="Mission uid")

    p_history = sub.add_parser("history", help="Show a mission's status history")
    p_history.add_argument("--mission", required=True, help="Mission uid")

    p_view = sub.add_parser("view", help="List missions in a named view")
    p_view.add_argument("view", choices=[v.value for v in MissionView])

    sub.add_parser("available", help="List available (tentative) missions")

    p_groups = sub.add_parser("groups", help="Group missions by batch")
    p_groups.add_argument("--view", choices=[v.value for v in MissionView])

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "status": cmd_status,
        "create-mission": cmd_create_mission,
        "update": cmd_update,
        "assign": cmd_transition,
        "accept": cmd_transition,
        "start": cmd_transition,
        "deliver": cmd_transition,
        "unassign": cmd_unassign,
        "show": cmd_show,
        "history": cmd_history,
        "view": cmd_view,
        "available": cmd_available,
        "groups": cmd_groups,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        return handler(args)
    except (MissionError, ValueError) as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
