"""Tests for the append-only mission event log."""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from missionboard.persistence.event_log import EventKind, EventLog, EventRecord


def _make_event(event_id: str = "EVT-00000001", mission_uid: str = "m1") -> EventRecord:
    return EventRecord.create(
        event_id=event_id,
        event_kind=EventKind.MISSION_TRANSITION,
        actor_id="u1",
        payload={"mission_uid": mission_uid, "operation": "assign", "status": "tentative"},
        timestamp_utc=datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
    )


class TestEventRecord:
    def test_hash_is_deterministic(self) -> None:
        assert _make_event().event_hash == _make_event().event_hash
        assert _make_event().event_hash.startswith("sha256:")

    def test_hash_covers_payload(self) -> None:
        assert _make_event(mission_uid="m1").event_hash != _make_event(mission_uid="m2").event_hash

    def test_timestamp_format(self) -> None:
        assert _make_event().timestamp_utc == "2026-01-02T03:04:05Z"

    def test_mission_uid(self) -> None:
        assert _make_event().mission_uid == "m1"


class TestEventLog:
    def test_append_and_filter(self) -> None:
        log = EventLog()
        log.append(_make_event("E1"))
        log.append(EventRecord.create(
            "E2", EventKind.MISSION_CREATED, "system", {"mission_uid": "m2"},
        ))
        assert log.count == 2
        assert [e.event_id for e in log.events(EventKind.MISSION_CREATED)] == ["E2"]
        assert log.last_event.event_id == "E2"

    def test_duplicate_rejected(self) -> None:
        log = EventLog()
        log.append(_make_event("E1"))
        with pytest.raises(ValueError, match="Duplicate event ID"):
            log.append(_make_event("E1"))
        assert log.count == 1

    def test_for_mission(self) -> None:
        log = EventLog()
        log.append(_make_event("E1", "m1"))
        log.append(_make_event("E2", "m2"))
        log.append(_make_event("E3", "m1"))
        assert [e.event_id for e in log.for_mission("m1")] == ["E1", "E3"]

    def test_empty_log(self) -> None:
        log = EventLog()
        assert log.count == 0
        assert log.last_event is None


class TestFilePersistence:
    def test_reload(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        log = EventLog(storage_path=path)
        log.append(_make_event("E1"))
        log.append(_make_event("E2"))

        reloaded = EventLog(storage_path=path)
        assert reloaded.count == 2
        assert reloaded.events()[0] == log.events()[0]

    def test_tampered_record_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        EventLog(storage_path=path).append(_make_event("E1"))

        record = json.loads(path.read_text(encoding="utf-8"))
        record["payload"]["status"] = "delivered"
        path.write_text(json.dumps(record) + "\n", encoding="utf-8")

        with pytest.raises(ValueError, match="Integrity check failed"):
            EventLog(storage_path=path)

    def test_duplicate_on_recovery_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        line = json.dumps(_make_event("E1").to_dict())
        path.write_text(line + "\n" + line + "\n", encoding="utf-8")
        with pytest.raises(ValueError, match="Duplicate event ID on recovery"):
            EventLog(storage_path=path)

    def test_blank_lines_skipped(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        path.write_text("\n" + json.dumps(_make_event("E1").to_dict()) + "\n\n", encoding="utf-8")
        assert EventLog(storage_path=path).count == 1


class TestStatusHistory:
    def test_replays_created_and_transitions(self) -> None:
        log = EventLog()
        log.append(EventRecord.create(
            "E1", EventKind.MISSION_CREATED, "system",
            {"mission_uid": "m1", "status": "unassigned"},
        ))
        log.append(_make_event("E2", "m1"))
        log.append(EventRecord.create(
            "E3", EventKind.TRANSITION_REJECTED, "u2",
            {"mission_uid": "m1", "operation": "start", "status": "tentative"},
        ))
        log.append(EventRecord.create(
            "E4", EventKind.MISSION_UPDATED, "system",
            {"mission_uid": "m1", "fields": ["deliveryNotes"]},
        ))
        assert log.status_history("m1") == ["unassigned", "tentative"]
        assert log.status_history("m2") == []
