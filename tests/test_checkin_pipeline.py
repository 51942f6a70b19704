from __future__ import annotations

import base64
import sys
from pathlib import Path
from typing import Any, List, Optional, Tuple

import pytest
from sqlalchemy import delete

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.checkin import CheckinPipeline
from app.database import SessionLocal, init_db
from app.errors import AlreadyCheckedIn, GenerationFailed, InvalidScan, ParticipantNotFound
from app.models import Participant
from app.schemas import ParticipantEntry
from app.stats import compute_stats


class RecordingChannel:
    def __init__(self) -> None:
        self.events: List[Tuple[Optional[str], str, Any]] = []

    def broadcast(self, room: Optional[str], event: str, data: Any = None) -> None:
        self.events.append((room, event, data))


class FakeCodec:
    def __init__(self, fail_on: Optional[str] = None) -> None:
        self.fail_on = fail_on
        self.encoded: List[str] = []

    def encode(self, participant_id: str) -> str:
        if participant_id == self.fail_on:
            raise ValueError("cannot encode")
        self.encoded.append(participant_id)
        return "data:image/png;base64," + base64.b64encode(participant_id.encode()).decode()


def _entries(ids, room: Optional[str] = "Mặt trận") -> List[ParticipantEntry]:
    return [ParticipantEntry(id=i, name=f"Đại biểu {i}", organization="Org", room=room) for i in ids]


@pytest.fixture()
def db():
    init_db()
    session = SessionLocal()
    try:
        session.execute(delete(Participant))
        session.commit()
        yield session
    finally:
        session.close()


@pytest.fixture()
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture()
def pipeline(db, channel) -> CheckinPipeline:
    return CheckinPipeline(db, channel, FakeCodec())


def test_unknown_id_is_not_found_and_silent(pipeline: CheckinPipeline, channel: RecordingChannel) -> None:
    with pytest.raises(ParticipantNotFound):
        pipeline.check_in("never-registered")
    assert channel.events == []


def test_blank_id_is_invalid(pipeline: CheckinPipeline, channel: RecordingChannel) -> None:
    with pytest.raises(InvalidScan):
        pipeline.check_in("  ")
    assert channel.events == []


def test_checkin_flips_flag_and_broadcasts_once(db, pipeline: CheckinPipeline, channel: RecordingChannel) -> None:
    pipeline.generate(_entries(["A", "B", "C"]))
    channel.events.clear()

    result = pipeline.check_in("B")

    assert result.message == "Check-in successful"
    assert result.participant.room == "Mặt trận"
    assert result.participant.room_code == "mattran"
    assert result.participant.checked_in is True
    assert db.get(Participant, "B").checked_in is True
    assert db.get(Participant, "B").checked_in_at is not None

    assert [(room, event) for room, event, _ in channel.events] == [
        ("mattran", "welcome"),
        (None, "stats-update"),
    ]
    welcome = channel.events[0][2]
    assert welcome["id"] == "B"
    assert welcome["roomCode"] == "mattran"
    assert welcome["checkedIn"] is True
    assert welcome["message"] == "Chào mừng Đại biểu B (Org) đến với đại hội!"
    assert "timestamp" in welcome
    assert "qrCode" not in welcome
    assert channel.events[1][2] is None


def test_summary_has_no_qr_payload(pipeline: CheckinPipeline) -> None:
    pipeline.generate(_entries(["A"]))
    dumped = pipeline.check_in("A").model_dump(by_alias=True)
    assert "qrCode" not in dumped["participant"]


def test_second_scan_is_rejected_without_broadcast(pipeline: CheckinPipeline, channel: RecordingChannel) -> None:
    pipeline.generate(_entries(["A"]))
    pipeline.check_in("A")
    channel.events.clear()

    with pytest.raises(AlreadyCheckedIn):
        pipeline.check_in("A")
    assert channel.events == []


def test_concurrent_scan_loses_compare_and_set(db, pipeline: CheckinPipeline, channel: RecordingChannel) -> None:
    pipeline.generate(_entries(["A"]))
    channel.events.clear()
    # this session has now seen A as not checked in
    assert db.get(Participant, "A").checked_in is False

    other = SessionLocal()
    try:
        CheckinPipeline(other, RecordingChannel()).check_in("A")
    finally:
        other.close()

    with pytest.raises(AlreadyCheckedIn):
        pipeline.check_in("A")
    assert channel.events == []


def test_participant_without_room_is_welcomed_globally(pipeline: CheckinPipeline, channel: RecordingChannel) -> None:
    pipeline.generate(_entries(["X"], room=None))
    channel.events.clear()
    pipeline.check_in("X")
    assert channel.events[0][:2] == (None, "welcome")
    assert channel.events[0][2]["roomCode"] is None


def test_unmapped_room_routes_by_its_own_name(pipeline: CheckinPipeline, channel: RecordingChannel) -> None:
    pipeline.generate(_entries(["G"], room="Khách mời"))
    channel.events.clear()
    pipeline.check_in("G")
    assert channel.events[0][:2] == ("Khách mời", "welcome")


def test_bulk_set_checked_in(db, pipeline: CheckinPipeline, channel: RecordingChannel) -> None:
    pipeline.generate(_entries(["A", "B", "C"]))
    pipeline.check_in("A")
    channel.events.clear()

    res = pipeline.bulk_set_checked_in(True)
    assert res.matched_count == 3
    assert res.modified_count == 2
    assert compute_stats(db).not_checked_in == 0
    assert channel.events == [(None, "stats-update", None)]

    channel.events.clear()
    res = pipeline.bulk_set_checked_in(False)
    assert res.matched_count == 3
    assert res.modified_count == 3
    stats = compute_stats(db)
    assert stats.checked_in == 0
    assert stats.not_checked_in == 3
    assert db.get(Participant, "A").checked_in_at is None
    assert [event for _, event, _ in channel.events] == ["stats-update"]


def test_bulk_reset_allows_scanning_again(pipeline: CheckinPipeline) -> None:
    pipeline.generate(_entries(["A"]))
    pipeline.check_in("A")
    pipeline.bulk_set_checked_in(False)
    assert pipeline.check_in("A").participant.checked_in is True


def test_delete_all(db, pipeline: CheckinPipeline, channel: RecordingChannel) -> None:
    pipeline.generate(_entries(["A", "B"]))
    channel.events.clear()

    res = pipeline.delete_all()
    assert res.deleted_count == 2
    assert compute_stats(db).total == 0
    assert channel.events == [(None, "stats-update", None)]


def test_generate_returns_records_with_qr(pipeline: CheckinPipeline, channel: RecordingChannel) -> None:
    created = pipeline.generate(_entries(["A", "B"]))
    assert [p.id for p in created] == ["A", "B"]
    assert all(p.qr_code.startswith("data:image/png;base64,") for p in created)
    assert all(p.checked_in is False for p in created)
    assert channel.events == []


def test_generate_aborts_on_codec_failure_keeping_earlier_entries(db, channel: RecordingChannel) -> None:
    codec = FakeCodec(fail_on="B")
    pipeline = CheckinPipeline(db, channel, codec)

    with pytest.raises(GenerationFailed):
        pipeline.generate(_entries(["A", "B", "C"]))

    assert db.get(Participant, "A") is not None
    assert db.get(Participant, "B") is None
    assert db.get(Participant, "C") is None
    assert codec.encoded == ["A"]


def test_generate_aborts_on_duplicate_id(db, pipeline: CheckinPipeline) -> None:
    pipeline.generate(_entries(["A"]))
    with pytest.raises(GenerationFailed):
        pipeline.generate(_entries(["Z", "A", "Y"]))
    assert db.get(Participant, "Z") is not None
    assert db.get(Participant, "Y") is None


def test_find_by_seat(pipeline: CheckinPipeline) -> None:
    pipeline.generate([ParticipantEntry(id="S1", name="Seated", seat_number="A-12")])
    summary = pipeline.find_by_seat("A-12")
    assert summary.id == "S1"
    assert summary.checked_in is False
    with pytest.raises(ParticipantNotFound):
        pipeline.find_by_seat("Z-99")


def test_scenario_three_participants_one_checked_in(db, pipeline: CheckinPipeline) -> None:
    pipeline.generate(_entries(["A", "B", "C"]))
    result = pipeline.check_in("B")
    assert result.participant.room == "Mặt trận"
    assert result.participant.room_code == "mattran"

    stats = compute_stats(db)
    assert stats.total == 3
    assert stats.checked_in == 1
    room = next(r for r in stats.rooms if r.room == "Mặt trận")
    assert room.checked_in == 1
    assert room.total == 3
    assert sorted(p.id for p in room.not_checked_in_participants) == ["A", "C"]
