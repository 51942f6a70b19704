from __future__ import annotations

"""
Check-in pipeline: validate a scanned identifier, flip the participant's
check-in flag and fan the result out to the realtime channel.

Policy is strict: a participant that is already checked in is rejected and
nothing is written or broadcast. The flag is flipped with a conditional
UPDATE (compare-and-set on checked_in = false) so that of two concurrent scans
of the same code exactly one succeeds and emits a welcome.
"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from .errors import AlreadyCheckedIn, GenerationFailed, InvalidScan, ParticipantNotFound
from .models import Participant
from .qr import QRCodec
from .realtime import STATS_UPDATE, WELCOME, Channel
from .rooms import room_code
from .schemas import (
    BulkCheckinResponse,
    CheckinResponse,
    DeleteAllResponse,
    ParticipantEntry,
    ParticipantOut,
    ParticipantSummary,
    WelcomeEvent,
)


logger = logging.getLogger("checkin")


def welcome_message(p: Participant) -> str:
    return f"Chào mừng {p.name} ({p.organization}) đến với đại hội!"


def summarize(p: Participant) -> ParticipantSummary:
    return ParticipantSummary(
        id=p.id,
        name=p.name,
        organization=p.organization,
        room=p.room,
        room_code=room_code(p.room),
        seat_number=p.seat_number,
        avatar=p.avatar,
        checked_in=p.checked_in,
    )


class CheckinPipeline:
    def __init__(self, db: Session, channel: Channel, codec: Optional[QRCodec] = None) -> None:
        self.db = db
        self.channel = channel
        self.codec = codec

    # ---------- scan ----------

    def check_in(self, participant_id: str) -> CheckinResponse:
        if not participant_id or not participant_id.strip():
            raise InvalidScan()

        participant: Optional[Participant] = self.db.get(Participant, participant_id)
        if participant is None:
            logger.info("check-in rejected: unknown id=%r", participant_id)
            raise ParticipantNotFound()
        if participant.checked_in:
            logger.info("check-in rejected: id=%s already checked in", participant_id)
            raise AlreadyCheckedIn()

        now = datetime.utcnow()
        result = self.db.execute(
            update(Participant)
            .where(Participant.id == participant_id, Participant.checked_in.is_(False))
            .values(checked_in=True, checked_in_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # a concurrent scan flipped the flag between our read and write
            self.db.rollback()
            logger.info("check-in rejected: id=%s lost race to concurrent scan", participant_id)
            raise AlreadyCheckedIn()
        self.db.commit()
        self.db.refresh(participant)

        summary = summarize(participant)
        event = WelcomeEvent(
            **summary.model_dump(),
            timestamp=now,
            message=welcome_message(participant),
        )
        self.channel.broadcast(summary.room_code, WELCOME, event.model_dump(mode="json", by_alias=True))
        self.channel.broadcast(None, STATS_UPDATE)
        logger.info("checked in id=%s room=%s", participant.id, summary.room_code or "*")

        return CheckinResponse(message="Check-in successful", participant=summary)

    def find_by_seat(self, seat_number: str) -> ParticipantSummary:
        participant = self.db.execute(
            select(Participant).where(Participant.seat_number == seat_number)
        ).scalars().first()
        if participant is None:
            raise ParticipantNotFound("No participant found for this seat")
        return summarize(participant)

    # ---------- admin bulk operations ----------

    def bulk_set_checked_in(self, value: bool) -> BulkCheckinResponse:
        matched = self.db.execute(select(func.count()).select_from(Participant)).scalar_one()
        now = datetime.utcnow()
        result = self.db.execute(
            update(Participant)
            .where(Participant.checked_in.is_(not value))
            .values(checked_in=value, checked_in_at=now if value else None, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        modified = result.rowcount
        self.db.commit()
        # bulk UPDATE bypasses the identity map
        self.db.expire_all()

        self.channel.broadcast(None, STATS_UPDATE)
        logger.info("bulk check-in set to %s: matched=%s modified=%s", value, matched, modified)
        return BulkCheckinResponse(
            message=f"All participants set to checkedIn={str(value).lower()}",
            matched_count=matched,
            modified_count=modified,
        )

    def delete_all(self) -> DeleteAllResponse:
        result = self.db.execute(delete(Participant))
        deleted = result.rowcount
        self.db.commit()
        self.db.expunge_all()

        self.channel.broadcast(None, STATS_UPDATE)
        logger.info("deleted all participants: count=%s", deleted)
        return DeleteAllResponse(message="All participants deleted", deleted_count=deleted)

    def generate(self, entries: Sequence[ParticipantEntry]) -> List[ParticipantOut]:
        """Create one participant per entry, encoding its id as a QR image.

        Entries are committed one at a time. The first failure aborts the
        batch; entries committed before it stay persisted.
        """
        if self.codec is None:
            raise GenerationFailed("QR codec is not configured")

        created: List[ParticipantOut] = []
        for entry in entries:
            try:
                qr_code = self.codec.encode(entry.id)
                participant = Participant(
                    id=entry.id,
                    name=entry.name,
                    organization=entry.organization,
                    room=entry.room,
                    seat_number=entry.seat_number,
                    avatar=entry.avatar,
                    qr_code=qr_code,
                    checked_in=False,
                )
                self.db.add(participant)
                self.db.commit()
            except Exception as exc:
                self.db.rollback()
                logger.error(
                    "generation aborted at id=%r after %s created: %s", entry.id, len(created), exc
                )
                raise GenerationFailed() from exc
            created.append(_participant_out(participant))

        logger.info("generated %s participants", len(created))
        return created


def _participant_out(p: Participant) -> ParticipantOut:
    return ParticipantOut(
        id=p.id,
        name=p.name,
        organization=p.organization,
        room=p.room,
        seat_number=p.seat_number,
        avatar=p.avatar,
        qr_code=p.qr_code,
        checked_in=p.checked_in,
    )
