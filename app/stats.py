from __future__ import annotations

"""
Attendance statistics, recomputed from the participants table on every call.

- total / checkedIn / notCheckedIn over all participants
- one breakdown entry per enumerated room (zero counts included), followed by
  one entry per other room value present in the data; participants without a
  room are grouped under room=None
- per-room totals always sum to the global total
"""

from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from .models import Participant
from .rooms import Room, room_code
from .schemas import ParticipantBrief, RoomStats, StatsResponse


def _brief(p: Participant) -> ParticipantBrief:
    return ParticipantBrief(
        id=p.id,
        name=p.name,
        organization=p.organization,
        room=p.room,
        seat_number=p.seat_number,
    )


def _room_key(p: Participant) -> Optional[str]:
    if p.room is None or not p.room.strip():
        return None
    return p.room


def compute_stats(db: Session) -> StatsResponse:
    participants = db.execute(select(Participant).order_by(Participant.id)).scalars().all()

    grouped: Dict[Optional[str], List[Participant]] = {room.value: [] for room in Room}
    for p in participants:
        grouped.setdefault(_room_key(p), []).append(p)

    rooms: List[RoomStats] = []
    for name, members in grouped.items():
        checked = sum(1 for p in members if p.checked_in)
        rooms.append(
            RoomStats(
                room=name,
                room_code=room_code(name),
                total=len(members),
                checked_in=checked,
                not_checked_in=len(members) - checked,
                not_checked_in_participants=[_brief(p) for p in members if not p.checked_in],
            )
        )

    checked_in = [p for p in participants if p.checked_in]
    return StatsResponse(
        total=len(participants),
        checked_in=len(checked_in),
        not_checked_in=len(participants) - len(checked_in),
        checked_in_participants=[_brief(p) for p in checked_in],
        rooms=rooms,
    )
