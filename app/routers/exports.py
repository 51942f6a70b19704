from __future__ import annotations

import csv
import io
from typing import Iterable, List

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..deps import get_db, require_admin
from ..models import Participant
from ..rooms import room_code


router = APIRouter(prefix="/api", tags=["exports"], dependencies=[Depends(require_admin)])

PARTICIPANT_FIELDS: List[str] = [
    "id",
    "name",
    "organization",
    "room",
    "room_code",
    "seat_number",
    "checked_in",
    "checked_in_at",
]


def _stream_csv(rows: Iterable[dict], filename: str, fieldnames: List[str]) -> StreamingResponse:
    buffer = io.StringIO()
    # BOM so spreadsheet apps pick up UTF-8 room names
    buffer.write("\ufeff")
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    for row in rows:
        writer.writerow(row)
    buffer.seek(0)
    headers = {"Content-Disposition": f"attachment; filename={filename}"}
    return StreamingResponse(iter([buffer.getvalue()]), media_type="text/csv; charset=utf-8", headers=headers)


@router.get("/export.participants.csv")
def export_participants(db: Session = Depends(get_db)):
    items = db.execute(select(Participant).order_by(Participant.id)).scalars().all()
    rows = (
        {
            "id": p.id,
            "name": p.name or "",
            "organization": p.organization or "",
            "room": p.room or "",
            "room_code": room_code(p.room) or "",
            "seat_number": p.seat_number or "",
            "checked_in": "true" if p.checked_in else "false",
            "checked_in_at": p.checked_in_at.isoformat() if p.checked_in_at else "",
        }
        for p in items
    )
    return _stream_csv(rows, "participants.csv", PARTICIPANT_FIELDS)
