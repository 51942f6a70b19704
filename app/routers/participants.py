from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..checkin import CheckinPipeline
from ..deps import get_db, get_pipeline, require_admin, require_staff
from ..schemas import (
    BulkCheckinResponse,
    CheckinRequest,
    CheckinResponse,
    DeleteAllResponse,
    ParticipantEntry,
    ParticipantOut,
    ParticipantSummary,
    StatsResponse,
)
from ..stats import compute_stats


router = APIRouter(prefix="/api/participants", tags=["participants"], dependencies=[Depends(require_staff)])


@router.post("/generate", response_model=List[ParticipantOut], dependencies=[Depends(require_admin)])
def participants_generate(payload: List[ParticipantEntry], pipeline: CheckinPipeline = Depends(get_pipeline)):
    return pipeline.generate(payload)


@router.post("/checkin", response_model=CheckinResponse)
def participants_checkin(payload: CheckinRequest, pipeline: CheckinPipeline = Depends(get_pipeline)):
    return pipeline.check_in(payload.id)


@router.get("/stats", response_model=StatsResponse)
def participants_stats(db: Session = Depends(get_db)):
    return compute_stats(db)


@router.get("/seat/{seat_number}", response_model=ParticipantSummary)
def participants_by_seat(seat_number: str, pipeline: CheckinPipeline = Depends(get_pipeline)):
    return pipeline.find_by_seat(seat_number)


@router.delete("/all", response_model=DeleteAllResponse, dependencies=[Depends(require_admin)])
def participants_delete_all(pipeline: CheckinPipeline = Depends(get_pipeline)):
    return pipeline.delete_all()


@router.post("/checkin/all/true", response_model=BulkCheckinResponse, dependencies=[Depends(require_admin)])
def participants_checkin_all(pipeline: CheckinPipeline = Depends(get_pipeline)):
    return pipeline.bulk_set_checked_in(True)


@router.post("/checkin/all/false", response_model=BulkCheckinResponse, dependencies=[Depends(require_admin)])
def participants_reset_all(pipeline: CheckinPipeline = Depends(get_pipeline)):
    return pipeline.bulk_set_checked_in(False)
