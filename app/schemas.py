from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Wire models speak camelCase (seatNumber, qrCode, ...) but accept snake_case too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# Generation
class ParticipantEntry(CamelModel):
    id: str = Field(..., min_length=1, max_length=128)
    name: Optional[str] = None
    organization: Optional[str] = None
    room: Optional[str] = None
    seat_number: Optional[str] = None
    avatar: Optional[str] = None

    @field_validator("id")
    @classmethod
    def _id_not_blank(cls, v: str) -> str:
        # check_in rejects blank ids
        if not v.strip():
            raise ValueError("id must not be blank")
        return v


class ParticipantOut(CamelModel):
    id: str
    name: Optional[str] = None
    organization: Optional[str] = None
    room: Optional[str] = None
    seat_number: Optional[str] = None
    avatar: Optional[str] = None
    qr_code: str
    checked_in: bool = False


# Check-in
class CheckinRequest(CamelModel):
    id: str = Field(..., max_length=128, description="Identifier decoded from the scanned QR code")


class ParticipantSummary(CamelModel):
    id: str
    name: Optional[str] = None
    organization: Optional[str] = None
    room: Optional[str] = None
    room_code: Optional[str] = None
    seat_number: Optional[str] = None
    avatar: Optional[str] = None
    checked_in: bool


class CheckinResponse(CamelModel):
    message: str
    participant: ParticipantSummary


class WelcomeEvent(CamelModel):
    id: str
    name: Optional[str] = None
    organization: Optional[str] = None
    room: Optional[str] = None
    room_code: Optional[str] = None
    seat_number: Optional[str] = None
    avatar: Optional[str] = None
    checked_in: bool
    timestamp: datetime
    message: str


# Bulk admin operations
class BulkCheckinResponse(CamelModel):
    message: str
    matched_count: int
    modified_count: int


class DeleteAllResponse(CamelModel):
    message: str
    deleted_count: int


# Stats
class ParticipantBrief(CamelModel):
    id: str
    name: Optional[str] = None
    organization: Optional[str] = None
    room: Optional[str] = None
    seat_number: Optional[str] = None


class RoomStats(CamelModel):
    room: Optional[str] = None
    room_code: Optional[str] = None
    total: int
    checked_in: int
    not_checked_in: int
    not_checked_in_participants: List[ParticipantBrief] = []


class StatsResponse(CamelModel):
    total: int
    checked_in: int
    not_checked_in: int
    checked_in_participants: List[ParticipantBrief] = []
    rooms: List[RoomStats] = []
