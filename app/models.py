from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


class Participant(Base):
    __tablename__ = "participants"
    """
    Pre-registered event participant. `id` is the externally assigned code that
    the QR image encodes; `checked_in` is the only field scans mutate.
    """

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    organization: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    room: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)
    # legacy attributes from the seat-based layout
    seat_number: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    avatar: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    qr_code: Mapped[str] = mapped_column(Text, nullable=False)
    checked_in: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    checked_in_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_participants_room_checked_in", "room", "checked_in"),
    )
