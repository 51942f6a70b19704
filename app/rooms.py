from __future__ import annotations

"""Fixed room enumeration and the static room-name to routing-key table."""

from enum import Enum
from typing import Dict, Optional


class Room(str, Enum):
    MAT_TRAN = "Mặt trận"
    CONG_DOAN = "Công đoàn"
    DOAN_THANH_NIEN = "Đoàn thanh niên"
    HOI_PHU_NU = "Hội phụ nữ"
    HOI_CUU_CHIEN_BINH = "Hội cựu chiến binh"


ROOM_CODES: Dict[Room, str] = {
    Room.MAT_TRAN: "mattran",
    Room.CONG_DOAN: "congdoan",
    Room.DOAN_THANH_NIEN: "doanthanhnien",
    Room.HOI_PHU_NU: "hoiphunu",
    Room.HOI_CUU_CHIEN_BINH: "hoicuuchienbinh",
}


def room_code(name: Optional[str]) -> Optional[str]:
    """Routing key for a room name.

    Enumerated rooms map through ROOM_CODES; any other non-empty name is
    returned unchanged. Blank or missing rooms have no key (global broadcast).
    """
    if name is None or not name.strip():
        return None
    try:
        return ROOM_CODES[Room(name)]
    except ValueError:
        return name
