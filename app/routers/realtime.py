from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket

from ..realtime import JOIN_ROOM, LEAVE_ROOM, Connection, channel


router = APIRouter(tags=["realtime"])
logger = logging.getLogger("realtime")


def _room_name(data: Any) -> str | None:
    if isinstance(data, dict):
        data = data.get("room")
    if isinstance(data, str) and data.strip():
        return data.strip()
    return None


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket) -> None:
    """Displays and dashboards connect here.

    Client frames: {"event": "join-room" | "leave-room", "data": "<room code>"}.
    Server frames: {"event": "room-joined" | "welcome" | "stats-update", "data": ...}.
    """
    await websocket.accept()
    conn = Connection(websocket, asyncio.get_running_loop())
    channel.connect(conn)
    sender = asyncio.create_task(conn.pump())
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                logger.debug("ignoring non-text frame")
                continue
            try:
                frame = json.loads(raw)
            except ValueError:
                logger.debug("ignoring malformed frame: %r", raw[:200])
                continue
            if not isinstance(frame, dict):
                continue
            event = frame.get("event")
            room = _room_name(frame.get("data"))
            if event == JOIN_ROOM and room:
                channel.join(conn, room)
            elif event == LEAVE_ROOM and room:
                channel.leave(conn, room)
            else:
                logger.debug("ignoring frame event=%r", event)
    finally:
        channel.disconnect(conn)
        sender.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sender
