from __future__ import annotations

"""
Room-scoped fan-out over WebSocket connections.

Every connection owns an asyncio.Queue drained by a single sender task, so the
messages a connection receives keep the order in which they were broadcast.
`broadcast` is synchronous and may be called from FastAPI's threadpool: it
hands each message to the connection's event loop with call_soon_threadsafe.
Delivery is best-effort: clients that are not connected miss the event.
"""

import asyncio
import logging
import threading
from typing import Any, Dict, List, Optional, Protocol, Set

from fastapi import WebSocket


logger = logging.getLogger("realtime")

WELCOME = "welcome"
STATS_UPDATE = "stats-update"
JOIN_ROOM = "join-room"
LEAVE_ROOM = "leave-room"
ROOM_JOINED = "room-joined"


class Channel(Protocol):
    def broadcast(self, room: Optional[str], event: str, data: Any = None) -> None: ...


class Connection:
    """One connected client: its socket, outbound queue and owning loop."""

    def __init__(self, websocket: WebSocket, loop: asyncio.AbstractEventLoop) -> None:
        self.websocket = websocket
        self.loop = loop
        self.queue: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue()
        self.rooms: Set[str] = set()
        self.closed = False

    def enqueue(self, message: Dict[str, Any]) -> None:
        if self.closed:
            return
        try:
            self.loop.call_soon_threadsafe(self.queue.put_nowait, message)
        except RuntimeError:
            # loop already closed; the connection is going away
            self.closed = True
            logger.debug("dropping message for closed connection")

    async def pump(self) -> None:
        """Send queued messages in order until a send fails (no retry)."""
        while True:
            message = await self.queue.get()
            try:
                await self.websocket.send_json(message)
            except Exception as exc:
                self.closed = True
                logger.info("send failed, dropping connection: %s", exc)
                return


class RealtimeChannel:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._connections: Set[Connection] = set()
        self._rooms: Dict[str, Set[Connection]] = {}

    # ---------- membership ----------

    def connect(self, conn: Connection) -> None:
        with self._lock:
            self._connections.add(conn)
        logger.debug("client connected (total=%s)", len(self._connections))

    def disconnect(self, conn: Connection) -> None:
        with self._lock:
            self._connections.discard(conn)
            for room in list(conn.rooms):
                self._remove_member(room, conn)
            conn.rooms.clear()
        conn.closed = True
        logger.debug("client disconnected (total=%s)", len(self._connections))

    def join(self, conn: Connection, room: str) -> None:
        with self._lock:
            self._rooms.setdefault(room, set()).add(conn)
            conn.rooms.add(room)
        logger.debug("client joined room=%s", room)
        conn.enqueue({"event": ROOM_JOINED, "data": room})

    def leave(self, conn: Connection, room: str) -> None:
        with self._lock:
            self._remove_member(room, conn)
            conn.rooms.discard(room)
        logger.debug("client left room=%s", room)

    def _remove_member(self, room: str, conn: Connection) -> None:
        members = self._rooms.get(room)
        if members is None:
            return
        members.discard(conn)
        if not members:
            del self._rooms[room]

    # ---------- fan-out ----------

    def recipients(self, room: Optional[str]) -> List[Connection]:
        with self._lock:
            if room is None:
                return list(self._connections)
            return list(self._rooms.get(room, ()))

    def room_size(self, room: str) -> int:
        with self._lock:
            return len(self._rooms.get(room, ()))

    def broadcast(self, room: Optional[str], event: str, data: Any = None) -> None:
        message = {"event": event, "data": data}
        targets = self.recipients(room)
        for conn in targets:
            conn.enqueue(message)
        logger.debug("broadcast event=%s room=%s recipients=%s", event, room or "*", len(targets))


channel = RealtimeChannel()


def get_channel() -> Channel:
    return channel
