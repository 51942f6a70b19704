from __future__ import annotations

from fastapi import APIRouter
from sqlalchemy import text

from ..database import engine
from ..realtime import channel


router = APIRouter(tags=["health"])


@router.get("/health")
def health() -> dict:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        database = "ok"
    except Exception:
        database = "error"
    return {
        "status": "ok" if database == "ok" else "degraded",
        "database": database,
        "connections": len(channel.recipients(None)),
    }
