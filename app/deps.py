from __future__ import annotations

import hmac
from typing import Iterator, Literal, Optional

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from .checkin import CheckinPipeline
from .config import get_settings
from .database import get_db_session
from .errors import Forbidden
from .qr import QRCodec, get_codec
from .rate_limit import rate_limit_check
from .realtime import Channel, get_channel


Role = Literal["admin", "staff"]


def get_db() -> Iterator[Session]:
    yield from get_db_session()


def _role_for_token(token: str) -> Optional[Role]:
    settings = get_settings()
    if settings.admin_token and hmac.compare_digest(token.encode(), settings.admin_token.encode()):
        return "admin"
    if settings.staff_token and hmac.compare_digest(token.encode(), settings.staff_token.encode()):
        return "staff"
    return None


def require_staff(request: Request, authorization: Optional[str] = Header(default=None)) -> Role:
    """Authenticate the caller; both staff and admin tokens pass."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    token = authorization.split(" ", 1)[1].strip()
    role = _role_for_token(token)
    if role is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    rate_limit_check(request, token)
    return role


def require_admin(role: Role = Depends(require_staff)) -> Role:
    if role != "admin":
        raise Forbidden()
    return role


def get_pipeline(
    db: Session = Depends(get_db),
    channel: Channel = Depends(get_channel),
    codec: QRCodec = Depends(get_codec),
) -> CheckinPipeline:
    return CheckinPipeline(db, channel, codec)
