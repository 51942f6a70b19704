from __future__ import annotations

import base64
from io import BytesIO
from typing import Optional, Protocol

import qrcode
from qrcode import constants

from .config import get_settings


DATA_URL_PREFIX = "data:image/png;base64,"

_ERROR_CORRECTION = {
    "L": constants.ERROR_CORRECT_L,
    "M": constants.ERROR_CORRECT_M,
    "Q": constants.ERROR_CORRECT_Q,
    "H": constants.ERROR_CORRECT_H,
}


class QRCodec(Protocol):
    def encode(self, participant_id: str) -> str: ...


class PNGDataURLCodec:
    """Encodes an identifier as a PNG QR image wrapped in a data URL."""

    def __init__(self, box_size: int = 10, border: int = 4, error_correction: str = "M") -> None:
        self.box_size = box_size
        self.border = border
        self.error_correction = _ERROR_CORRECTION.get(error_correction.upper(), constants.ERROR_CORRECT_M)

    def encode(self, participant_id: str) -> str:
        qr = qrcode.QRCode(
            version=None,
            error_correction=self.error_correction,
            box_size=self.box_size,
            border=self.border,
        )
        qr.add_data(participant_id)
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")
        buf = BytesIO()
        img.save(buf, format="PNG")
        return DATA_URL_PREFIX + base64.b64encode(buf.getvalue()).decode("ascii")


def decode_data_url(data_url: str) -> Optional[bytes]:
    """Return the raw PNG bytes of a data URL (or of a bare base64 string).

    Returns None when the header does not declare base64 content or the
    payload is not valid base64.
    """
    if not data_url:
        return None
    header, sep, payload = data_url.partition(",")
    if not sep:
        payload = header
    elif not header.lower().endswith(";base64"):
        return None
    try:
        return base64.b64decode(payload, validate=True)
    except ValueError:
        return None


def get_codec() -> QRCodec:
    settings = get_settings()
    return PNGDataURLCodec(
        box_size=settings.qr_box_size,
        border=settings.qr_border,
        error_correction=settings.qr_error_correction,
    )
