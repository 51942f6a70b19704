from __future__ import annotations

"""
Export every participant's QR code to a PNG file.

Usage: python -m app.export_qr [output_dir]

Files are named <id>_<name>.png with characters forbidden on Windows replaced.
Participants missing an id, a name or a decodable QR payload are skipped.
"""

import logging
import re
import sys
from pathlib import Path
from typing import Optional, Tuple

from sqlalchemy import select

from .config import get_settings
from .database import SessionLocal, init_db
from .models import Participant
from .observability import configure_logging
from .qr import decode_data_url


logger = logging.getLogger("export")

_FORBIDDEN = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
MAX_FILENAME_LENGTH = 180


def sanitize_filename(name: str) -> str:
    safe = _FORBIDDEN.sub("_", str(name))
    # trailing dots and spaces are invalid at the end of Windows filenames
    safe = re.sub(r"[.\s]+$", "", safe)
    safe = re.sub(r"_{2,}", "_", safe)
    return safe[:MAX_FILENAME_LENGTH]


def export_qr_codes(output_dir: Path) -> Tuple[int, int]:
    """Write one PNG per participant; returns (exported, skipped)."""
    output_dir.mkdir(parents=True, exist_ok=True)
    exported = 0
    skipped = 0
    db = SessionLocal()
    try:
        participants = db.execute(select(Participant).order_by(Participant.id)).scalars().all()
        logger.info("found %s participants", len(participants))
        for p in participants:
            png: Optional[bytes] = decode_data_url(p.qr_code) if p.qr_code else None
            if not p.id or not p.name or not png:
                skipped += 1
                continue
            # sanitize the stem so the extension survives truncation
            path = output_dir / f"{sanitize_filename(f'{p.id}_{p.name}')}.png"
            try:
                path.write_bytes(png)
            except OSError as exc:
                logger.error("failed to export QR for id=%s: %s", p.id, exc)
                skipped += 1
                continue
            exported += 1
    finally:
        db.close()
    return exported, skipped


def main(argv: Optional[list[str]] = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    settings = get_settings()
    configure_logging(settings.log_level)
    init_db()
    output_dir = Path(args[0]) if args else settings.qr_export_dir
    exported, skipped = export_qr_codes(output_dir)
    print(f"Done. Exported {exported} files. Skipped {skipped}. Output dir: {output_dir}")


if __name__ == "__main__":
    main()
