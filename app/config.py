from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_SQLITE_PATH = BASE_DIR / "checkin.db"
DEFAULT_SQLITE_URL = f"sqlite:///{DEFAULT_SQLITE_PATH}"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=BASE_DIR / ".env", env_prefix="APP_", case_sensitive=False)

    database_url: str = Field(default=DEFAULT_SQLITE_URL, description="SQLAlchemy database URL")

    # Access guard: each bearer token maps to a role
    admin_token: str = Field(default="dev-admin-token", description="Bearer token granting the admin role")
    staff_token: str = Field(default="dev-staff-token", description="Bearer token granting the staff role")

    # Comma-separated values or '*' for all
    cors_origins: str = Field(default="http://localhost:3000")
    log_level: str = Field(default="INFO")

    # Rate limiting (per token+IP per minute)
    rate_limit_enabled: bool = Field(default=False)
    rate_limit_per_minute: int = Field(default=600)

    # QR rendering
    qr_box_size: int = Field(default=10, ge=1)
    qr_border: int = Field(default=4, ge=0)
    qr_error_correction: str = Field(default="M", description="L|M|Q|H")
    qr_export_dir: Path = Field(default=BASE_DIR / "qr_exports")

    @property
    def cors_origins_list(self) -> List[str]:
        s = (self.cors_origins or "").strip()
        if not s or s == "*":
            return ["*"]
        return [part.strip() for part in s.split(",") if part.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
