"""Application configuration using Pydantic Settings."""
import math

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # App
    app_name: str = "GeoAttend"
    debug: bool = False
    log_level: str = "INFO"

    # MongoDB
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "geoattend"

    # JWT
    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60
    jwt_refresh_token_expire_days: int = 30

    # Geofence anchor (classroom)
    anchor_latitude: float = 34.0803
    anchor_longitude: float = 74.7777
    anchor_radius_meters: float = 200.0

    # Attendance day handling
    timezone: str = "Asia/Kolkata"
    enforce_current_day: bool = True
    token_length: int = 12
    weekly_off_days: list[int] = [6]  # Python weekday numbers, 6 = Sunday

    # Roster: comma-separated roll numbers; empty means "active student accounts"
    roster: str = ""

    # Base URL of the student app, used to build the QR mark link
    public_base_url: str = "http://localhost:5173"

    # Seeded admin account; skipped when the password is empty
    admin_roll_number: str = "admin"
    admin_full_name: str = "Attendance Admin"
    admin_password: str = ""

    # CORS (comma-separated origins)
    cors_origins: str = "http://localhost:5173"

    @field_validator("token_length")
    @classmethod
    def _validate_token_length(cls, value: int) -> int:
        if value < 8:
            raise ValueError("TOKEN_LENGTH must be at least 8 characters")
        return value

    @field_validator("weekly_off_days")
    @classmethod
    def _validate_weekly_off_days(cls, value: list[int]) -> list[int]:
        bad = [d for d in value if d < 0 or d > 6]
        if bad:
            raise ValueError(f"WEEKLY_OFF_DAYS must be weekday numbers 0-6, got {bad}")
        return value

    @model_validator(mode="after")
    def _validate_anchor(self):
        if not math.isfinite(self.anchor_radius_meters) or self.anchor_radius_meters < 0:
            raise ValueError("ANCHOR_RADIUS_METERS must be a non-negative number of meters")
        return self

    @model_validator(mode="after")
    def _validate_production_secrets(self):
        if not self.debug:
            if self.jwt_secret_key in ("change-me-in-production", ""):
                raise ValueError(
                    "JWT_SECRET_KEY must be set to a strong secret when DEBUG is not enabled. "
                    "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
                )
        return self

    def roster_list(self) -> list[str]:
        return [r.strip() for r in self.roster.split(",") if r.strip()]


settings = Settings()
