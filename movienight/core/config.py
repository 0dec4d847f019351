import json

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator, model_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    env: str = Field(default="local", alias="ENV")
    database_url: str = Field(alias="DATABASE_URL")

    jwt_secret: str = Field(alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=60 * 24 * 30, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    cors_origins: str = Field(default="http://localhost:5173", alias="CORS_ORIGINS")

    # Operators allowed to reset or force the cycle status; empty means everyone.
    admin_user_ids: str = Field(default="", alias="ADMIN_USER_IDS")

    # ─────────────────────────────────────────────
    # Movie catalog (TMDB)
    # ─────────────────────────────────────────────
    tmdb_token: str = Field(default="", alias="TMDB_TOKEN")
    catalog_region: str = Field(default="CA", alias="CATALOG_REGION")
    search_results_limit: int = Field(default=10, ge=1, le=40, alias="SEARCH_RESULTS_LIMIT")
    trending_results_limit: int = Field(default=10, ge=1, le=40, alias="TRENDING_RESULTS_LIMIT")

    # ─────────────────────────────────────────────
    # Daily cycle rules
    # ─────────────────────────────────────────────
    min_yes_decisions: int = Field(default=2, ge=1, alias="MIN_YES_DECISIONS")
    min_total_decisions: int = Field(default=3, ge=1, alias="MIN_TOTAL_DECISIONS")
    max_nominations_per_user: int = Field(default=3, ge=1, alias="MAX_NOMINATIONS_PER_USER")
    underdog_boost_threshold: int = Field(default=5, ge=1, alias="UNDERDOG_BOOST_THRESHOLD")
    reveal_dwell_seconds: int = Field(default=10, ge=0, alias="REVEAL_DWELL_SECONDS")
    cycle_day_boundary_hour: int = Field(default=4, ge=0, le=23, alias="CYCLE_DAY_BOUNDARY_HOUR")
    cycle_timezone: str = Field(default="UTC", alias="CYCLE_TIMEZONE")

    # ─────────────────────────────────────────────
    # Scheduling
    # ─────────────────────────────────────────────
    default_finish_time: str = Field(default="03:30", alias="DEFAULT_FINISH_TIME")
    break_interval_minutes: int = Field(default=40, ge=1, alias="BREAK_INTERVAL_MINUTES")
    break_duration_minutes: int = Field(default=15, ge=0, alias="BREAK_DURATION_MINUTES")

    # ─────────────────────────────────────────────
    # Presence / live updates
    # ─────────────────────────────────────────────
    active_user_threshold_minutes: int = Field(default=5, ge=1, alias="ACTIVE_USER_THRESHOLD_MINUTES")
    sse_heartbeat_seconds: float = Field(default=15.0, gt=0, alias="SSE_HEARTBEAT_SECONDS")

    @field_validator("database_url", mode="before")
    @classmethod
    def normalize_database_url(cls, value: object) -> object:
        if not isinstance(value, str):
            return value
        cleaned = value.strip()
        if cleaned.startswith("postgres://"):
            cleaned = f"postgresql://{cleaned[len('postgres://'):]}"
        if cleaned.startswith("postgresql://") and not cleaned.startswith("postgresql+"):
            cleaned = cleaned.replace("postgresql://", "postgresql+asyncpg://", 1)
        return cleaned

    @field_validator("catalog_region", mode="before")
    @classmethod
    def normalize_catalog_region(cls, value: object) -> object:
        if not isinstance(value, str):
            return value
        return value.strip().upper() or "CA"

    @field_validator("default_finish_time")
    @classmethod
    def validate_default_finish_time(cls, value: str) -> str:
        hour, _, minute = value.partition(":")
        if not (hour.isdigit() and minute.isdigit() and 0 <= int(hour) <= 23 and 0 <= int(minute) <= 59):
            raise ValueError("DEFAULT_FINISH_TIME must be HH:MM")
        return f"{int(hour):02d}:{int(minute):02d}"

    @model_validator(mode="after")
    def validate_cycle_rules(self) -> "Settings":
        if self.min_total_decisions < self.min_yes_decisions:
            raise ValueError("MIN_TOTAL_DECISIONS must be >= MIN_YES_DECISIONS")
        return self

    def cors_origin_list(self) -> list[str]:
        return _split_list(self.cors_origins, strip_trailing_slash=True)

    def admin_user_id_list(self) -> list[str]:
        return _split_list(self.admin_user_ids)


def _split_list(raw: str | None, *, strip_trailing_slash: bool = False) -> list[str]:
    raw = (raw or "").strip()
    if not raw:
        return []

    values: list[str]
    if raw.startswith("["):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            values = [str(v) for v in parsed if isinstance(v, str)]
        else:
            values = [raw]
    else:
        values = raw.split(",")

    normalized: list[str] = []
    seen: set[str] = set()
    for value in values:
        cleaned = value.strip().strip("\"'")
        if not cleaned:
            continue
        # CORS origins are scheme + host (+ optional port) with no path slash.
        if strip_trailing_slash and cleaned != "*" and cleaned.endswith("/"):
            cleaned = cleaned.rstrip("/")
        if cleaned in seen:
            continue
        seen.add(cleaned)
        normalized.append(cleaned)

    return normalized

settings = Settings()
