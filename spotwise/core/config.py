from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # ─────────── APP ───────────
    app_name: str = "Spotwise Local Services"
    environment: str = "dev"
    log_level: str = "INFO"

    # ─────────── API ───────────
    api_prefix: str = "/api/v1"
    request_id_header: str = "X-Request-Id"
    cors_origins: List[str] = ["http://127.0.0.1:5501"]

    # ─────────── DATABASE ───────────
    database_url: str
    db_timeout_seconds: float = 5.0

    # ─────────── JWT / AUTH ───────────
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    jwt_access_token_minutes: int = 1440  # 24 hours

    # ─────────── MATCHING / LIFECYCLE ───────────
    match_radius_m: float = 5000.0
    pin_max_attempts: int = 5
    sweep_interval_seconds: float = 60.0  # 0 disables the background sweep

    # ─────────── REALTIME ───────────
    heartbeat_interval_seconds: float = 30.0
    notifier_queue_size: int = 100
    notifier_send_timeout_seconds: float = 5.0
    location_min_move_m: float = 10.0
    location_max_stale_seconds: float = 60.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
