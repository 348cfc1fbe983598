from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # ─────────── APP ───────────
    app_name: str = "Capstone Project Management"
    environment: str = "dev"
    log_level: str = "INFO"

    # ─────────── API ───────────
    api_prefix: str = "/api/v1"
    request_id_header: str = "X-Request-Id"

    # ─────────── DATABASE ───────────
    database_url: str
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_recycle_seconds: int = 1800

    # ─────────── JWT / AUTH ───────────
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    jwt_access_token_minutes: int = 1440  # 24 hours

    # ─────────── EVALUATION ───────────
    score_min: float = 0.0
    score_max: float = 10.0
    weight_tolerance: float = 0.01
    default_advisor_weight: float = 0.4
    default_committee_weight: float = 0.6


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
