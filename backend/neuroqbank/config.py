from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_dir: Path = Path.home() / ".neuroqbank" / "data"
    sqlite_filename: str = "neuroqbank.db"
    log_level: str = "INFO"

    jwt_secret_key: str = "dev-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60

    stats_cache_ttl_seconds: int = 3600  # 1 hour, matches the web client's cache

    # Review selection
    review_limit: int = 20
    recent_exclusion_days: int = 3
    daily_review_lookback_days: int = 30

    model_config = {"env_prefix": "NEUROQBANK_"}


settings = Settings()
