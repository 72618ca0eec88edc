import logging
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    db_url: str = "sqlite:///./paper-tracker.db"
    log_level: str = "INFO"

    # Object storage; any S3-compatible endpoint (R2, MinIO) works
    s3_endpoint_url: str | None = None
    s3_region: str = "auto"
    s3_access_key_id: str | None = None
    s3_secret_access_key: str | None = None
    s3_bucket_name: str = "paper-reviews"
    s3_public_url: str | None = None

    secret_key: str
    auth_enabled: bool = True
    auth_password: str = ""
    token_max_age: int = 7 * 24 * 60 * 60

    missed_grace_days: int = 7

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
