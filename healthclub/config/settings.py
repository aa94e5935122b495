# healthclub/config/settings.py
from typing import List, Optional, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    environment: str = "development"
    app_name: str = "Health Club API"
    version: str = "1.0.0"

    # DATABASE_URL wins; otherwise a mysql+pymysql URL is assembled from db_*
    database_url: Optional[str] = None
    db_user: Optional[str] = None
    db_pass: Optional[str] = None
    db_host: str = "localhost"
    db_port: Optional[int] = None
    db_name: Optional[str] = None

    # cron / operator shared secret (x-cron-secret or Bearer)
    cron_secret: Optional[str] = None

    # mobile app API keys
    api_key_prefix: str = "ahc_live_sk_"

    firebase_key_path: str = "firebase-key.json"

    # defaults when the settings row has no value
    push_log_retention_days: int = 90
    push_log_cleanup_hour: int = 3

    cors_origins: Union[str, List[str]] = "*"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, v):
        if not v:
            return []
        if isinstance(v, str):
            return [i.strip() for i in v.split(",") if i.strip()]
        return v

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
