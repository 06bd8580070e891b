# grm/core/config.py
from typing import List, Optional, Union
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import json


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === MongoDB ===
    mongo_url: str = "mongodb://localhost:27017"
    db_name: str = "grm"
    mongo_tls: bool = False

    # === Security / JWT ===
    secret_key: str = "change-me"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 480
    login_rate_limit: str = "5/minute"

    # === CORS ===
    # JSON (["http://a","https://b"]) or comma separated ("http://a,https://b")
    cors_origins: Union[str, List[str]] = ""

    # === Pagination ===
    max_page_size: int = 100

    # === Requests / notifications ===
    overdue_minutes: int = 15
    notifications_enabled: bool = True
    notification_check_interval_seconds: int = 60
    notifications_use_change_stream: bool = False

    # === Channels ===
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = True
    mail_from: str = "grm@hotel.local"
    slack_webhook_url: Optional[str] = None
    teams_webhook_url: Optional[str] = None
    notification_webhook_url: Optional[str] = None
    notification_webhook_secret: Optional[str] = None

    # === Seed ===
    seed_admin_email: Optional[str] = None
    seed_admin_password: Optional[str] = None

    log_level: str = "INFO"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        if v is None:
            return []
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            s = v.strip()
            if not s:
                return []
            if s.startswith("["):
                try:
                    data = json.loads(s)
                    if isinstance(data, list):
                        return [str(x).strip() for x in data if str(x).strip()]
                except ValueError:
                    # malformed JSON falls back to the comma split
                    pass
            return [item.strip() for item in s.split(",") if item.strip()]
        return [str(v).strip()] if str(v).strip() else []


# Global instance shared by main.py, db.py and the services
settings = Settings()
