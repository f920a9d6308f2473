import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

STORAGE_BACKENDS = ("sqlite", "memory")
LOG_FORMATS = ("text", "json")


class Settings:
    """Centralised application configuration sourced from environment variables."""

    def __init__(self) -> None:
        load_dotenv()
        self.app_env = os.getenv("APP_ENV", "development").lower()
        database_path = os.getenv("DATABASE_PATH", "data/subscriptions.db")
        self.database_path = database_path if database_path == ":memory:" else Path(database_path).resolve()
        self.storage_backend = self._get_choice("STORAGE_BACKEND", STORAGE_BACKENDS, default="sqlite")
        self.server_host = os.getenv("SERVER_HOST", "0.0.0.0")
        self.server_port = self._get_int("SERVER_PORT", default=8081)
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        default_format = "json" if self.is_production else "text"
        self.log_format = self._get_choice("LOG_FORMAT", LOG_FORMATS, default=default_format)
        origins = os.getenv("CORS_ALLOW_ORIGINS")
        if origins:
            self.cors_allow_origins = [item.strip() for item in origins.split(",") if item.strip()]
        else:
            self.cors_allow_origins = ["*"]

    @property
    def is_production(self) -> bool:
        return self.app_env in ("prod", "production")

    @staticmethod
    def _get_int(key: str, default: Optional[int] = None) -> int:
        value = os.getenv(key)
        if value is None:
            if default is None:
                raise RuntimeError(f"Missing required environment variable: {key}")
            return default
        try:
            return int(value)
        except ValueError as exc:
            raise RuntimeError(f"Environment variable {key} must be an integer") from exc

    @staticmethod
    def _get_choice(key: str, choices: tuple, default: str) -> str:
        value = os.getenv(key, default).strip().lower()
        if value not in choices:
            raise RuntimeError(f"Environment variable {key} must be one of: {', '.join(choices)}")
        return value
