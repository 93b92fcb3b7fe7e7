# app/core/config.py
from typing import List, Optional, Tuple

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    APP_NAME: str = "Concrete FOTA Backend"
    APP_VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:5173"]

    # Default is a process-local SQLite database; point at Postgres for durability
    DATABASE_URL: str = "sqlite://"

    # Auth
    JWT_SECRET: str = "fota-concrete-printing-secret-key"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_HOURS: int = 24
    ADMIN_USER: str = "admin"
    ADMIN_PASS: str = "admin123"
    ADMIN_EMAIL: str = "admin@fota.com"
    OPERATOR_USER: str = "operator"
    OPERATOR_PASS: str = "op123"
    OPERATOR_EMAIL: str = "operator@fota.com"

    # Firmware uploads
    FIRMWARE_DIR: str = "./firmware_uploads"
    FIRMWARE_MAX_SIZE: int = 50 * 1024 * 1024  # 50MB
    FIRMWARE_ALLOWED_EXTENSIONS: Tuple[str, ...] = (".bin", ".hex")

    # Storage backends: "local", "gcs" or "both"
    STORAGE_PROVIDER: str = "local"
    GCS_BUCKET: Optional[str] = None
    GCS_PREFIX: str = "firmware/"

    # Deployment simulation
    DEPLOY_TICK_INTERVAL_SECONDS: float = 2.0
    DEPLOY_PROGRESS_MIN_STEP: int = 5
    DEPLOY_PROGRESS_MAX_STEP: int = 20
    DEPLOY_FAILURE_CHECK_DELAY_SECONDS: float = 10.0
    DEPLOY_FAILURE_PROBABILITY: float = 0.05

    HISTORY_AUTO_RECORD: bool = True
    SEED_DEMO_DATA: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()

__all__ = ["settings", "Settings"]
