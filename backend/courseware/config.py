from __future__ import annotations

import os

APP_VERSION = os.getenv("APP_VERSION", "0.4.0")


class Settings:
    PROJECT_NAME: str = "Courseware"
    API_V1_PREFIX: str = "/api/v1"

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Full SQLAlchemy URL wins over the POSTGRES_* parts when set
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")
    POSTGRES_HOST: str = os.getenv("POSTGRES_HOST", "localhost")
    POSTGRES_PORT: str = os.getenv("POSTGRES_PORT", "5432")
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "courseware")
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "courseware")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "courseware")

    RESET_DB: bool = os.getenv("RESET_DB", "").lower() in ("1", "true", "yes")

    ALLOWED_ORIGINS: list[str] = [
        o.strip()
        for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:5173").split(",")
        if o.strip()
    ]

    # Uploaded media lives under UPLOAD_ROOT and is served from UPLOAD_URL_PREFIX
    UPLOAD_ROOT: str = os.getenv("UPLOAD_ROOT", "uploads")
    UPLOAD_URL_PREFIX: str = os.getenv("UPLOAD_URL_PREFIX", "/uploads")

    # Archive lifecycle windows
    DELETE_TTL_MINUTES: int = int(os.getenv("DELETE_TTL_MINUTES", "1"))
    CASCADE_PURGE_AFTER_MS: int = int(os.getenv("CASCADE_PURGE_AFTER_MS", "60000"))
    ARCHIVE_PURGE_INTERVAL_MS: int = int(os.getenv("ARCHIVE_PURGE_INTERVAL_MS", "15000"))
    PURGE_SHUTDOWN_TIMEOUT_SECONDS: float = float(
        os.getenv("PURGE_SHUTDOWN_TIMEOUT_SECONDS", "10")
    )

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


settings = Settings()
