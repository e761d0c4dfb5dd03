from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    APP_ENV: Literal["development", "staging", "production"] = Field(
        default="development"
    )
    DEBUG: bool = Field(default=True)
    LOG_LEVEL: str = Field(default="INFO")

    DATABASE_URL: Optional[str] = Field(default=None)
    DB_AUTO_CREATE: bool = Field(default=False)
    REDIS_URL: Optional[str] = Field(default=None)

    JWT_SECRET: Optional[str] = Field(default=None)
    JWT_ALGORITHM: Optional[str] = Field(default="HS256")
    JWT_EXPIRES_SECONDS: int = Field(default=7 * 24 * 3600)
    AUTH_SYNC_SECRET: Optional[str] = Field(default=None)

    STORAGE_PROVIDER: Optional[Literal["minio"]] = Field(default="minio")
    MINIO_ENDPOINT: Optional[str] = Field(default=None)
    MINIO_ACCESS_KEY: Optional[str] = Field(default=None)
    MINIO_SECRET_KEY: Optional[str] = Field(default=None)
    MINIO_BUCKET: Optional[str] = Field(default=None)
    MINIO_USE_SSL: Optional[bool] = Field(default=None)
    STORAGE_PUBLIC_BASE_URL: Optional[str] = Field(default=None)

    UPLOAD_VIDEO_EXTENSIONS: str = Field(default="mp4,webm,mov,mkv")
    UPLOAD_IMAGE_EXTENSIONS: str = Field(default="jpg,jpeg,png,webp,gif")
    UPLOAD_MAX_SIZE_BYTES: int = Field(default=2 * 1024 * 1024 * 1024)
    UPLOAD_PART_SIZE_BYTES: int = Field(default=16 * 1024 * 1024)
    UPLOAD_PRESIGN_EXPIRES: int = Field(default=3600)
    THUMBNAIL_PLACEHOLDER_URL: str = Field(default="https://picsum.photos/400/225")

    SEARCH_RESULT_LIMIT: int = Field(default=20)
    VIEW_SESSION_TTL_SECONDS: int = Field(default=12 * 3600)
    REQUEST_TIMEOUT_SECONDS: float = Field(default=30.0)
    COMMENT_MAX_LENGTH: int = Field(default=10000)

    LEGACY_API_ENABLED: bool = Field(default=True)

    def missing_settings(self) -> list[str]:
        """Names of backend credentials that must be set before serving data."""
        required = {
            "DATABASE_URL": self.DATABASE_URL,
            "REDIS_URL": self.REDIS_URL,
            "JWT_SECRET": self.JWT_SECRET,
            "JWT_ALGORITHM": self.JWT_ALGORITHM,
        }
        if self.STORAGE_PROVIDER == "minio":
            required.update(
                {
                    "MINIO_ENDPOINT": self.MINIO_ENDPOINT,
                    "MINIO_ACCESS_KEY": self.MINIO_ACCESS_KEY,
                    "MINIO_SECRET_KEY": self.MINIO_SECRET_KEY,
                    "MINIO_BUCKET": self.MINIO_BUCKET,
                }
            )
        return [name for name, value in required.items() if not value]


settings = Settings()
