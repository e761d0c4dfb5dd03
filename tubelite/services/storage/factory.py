from __future__ import annotations

from tubelite.config import Settings
from tubelite.services.storage.base import StorageService
from tubelite.services.storage.minio import MinioStorageService


def get_storage_service(settings: Settings) -> StorageService:
    if settings.STORAGE_PROVIDER == "minio":
        return MinioStorageService(settings)
    raise RuntimeError(f"Unsupported storage provider: {settings.STORAGE_PROVIDER}")
