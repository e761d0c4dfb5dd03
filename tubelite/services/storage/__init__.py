from __future__ import annotations

from tubelite.services.storage.base import ProgressTracker, StorageService
from tubelite.services.storage.factory import get_storage_service
from tubelite.services.storage.minio import MinioStorageService

__all__ = ["ProgressTracker", "StorageService", "MinioStorageService", "get_storage_service"]
