from __future__ import annotations

from datetime import timedelta
from threading import Thread
from typing import BinaryIO, Optional

from minio import Minio

from tubelite.config import Settings
from tubelite.services.storage.base import ProgressCallback, ProgressTracker, StorageService


class _MinioProgress(Thread):
    """Progress hook in the shape the MinIO client expects; never started."""

    def __init__(self, tracker: ProgressTracker) -> None:
        super().__init__(daemon=True)
        self._tracker = tracker

    def set_meta(self, object_name: str, total_length: int) -> None:
        if total_length and total_length > 0:
            self._tracker.total_length = total_length

    def update(self, size: int) -> None:
        self._tracker.advance(size)


class MinioStorageService(StorageService):
    @property
    def provider(self) -> str:
        return "minio"

    def __init__(self, settings: Settings) -> None:
        endpoint = settings.MINIO_ENDPOINT
        access_key = settings.MINIO_ACCESS_KEY
        secret_key = settings.MINIO_SECRET_KEY
        bucket = settings.MINIO_BUCKET
        if not endpoint or not access_key or not secret_key or not bucket:
            raise RuntimeError("MinIO settings are not set")
        self._secure = bool(settings.MINIO_USE_SSL)
        self._endpoint = endpoint
        self._bucket = bucket
        self._part_size = settings.UPLOAD_PART_SIZE_BYTES
        self._public_base_url = settings.STORAGE_PUBLIC_BASE_URL
        self._client = Minio(
            endpoint=endpoint,
            access_key=access_key,
            secret_key=secret_key,
            secure=self._secure,
        )

    def upload_file(
        self,
        object_name: str,
        data: BinaryIO,
        length: int,
        content_type: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        tracker = ProgressTracker(length, on_progress)
        # payloads above part_size go through multipart upload, one progress
        # update per part
        self._client.put_object(
            bucket_name=self._bucket,
            object_name=object_name,
            data=data,
            length=length,
            content_type=content_type,
            part_size=self._part_size,
            progress=_MinioProgress(tracker),
        )
        tracker.finish()
        return self.public_url(object_name)

    def presign_put_object(self, object_name: str, expires_in: int) -> str:
        return self._client.presigned_put_object(
            bucket_name=self._bucket,
            object_name=object_name,
            expires=timedelta(seconds=expires_in),
        )

    def public_url(self, object_name: str) -> str:
        if self._public_base_url:
            return f"{self._public_base_url.rstrip('/')}/{object_name}"
        scheme = "https" if self._secure else "http"
        return f"{scheme}://{self._endpoint}/{self._bucket}/{object_name}"

    def delete_file(self, object_name: str) -> None:
        self._client.remove_object(self._bucket, object_name)
