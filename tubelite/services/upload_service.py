from __future__ import annotations

import asyncio
import json
import logging
import mimetypes
from concurrent.futures import Future
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, BinaryIO, Iterable, Literal, Mapping, Optional
from uuid import uuid4

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from tubelite.config import Settings
from tubelite.core.exceptions import BusinessError
from tubelite.core.redis import publish_message
from tubelite.i18n.codes import ErrorCode
from tubelite.models.video import Video
from tubelite.services.storage.base import ProgressCallback, StorageService
from tubelite.services.video_service import VideoService

logger = logging.getLogger("tubelite.upload")

AssetKind = Literal["video", "image"]


@dataclass
class UploadSource:
    data: BinaryIO
    filename: str
    size_bytes: int
    content_type: Optional[str] = None


@dataclass
class UploadedAsset:
    url: str
    file_key: str
    size_bytes: int


def upload_channel(upload_id: str) -> str:
    return f"uploads:{upload_id}"


def _get_allowed_extensions(settings: Settings, kind: AssetKind) -> list[str]:
    raw = settings.UPLOAD_VIDEO_EXTENSIONS if kind == "video" else settings.UPLOAD_IMAGE_EXTENSIONS
    items = [item.strip().lower().lstrip(".") for item in raw.split(",") if item.strip()]
    if not items:
        raise RuntimeError(f"no allowed extensions configured for {kind}")
    return items


def _format_size_bytes(size_bytes: int) -> str:
    size_mb = max(1, size_bytes // (1024 * 1024))
    return f"{size_mb}MB"


def _ensure_extension_allowed(filename: str, allowed: Iterable[str]) -> None:
    allowed = list(allowed)
    if "." not in filename:
        raise BusinessError(ErrorCode.UNSUPPORTED_FILE_FORMAT, allowed=", ".join(allowed))
    ext = filename.rsplit(".", 1)[-1].lower()
    if ext not in allowed:
        raise BusinessError(ErrorCode.UNSUPPORTED_FILE_FORMAT, allowed=", ".join(allowed))


def _ensure_size_allowed(settings: Settings, size_bytes: int) -> None:
    max_size = settings.UPLOAD_MAX_SIZE_BYTES
    if size_bytes > max_size:
        raise BusinessError(ErrorCode.FILE_TOO_LARGE, max_size=_format_size_bytes(max_size))


def build_file_key(filename: str, owner_uid: str, kind: AssetKind) -> str:
    now = datetime.now(timezone.utc)
    ext = Path(filename).suffix.lower()
    return f"{kind}s/{owner_uid}/{now:%Y/%m/%d}/{uuid4().hex}{ext}"


def make_progress_publisher(
    redis: Redis, upload_id: str, loop: asyncio.AbstractEventLoop
) -> ProgressCallback:
    """Progress callback, safe to call from the storage thread, that publishes to Redis."""
    channel = upload_channel(upload_id)

    def _log_failure(future: "Future[None]") -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.warning("upload progress publish failed upload_id=%s: %s", upload_id, exc)

    def _on_progress(percent: int) -> None:
        message = json.dumps({"type": "upload_progress", "uploadId": upload_id, "percent": percent})
        future = asyncio.run_coroutine_threadsafe(publish_message(redis, channel, message), loop)
        future.add_done_callback(_log_failure)

    return _on_progress


class UploadService:
    @staticmethod
    async def upload_asset(
        storage: StorageService,
        settings: Settings,
        source: UploadSource,
        kind: AssetKind,
        owner_uid: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> UploadedAsset:
        _ensure_extension_allowed(source.filename, _get_allowed_extensions(settings, kind))
        _ensure_size_allowed(settings, source.size_bytes)

        file_key = build_file_key(source.filename, owner_uid, kind)
        content_type = (
            source.content_type
            or mimetypes.guess_type(source.filename)[0]
            or "application/octet-stream"
        )
        try:
            url = await asyncio.to_thread(
                storage.upload_file,
                file_key,
                source.data,
                source.size_bytes,
                content_type,
                on_progress,
            )
        except Exception as exc:
            logger.exception("upload failed key=%s", file_key)
            raise BusinessError(ErrorCode.UPLOAD_FAILED, reason=str(exc) or type(exc).__name__) from exc
        logger.info("uploaded %s key=%s bytes=%s", kind, file_key, source.size_bytes)
        return UploadedAsset(url=url, file_key=file_key, size_bytes=source.size_bytes)

    @staticmethod
    def presign_upload(
        storage: StorageService,
        settings: Settings,
        filename: str,
        size_bytes: int,
        kind: AssetKind,
        owner_uid: str,
    ) -> dict[str, Any]:
        """Let the client PUT straight to storage, then reference ``public_url``."""
        _ensure_extension_allowed(filename, _get_allowed_extensions(settings, kind))
        _ensure_size_allowed(settings, size_bytes)
        expires_in = settings.UPLOAD_PRESIGN_EXPIRES
        file_key = build_file_key(filename, owner_uid, kind)
        return {
            "upload_url": storage.presign_put_object(file_key, expires_in),
            "file_key": file_key,
            "public_url": storage.public_url(file_key),
            "expires_in": expires_in,
        }

    @staticmethod
    async def publish_video(
        db: AsyncSession,
        storage: StorageService,
        settings: Settings,
        uploader_id: str,
        uploader_name: str,
        fields: Mapping[str, Any],
        video: UploadSource,
        thumbnail: Optional[UploadSource] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Video:
        """Upload the video and thumbnail together, then write the video record.

        Nothing is written to the database unless every upload succeeded;
        objects already stored for a failed publish are removed.
        """
        uploads = [
            UploadService.upload_asset(storage, settings, video, "video", uploader_id, on_progress)
        ]
        if thumbnail is not None:
            uploads.append(
                UploadService.upload_asset(storage, settings, thumbnail, "image", uploader_id)
            )
        results = await asyncio.gather(*uploads, return_exceptions=True)

        failures = [item for item in results if isinstance(item, BaseException)]
        if failures:
            for item in results:
                if isinstance(item, UploadedAsset):
                    await UploadService._discard(storage, item.file_key)
            raise failures[0]

        video_asset = results[0]
        thumbnail_url = (
            results[1].url if len(results) > 1 else settings.THUMBNAIL_PLACEHOLDER_URL
        )
        record = dict(fields)
        record["video_url"] = video_asset.url
        record["thumbnail_url"] = thumbnail_url
        try:
            return await VideoService.create_video(db, uploader_id, uploader_name, record)
        except Exception:
            await UploadService._discard(storage, video_asset.file_key)
            if len(results) > 1:
                await UploadService._discard(storage, results[1].file_key)
            raise

    @staticmethod
    async def _discard(storage: StorageService, file_key: str) -> None:
        try:
            await asyncio.to_thread(storage.delete_file, file_key)
        except Exception as exc:
            logger.warning("orphan upload left in storage key=%s: %s", file_key, exc)
