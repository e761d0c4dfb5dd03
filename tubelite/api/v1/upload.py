from __future__ import annotations

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from redis.asyncio import Redis

from tubelite.api.deps import (
    get_current_user,
    get_optional_redis,
    get_settings,
    get_storage,
    upload_source,
)
from tubelite.config import Settings
from tubelite.core.response import success
from tubelite.schemas.upload import (
    AssetKind,
    AssetUploadResponse,
    UploadPresignRequest,
    UploadPresignResponse,
)
from tubelite.services.auth_service import CurrentUser
from tubelite.services.storage.base import StorageService
from tubelite.services.upload_service import UploadService, make_progress_publisher

router = APIRouter(prefix="/upload")


@router.post("/presign")
async def presign_upload(
    data: UploadPresignRequest,
    user: CurrentUser = Depends(get_current_user),
    storage: StorageService = Depends(get_storage),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    presigned = UploadService.presign_upload(
        storage, settings, data.filename, data.size_bytes, data.kind, user.uid
    )
    return success(data=jsonable_encoder(UploadPresignResponse(**presigned)))


@router.post("/asset")
async def upload_asset(
    file: UploadFile = File(...),
    kind: AssetKind = Form("image"),
    upload_id: Optional[str] = Form(None),
    user: CurrentUser = Depends(get_current_user),
    storage: StorageService = Depends(get_storage),
    settings: Settings = Depends(get_settings),
    redis: Optional[Redis] = Depends(get_optional_redis),
) -> JSONResponse:
    on_progress = None
    if upload_id and redis is not None:
        on_progress = make_progress_publisher(redis, upload_id, asyncio.get_running_loop())
    asset = await UploadService.upload_asset(
        storage, settings, upload_source(file), kind, user.uid, on_progress
    )
    response = AssetUploadResponse(
        url=asset.url, file_key=asset.file_key, size_bytes=asset.size_bytes
    )
    return success(data=jsonable_encoder(response))
