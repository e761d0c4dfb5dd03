from __future__ import annotations

import asyncio
from typing import Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, File, Form, Header, Query, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from tubelite.api.deps import (
    get_current_user,
    get_current_user_optional,
    get_db,
    get_optional_redis,
    get_redis,
    get_settings,
    get_storage,
    upload_source,
)
from tubelite.config import Settings
from tubelite.core.exceptions import BusinessError
from tubelite.core.response import success
from tubelite.i18n.codes import ErrorCode
from tubelite.models.video import Video
from tubelite.schemas.common import ListResponse
from tubelite.schemas.video import (
    Visibility,
    VideoCreateRequest,
    VideoCreateResponse,
    VideoResponse,
    VideoUpdateRequest,
    ViewRequest,
    ViewResponse,
    VoteRequest,
    VoteResponse,
)
from tubelite.services.auth_service import CurrentUser
from tubelite.services.metrics_service import MetricsService
from tubelite.services.storage.base import StorageService
from tubelite.services.upload_service import UploadService, make_progress_publisher
from tubelite.services.video_service import VideoService

router = APIRouter(prefix="/videos")


def _video_list(videos: list[Video]) -> dict:
    response = ListResponse[VideoResponse](
        items=[VideoResponse.model_validate(video) for video in videos],
        total=len(videos),
    )
    return jsonable_encoder(response)


def _ensure_owner(video: Video, user: CurrentUser) -> None:
    if video.uploader_id != user.uid:
        raise BusinessError(ErrorCode.PERMISSION_DENIED)


def _uploader_name(user: CurrentUser) -> str:
    return user.display_name or user.email or user.uid


@router.get("")
async def list_videos(
    limit: Optional[int] = Query(None, ge=1, le=200, description="Max items"),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    videos = await VideoService.list_videos(db, limit=limit, public_only=True)
    return success(data=_video_list(videos))


@router.get("/search")
async def search_videos(
    q: str = Query("", description="Title substring"),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    videos = await VideoService.search_videos(
        db, q, limit=settings.SEARCH_RESULT_LIMIT, public_only=True
    )
    return success(data=_video_list(videos))


@router.get("/feed")
async def subscription_feed(
    limit: int = Query(50, ge=1, le=200),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    videos = await VideoService.list_subscription_feed(db, user.uid, limit=limit)
    return success(data=_video_list(videos))


@router.post("")
async def create_video(
    data: VideoCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    fields = data.model_dump()
    if not fields.get("thumbnail_url"):
        fields["thumbnail_url"] = settings.THUMBNAIL_PLACEHOLDER_URL
    video = await VideoService.create_video(db, user.uid, _uploader_name(user), fields)
    return success(data=jsonable_encoder(VideoCreateResponse(id=video.id)))


@router.post("/publish")
async def publish_video(
    title: str = Form(..., min_length=1, max_length=500),
    description: str = Form(""),
    category: Optional[str] = Form(None),
    visibility: Visibility = Form("public"),
    duration: Optional[str] = Form(None),
    upload_id: Optional[str] = Form(None, description="Channel for progress events"),
    video: UploadFile = File(...),
    thumbnail: Optional[UploadFile] = File(None),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage),
    settings: Settings = Depends(get_settings),
    redis: Optional[Redis] = Depends(get_optional_redis),
) -> JSONResponse:
    on_progress = None
    if upload_id and redis is not None:
        on_progress = make_progress_publisher(redis, upload_id, asyncio.get_running_loop())
    record = await UploadService.publish_video(
        db,
        storage,
        settings,
        uploader_id=user.uid,
        uploader_name=_uploader_name(user),
        fields={
            "title": title,
            "description": description,
            "category": category,
            "visibility": visibility,
            "duration": duration or None,
        },
        video=upload_source(video),
        thumbnail=upload_source(thumbnail) if thumbnail and thumbnail.filename else None,
        on_progress=on_progress,
    )
    return success(data=jsonable_encoder(VideoResponse.model_validate(record)))


@router.get("/{video_id}")
async def get_video(
    video_id: str,
    user: Optional[CurrentUser] = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    video = await VideoService.get_visible_video(db, video_id, user.uid if user else None)
    return success(data=jsonable_encoder(VideoResponse.model_validate(video)))


@router.patch("/{video_id}")
async def update_video(
    video_id: str,
    data: VideoUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    video = await VideoService.get_visible_video(db, video_id, user.uid)
    _ensure_owner(video, user)
    video = await VideoService.update_video(db, video_id, data.model_dump(exclude_unset=True))
    return success(data=jsonable_encoder(VideoResponse.model_validate(video)))


@router.delete("/{video_id}")
async def delete_video(
    video_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    video = await VideoService.get_visible_video(db, video_id, user.uid)
    _ensure_owner(video, user)
    await VideoService.delete_video(db, video_id)
    return success(data={"deleted": True})


@router.post("/{video_id}/views")
async def record_view(
    video_id: str,
    data: Optional[ViewRequest] = None,
    x_session_id: Optional[str] = Header(default=None),
    user: Optional[CurrentUser] = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
    redis: Redis = Depends(get_redis),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    await VideoService.get_visible_video(db, video_id, user.uid if user else None)
    session_id = x_session_id or (data.session_id if data else None) or uuid4().hex
    counted, views = await MetricsService.increment_view(
        db, redis, video_id, session_id, settings.VIEW_SESSION_TTL_SECONDS
    )
    response = ViewResponse(counted=counted, session_id=session_id, views=views)
    return success(data=jsonable_encoder(response))


@router.get("/{video_id}/vote")
async def get_vote(
    video_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    video = await VideoService.get_visible_video(db, video_id, user.uid)
    vote = await MetricsService.get_vote(db, user.uid, video_id)
    response = VoteResponse(vote=vote, likes=video.likes, dislikes=video.dislikes)
    return success(data=jsonable_encoder(response))


@router.put("/{video_id}/vote")
async def cast_vote(
    video_id: str,
    data: VoteRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    await VideoService.get_visible_video(db, video_id, user.uid)
    result = await MetricsService.cast_vote(db, user.uid, video_id, data.vote)
    response = VoteResponse(vote=result.vote, likes=result.likes, dislikes=result.dislikes)
    return success(data=jsonable_encoder(response))
