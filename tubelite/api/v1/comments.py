from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from tubelite.api.deps import (
    get_current_user,
    get_current_user_optional,
    get_db,
    get_optional_redis,
    get_settings,
)
from tubelite.config import Settings
from tubelite.core.response import success
from tubelite.schemas.comment import CommentCreateRequest, CommentResponse
from tubelite.schemas.common import ListResponse
from tubelite.services.auth_service import CurrentUser
from tubelite.services.comment_service import CommentService
from tubelite.services.video_service import VideoService

router = APIRouter(prefix="/videos/{video_id}/comments")


@router.get("")
async def list_comments(
    video_id: str,
    limit: Optional[int] = Query(None, ge=1, le=500),
    user: Optional[CurrentUser] = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    await VideoService.get_visible_video(db, video_id, user.uid if user else None)
    comments = await CommentService.list_comments(db, video_id, limit=limit)
    response = ListResponse[CommentResponse](
        items=[CommentResponse.model_validate(comment) for comment in comments],
        total=len(comments),
    )
    return success(data=jsonable_encoder(response))


@router.post("")
async def post_comment(
    video_id: str,
    data: CommentCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: Optional[Redis] = Depends(get_optional_redis),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    await VideoService.get_visible_video(db, video_id, user.uid)
    comment = await CommentService.post_comment(
        db,
        redis,
        video_id,
        author_uid=user.uid,
        author_name=user.display_name,
        author_photo=user.photo_url,
        text=data.text,
        max_length=settings.COMMENT_MAX_LENGTH,
    )
    return success(data=jsonable_encoder(CommentResponse.model_validate(comment)))
