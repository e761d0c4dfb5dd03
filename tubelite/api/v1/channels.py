from __future__ import annotations

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from tubelite.api.deps import get_current_user, get_current_user_optional, get_db
from tubelite.core.response import success
from tubelite.models.user_profile import UserProfile
from tubelite.schemas.channel import (
    ChannelCustomizeRequest,
    ChannelProfileResponse,
    ChannelResponse,
    MonetizationResponse,
)
from tubelite.schemas.common import ListResponse
from tubelite.schemas.engagement import SubscriptionResponse, SubscriptionStatusResponse
from tubelite.schemas.video import VideoResponse
from tubelite.services.auth_service import CurrentUser
from tubelite.services.channel_service import ChannelService
from tubelite.services.subscription_service import SubscriptionService
from tubelite.services.video_service import VideoService

router = APIRouter(prefix="/channels")


def _profile(profile: UserProfile, include_private: bool) -> ChannelProfileResponse:
    response = ChannelProfileResponse.model_validate(profile)
    if not include_private:
        response.email = None
    return response


async def _status(db: AsyncSession, subscriber_uid: str, channel_uid: str) -> dict:
    response = SubscriptionStatusResponse(
        channel_uid=channel_uid,
        subscribed=await SubscriptionService.is_subscribed(db, subscriber_uid, channel_uid),
        subscribers=await SubscriptionService.subscriber_count(db, channel_uid),
    )
    return jsonable_encoder(response)


@router.patch("/me")
async def customize_channel(
    data: ChannelCustomizeRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    profile = await ChannelService.customize(db, user.uid, data.model_dump(exclude_unset=True))
    return success(data=jsonable_encoder(_profile(profile, include_private=True)))


@router.get("/me/content")
async def channel_content(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    videos = await ChannelService.channel_content(db, user.uid)
    response = ListResponse[VideoResponse](
        items=[VideoResponse.model_validate(video) for video in videos], total=len(videos)
    )
    return success(data=jsonable_encoder(response))


@router.get("/me/monetization")
async def monetization_status(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    status = await ChannelService.monetization_status(db, user.uid)
    response = MonetizationResponse(**asdict(status), eligible=status.eligible)
    return success(data=jsonable_encoder(response))


@router.get("/me/subscriptions")
async def list_subscriptions(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    rows = await SubscriptionService.list_subscriptions(db, user.uid)
    response = ListResponse[SubscriptionResponse](
        items=[SubscriptionResponse.model_validate(row) for row in rows], total=len(rows)
    )
    return success(data=jsonable_encoder(response))


@router.get("/{uid}")
async def get_channel(
    uid: str,
    user: Optional[CurrentUser] = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    is_owner = user is not None and user.uid == uid
    profile, videos = await ChannelService.get_channel(db, uid, include_hidden=is_owner)
    response = ChannelResponse(
        profile=_profile(profile, include_private=is_owner),
        videos=[VideoResponse.model_validate(video) for video in videos],
    )
    return success(data=jsonable_encoder(response))


@router.get("/{uid}/videos")
async def list_channel_videos(
    uid: str,
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    videos = await VideoService.list_videos_by_channel(db, uid, public_only=True)
    response = ListResponse[VideoResponse](
        items=[VideoResponse.model_validate(video) for video in videos], total=len(videos)
    )
    return success(data=jsonable_encoder(response))


@router.get("/{uid}/subscription")
async def subscription_status(
    uid: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    return success(data=await _status(db, user.uid, uid))


@router.post("/{uid}/subscription")
async def subscribe(
    uid: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    await SubscriptionService.subscribe(db, user.uid, uid)
    return success(data=await _status(db, user.uid, uid))


@router.delete("/{uid}/subscription")
async def unsubscribe(
    uid: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    await SubscriptionService.unsubscribe(db, user.uid, uid)
    return success(data=await _status(db, user.uid, uid))
