from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tubelite.core.exceptions import BusinessError
from tubelite.i18n.codes import ErrorCode
from tubelite.models.subscription import Subscription
from tubelite.models.user_profile import UserProfile
from tubelite.models.video import Video
from tubelite.services.video_service import VideoService
from tubelite.utils.duration import parse_duration

logger = logging.getLogger("tubelite.channels")

SUBSCRIBERS_REQUIRED = 1000
WATCH_HOURS_REQUIRED = 4000
CUSTOMIZABLE_FIELDS = ("display_name", "description", "photo_url", "banner_url")


@dataclass
class MonetizationStatus:
    subscribers: int
    subscribers_required: int
    subscriber_progress: float
    watch_hours: int
    watch_hours_required: int
    watch_hours_progress: float

    @property
    def eligible(self) -> bool:
        return (
            self.subscribers >= self.subscribers_required
            and self.watch_hours >= self.watch_hours_required
        )


def _progress(value: int, required: int) -> float:
    if required <= 0:
        return 100.0
    return round(min(100.0, value * 100 / required), 2)


def estimate_watch_hours(videos: list[Video]) -> int:
    """Public watch hours, assuming every view watched the full video."""
    total_seconds = 0
    for video in videos:
        if video.visibility != "public":
            continue
        total_seconds += (video.views or 0) * (parse_duration(video.duration) or 0)
    return total_seconds // 3600


class ChannelService:
    @staticmethod
    async def get_profile(db: AsyncSession, uid: str) -> UserProfile:
        profile = await db.get(UserProfile, uid)
        if profile is None:
            raise BusinessError(ErrorCode.CHANNEL_NOT_FOUND)
        return profile

    @staticmethod
    async def ensure_profile(
        db: AsyncSession,
        uid: str,
        display_name: Optional[str],
        photo_url: Optional[str],
        email: Optional[str],
    ) -> UserProfile:
        """Create the profile on first sign-in; later sign-ins only fill blanks.

        Values saved through channel customization win over the identity
        provider's.
        """
        profile = await db.get(UserProfile, uid)
        if profile is None:
            profile = UserProfile(
                uid=uid,
                display_name=display_name,
                photo_url=photo_url,
                email=email,
                subscribers=0,
            )
            db.add(profile)
            logger.info("profile created uid=%s", uid)
        else:
            if display_name and not profile.display_name:
                profile.display_name = display_name
            if photo_url and not profile.photo_url:
                profile.photo_url = photo_url
            if email:
                profile.email = email
        await db.commit()
        await db.refresh(profile)
        return profile

    @staticmethod
    async def get_channel(
        db: AsyncSession, uid: str, include_hidden: bool = False
    ) -> tuple[UserProfile, list[Video]]:
        profile = await ChannelService.get_profile(db, uid)
        videos = await VideoService.list_videos_by_channel(db, uid, public_only=not include_hidden)
        return profile, videos

    @staticmethod
    async def customize(
        db: AsyncSession, uid: str, changes: Mapping[str, Any]
    ) -> UserProfile:
        """Merge the given fields into the profile, creating it if needed.

        A new name or photo is copied onto the channel's videos and onto
        subscribers' subscription rows.
        """
        profile = await db.get(UserProfile, uid)
        if profile is None:
            profile = UserProfile(uid=uid, subscribers=0)
            db.add(profile)
        for field_name in CUSTOMIZABLE_FIELDS:
            value = changes.get(field_name)
            if value is not None:
                setattr(profile, field_name, value)
        try:
            await db.flush()
            if changes.get("display_name"):
                await db.execute(
                    update(Video)
                    .where(Video.uploader_id == uid)
                    .values(uploader_name=changes["display_name"])
                )
            if changes.get("display_name") or changes.get("photo_url"):
                await db.execute(
                    update(Subscription)
                    .where(Subscription.channel_uid == uid)
                    .values(channel_name=profile.display_name, channel_photo=profile.photo_url)
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        await db.refresh(profile)
        changed = sorted(key for key, value in changes.items() if value is not None)
        logger.info("channel customized uid=%s fields=%s", uid, changed)
        return profile

    @staticmethod
    async def channel_content(db: AsyncSession, uid: str) -> list[Video]:
        """Every upload of the channel, any visibility, newest first."""
        return await VideoService.list_videos_by_channel(db, uid)

    @staticmethod
    async def monetization_status(db: AsyncSession, uid: str) -> MonetizationStatus:
        result = await db.execute(select(UserProfile.subscribers).where(UserProfile.uid == uid))
        subscribers = int(result.scalar_one_or_none() or 0)
        videos = await VideoService.list_videos_by_channel(db, uid)
        watch_hours = estimate_watch_hours(videos)
        return MonetizationStatus(
            subscribers=subscribers,
            subscribers_required=SUBSCRIBERS_REQUIRED,
            subscriber_progress=_progress(subscribers, SUBSCRIBERS_REQUIRED),
            watch_hours=watch_hours,
            watch_hours_required=WATCH_HOURS_REQUIRED,
            watch_hours_progress=_progress(watch_hours, WATCH_HOURS_REQUIRED),
        )
