from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tubelite.core.exceptions import BusinessError
from tubelite.i18n.codes import ErrorCode
from tubelite.models.base import utcnow
from tubelite.models.comment import Comment
from tubelite.models.engagement import EngagementEntry
from tubelite.models.subscription import Subscription
from tubelite.models.video import VISIBILITIES, Video
from tubelite.models.video_vote import VideoVote
from tubelite.utils.duration import parse_duration

logger = logging.getLogger("tubelite.videos")

DEFAULT_SEARCH_LIMIT = 20
EDITABLE_FIELDS = ("title", "description", "category", "visibility")


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class VideoService:
    @staticmethod
    async def list_videos(
        db: AsyncSession,
        newest_first: bool = True,
        limit: Optional[int] = None,
        public_only: bool = False,
    ) -> list[Video]:
        """Return all videos; callers that need a bound pass ``limit``."""
        query = select(Video)
        if public_only:
            query = query.where(Video.visibility == "public")
        if newest_first:
            query = query.order_by(Video.upload_date.desc())
        if limit is not None:
            query = query.limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def get_video(db: AsyncSession, video_id: str) -> Video:
        video = await db.get(Video, video_id)
        if video is None:
            raise BusinessError(ErrorCode.VIDEO_NOT_FOUND)
        return video

    @staticmethod
    async def get_visible_video(
        db: AsyncSession, video_id: str, viewer_uid: Optional[str]
    ) -> Video:
        """Like ``get_video``, but private videos exist only for their uploader."""
        video = await VideoService.get_video(db, video_id)
        if video.visibility == "private" and video.uploader_id != viewer_uid:
            raise BusinessError(ErrorCode.VIDEO_NOT_FOUND)
        return video

    @staticmethod
    async def list_videos_by_channel(
        db: AsyncSession, uid: str, public_only: bool = False
    ) -> list[Video]:
        query = select(Video).where(Video.uploader_id == uid)
        if public_only:
            query = query.where(Video.visibility == "public")
        result = await db.execute(query.order_by(Video.upload_date.desc()))
        return list(result.scalars().all())

    @staticmethod
    async def search_videos(
        db: AsyncSession,
        term: str,
        limit: int = DEFAULT_SEARCH_LIMIT,
        public_only: bool = False,
    ) -> list[Video]:
        """Case-insensitive substring match on the title."""
        term = (term or "").strip()
        if not term:
            return []
        query = select(Video).where(
            Video.title.ilike(f"%{_escape_like(term)}%", escape="\\")
        )
        if public_only:
            query = query.where(Video.visibility == "public")
        result = await db.execute(query.order_by(Video.upload_date.desc()).limit(limit))
        return list(result.scalars().all())

    @staticmethod
    async def create_video(
        db: AsyncSession,
        uploader_id: str,
        uploader_name: str,
        fields: Mapping[str, Any],
    ) -> Video:
        duration = fields.get("duration")
        if duration and parse_duration(duration) is None:
            raise BusinessError(ErrorCode.INVALID_DURATION_FORMAT)
        visibility = fields.get("visibility") or "public"
        if visibility not in VISIBILITIES:
            raise BusinessError(ErrorCode.INVALID_PARAMETER, detail="visibility")

        video = Video(
            title=fields["title"],
            description=fields.get("description") or "",
            category=fields.get("category"),
            visibility=visibility,
            video_url=fields["video_url"],
            thumbnail_url=fields["thumbnail_url"],
            uploader_id=uploader_id,
            uploader_name=uploader_name,
            upload_date=utcnow(),
            duration=duration,
            views=0,
            likes=0,
            dislikes=0,
            comments=0,
        )
        db.add(video)
        await db.commit()
        await db.refresh(video)
        logger.info("video created id=%s uploader=%s", video.id, uploader_id)
        return video

    @staticmethod
    async def update_video(
        db: AsyncSession, video_id: str, changes: Mapping[str, Any]
    ) -> Video:
        video = await VideoService.get_video(db, video_id)
        for field_name in EDITABLE_FIELDS:
            value = changes.get(field_name)
            if value is None:
                continue
            if field_name == "visibility" and value not in VISIBILITIES:
                raise BusinessError(ErrorCode.INVALID_PARAMETER, detail="visibility")
            setattr(video, field_name, value)
        await db.commit()
        await db.refresh(video)
        return video

    @staticmethod
    async def delete_video(db: AsyncSession, video_id: str) -> None:
        video = await VideoService.get_video(db, video_id)
        try:
            await db.execute(delete(Comment).where(Comment.video_id == video_id))
            await db.execute(delete(VideoVote).where(VideoVote.video_id == video_id))
            await db.execute(
                delete(EngagementEntry).where(EngagementEntry.video_id == video_id)
            )
            await db.delete(video)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("video deleted id=%s", video_id)

    @staticmethod
    async def list_subscription_feed(
        db: AsyncSession, uid: str, limit: int = 50
    ) -> list[Video]:
        """Newest public uploads from every channel ``uid`` subscribes to."""
        channels = select(Subscription.channel_uid).where(Subscription.subscriber_uid == uid)
        result = await db.execute(
            select(Video)
            .where(Video.uploader_id.in_(channels), Video.visibility == "public")
            .order_by(Video.upload_date.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
