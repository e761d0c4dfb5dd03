"""View, like/dislike and subscriber counters.

All counter changes are single ``UPDATE ... SET n = n + delta`` statements so
concurrent writers commute. View de-duplication relies on a per-session
marker in Redis: it is best effort, and a lost or expired marker counts the
view again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from redis.asyncio import Redis
from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tubelite.core.exceptions import BusinessError
from tubelite.i18n.codes import ErrorCode
from tubelite.models.user_profile import UserProfile
from tubelite.models.video import Video
from tubelite.models.video_vote import VideoVote
from tubelite.services.engagement_service import (
    EngagementKind,
    delete_video_entry,
    upsert_video_entry,
)
from tubelite.services.subscription_service import subscriber_delta
from tubelite.services.video_service import VideoService

logger = logging.getLogger("tubelite.metrics")

Vote = Literal["none", "liked", "disliked"]
VOTES = ("none", "liked", "disliked")


def view_marker_key(session_id: str, video_id: str) -> str:
    return f"views:{session_id}:{video_id}"


def vote_deltas(previous: str, new: str) -> tuple[int, int]:
    """Counter changes ``(likes, dislikes)`` for moving from ``previous`` to ``new``."""
    likes = int(new == "liked") - int(previous == "liked")
    dislikes = int(new == "disliked") - int(previous == "disliked")
    return likes, dislikes


def _floored(column, delta: int):  # type: ignore[no-untyped-def]
    return case((column + delta < 0, 0), else_=column + delta)


@dataclass
class VoteResult:
    vote: str
    likes: int
    dislikes: int


class MetricsService:
    @staticmethod
    async def increment_view(
        db: AsyncSession,
        redis: Redis,
        video_id: str,
        session_id: str,
        ttl_seconds: int,
    ) -> tuple[bool, int]:
        """Count one view per (session, video); returns ``(counted, views)``."""
        await VideoService.get_video(db, video_id)
        marker = view_marker_key(session_id, video_id)
        is_new = await redis.set(marker, "1", nx=True, ex=ttl_seconds)
        if not is_new:
            return False, await MetricsService._views(db, video_id)
        try:
            await db.execute(
                update(Video).where(Video.id == video_id).values(views=Video.views + 1)
            )
            await db.commit()
        except Exception:
            await db.rollback()
            # let the next attempt from this session count
            await redis.delete(marker)
            raise
        return True, await MetricsService._views(db, video_id)

    @staticmethod
    async def increment_like(db: AsyncSession, video_id: str, delta: int = 1) -> None:
        await db.execute(
            update(Video).where(Video.id == video_id).values(likes=_floored(Video.likes, delta))
        )
        await db.commit()

    @staticmethod
    async def increment_subscriber(db: AsyncSession, channel_uid: str, delta: int = 1) -> None:
        await db.execute(
            update(UserProfile)
            .where(UserProfile.uid == channel_uid)
            .values(subscribers=subscriber_delta(delta))
        )
        await db.commit()

    @staticmethod
    async def get_vote(db: AsyncSession, uid: str, video_id: str) -> str:
        result = await db.execute(
            select(VideoVote.vote).where(VideoVote.user_id == uid, VideoVote.video_id == video_id)
        )
        return result.scalar_one_or_none() or "none"

    @staticmethod
    async def cast_vote(db: AsyncSession, uid: str, video_id: str, vote: str) -> VoteResult:
        """Move the user's vote to ``vote`` and adjust both counters in one transaction."""
        if vote not in VOTES:
            raise BusinessError(ErrorCode.INVALID_VOTE)
        video = await VideoService.get_video(db, video_id)
        result = await db.execute(
            select(VideoVote).where(VideoVote.user_id == uid, VideoVote.video_id == video_id)
        )
        record = result.scalar_one_or_none()
        previous = record.vote if record is not None else "none"

        try:
            likes_delta, dislikes_delta = vote_deltas(previous, vote)
            if likes_delta or dislikes_delta:
                await db.execute(
                    update(Video)
                    .where(Video.id == video_id)
                    .values(
                        likes=_floored(Video.likes, likes_delta),
                        dislikes=_floored(Video.dislikes, dislikes_delta),
                    )
                )
            if vote == "none":
                if record is not None:
                    await db.delete(record)
            elif record is None:
                db.add(VideoVote(user_id=uid, video_id=video_id, vote=vote))
            else:
                record.vote = vote

            if vote == "liked":
                await upsert_video_entry(db, EngagementKind.LIKED, uid, video)
            elif previous == "liked":
                await delete_video_entry(db, EngagementKind.LIKED, uid, video_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        counts = await db.execute(
            select(Video.likes, Video.dislikes).where(Video.id == video_id)
        )
        likes, dislikes = counts.one()
        if previous != vote:
            logger.info("vote %s -> %s user=%s video=%s", previous, vote, uid, video_id)
        return VoteResult(vote=vote, likes=likes, dislikes=dislikes)

    @staticmethod
    async def _views(db: AsyncSession, video_id: str) -> int:
        result = await db.execute(select(Video.views).where(Video.id == video_id))
        return int(result.scalar_one_or_none() or 0)
