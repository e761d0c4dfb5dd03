"""Per-user engagement lists: history, liked videos, watch later, subscriptions.

Every list is keyed by (user, video) or (user, channel). Recording the same
video again refreshes its timestamp and snapshot instead of adding a
duplicate, history included. Liked entries are owned by the vote record and
subscriptions by ``SubscriptionService`` so their counters stay in step.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tubelite.core.exceptions import BusinessError
from tubelite.i18n.codes import ErrorCode
from tubelite.models.base import utcnow
from tubelite.models.engagement import EngagementEntry
from tubelite.models.video import Video
from tubelite.services.subscription_service import SubscriptionService
from tubelite.services.video_service import VideoService

logger = logging.getLogger("tubelite.engagement")

CLEAR_BATCH_SIZE = 100


class EngagementKind(str, Enum):
    HISTORY = "history"
    LIKED = "liked"
    WATCH_LATER = "watch_later"
    SUBSCRIPTIONS = "subscriptions"

    @classmethod
    def parse(cls, value: str) -> "EngagementKind":
        try:
            return cls(value.replace("-", "_"))
        except ValueError:
            raise BusinessError(ErrorCode.INVALID_ENGAGEMENT_KIND, kind=value) from None


TIMESTAMP_FIELDS = {
    EngagementKind.HISTORY: "viewedAt",
    EngagementKind.LIKED: "likedAt",
    EngagementKind.WATCH_LATER: "savedAt",
    EngagementKind.SUBSCRIPTIONS: "subscribedAt",
}


@dataclass
class EngagementItem:
    key: str
    kind: EngagementKind
    timestamp: datetime
    snapshot: dict[str, Any]


def video_snapshot(video: Video) -> dict[str, Any]:
    return {
        "id": video.id,
        "title": video.title,
        "thumbnailUrl": video.thumbnail_url,
        "uploaderId": video.uploader_id,
        "uploaderName": video.uploader_name,
        "duration": video.duration,
        "views": video.views,
    }


async def upsert_video_entry(
    db: AsyncSession, kind: EngagementKind, uid: str, video: Video
) -> EngagementEntry:
    """Insert or refresh one entry without committing."""
    result = await db.execute(
        select(EngagementEntry).where(
            EngagementEntry.user_id == uid,
            EngagementEntry.kind == kind.value,
            EngagementEntry.video_id == video.id,
        )
    )
    entry = result.scalar_one_or_none()
    if entry is None:
        entry = EngagementEntry(user_id=uid, kind=kind.value, video_id=video.id)
        db.add(entry)
    entry.snapshot = video_snapshot(video)
    entry.recorded_at = utcnow()
    await db.flush()
    return entry


async def delete_video_entry(
    db: AsyncSession, kind: EngagementKind, uid: str, video_id: str
) -> bool:
    """Delete one entry without committing."""
    result = await db.execute(
        delete(EngagementEntry).where(
            EngagementEntry.user_id == uid,
            EngagementEntry.kind == kind.value,
            EngagementEntry.video_id == video_id,
        )
    )
    return bool(result.rowcount)


class EngagementService:
    @staticmethod
    async def record(
        db: AsyncSession, kind: EngagementKind, uid: str, ref: str
    ) -> EngagementItem:
        """Add ``ref`` (a video id, or channel uid for subscriptions) to the list."""
        if kind is EngagementKind.SUBSCRIPTIONS:
            subscription, _ = await SubscriptionService.subscribe(db, uid, ref)
            return EngagementItem(
                key=subscription.channel_uid,
                kind=kind,
                timestamp=subscription.subscribed_at,
                snapshot={
                    "channelName": subscription.channel_name,
                    "channelPhoto": subscription.channel_photo,
                },
            )
        video = await VideoService.get_visible_video(db, ref, uid)
        if kind is EngagementKind.LIKED:
            from tubelite.services.metrics_service import MetricsService

            await MetricsService.cast_vote(db, uid, ref, "liked")
            entry = await EngagementService._get_entry(db, kind, uid, ref)
            if entry is None:
                raise BusinessError(ErrorCode.ENTRY_NOT_FOUND)
            return EngagementService._to_item(entry)

        try:
            entry = await upsert_video_entry(db, kind, uid, video)
            await db.commit()
        except IntegrityError:
            # lost an insert race for the same key; the row exists, refresh it
            await db.rollback()
            video = await VideoService.get_video(db, ref)
            entry = await upsert_video_entry(db, kind, uid, video)
            await db.commit()
        return EngagementService._to_item(entry)

    @staticmethod
    async def remove(db: AsyncSession, kind: EngagementKind, uid: str, key: str) -> bool:
        if kind is EngagementKind.SUBSCRIPTIONS:
            return await SubscriptionService.unsubscribe(db, uid, key)
        if kind is EngagementKind.LIKED:
            from tubelite.services.metrics_service import MetricsService

            if await EngagementService._get_entry(db, kind, uid, key) is None:
                return False
            await MetricsService.cast_vote(db, uid, key, "none")
            # the vote may already be gone while a stale entry lingers
            await delete_video_entry(db, kind, uid, key)
            await db.commit()
            return True
        try:
            removed = await delete_video_entry(db, kind, uid, key)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return removed

    @staticmethod
    async def clear_all(db: AsyncSession, kind: EngagementKind, uid: str) -> int:
        """Remove every entry in bounded batches; each batch commits on its own.

        A failure part-way leaves earlier batches cleared.
        """
        deleted = 0
        while True:
            keys = await EngagementService._keys(db, kind, uid, CLEAR_BATCH_SIZE)
            if not keys:
                break
            if kind in (EngagementKind.SUBSCRIPTIONS, EngagementKind.LIKED):
                for key in keys:
                    if await EngagementService.remove(db, kind, uid, key):
                        deleted += 1
                continue
            try:
                result = await db.execute(
                    delete(EngagementEntry).where(
                        EngagementEntry.user_id == uid,
                        EngagementEntry.kind == kind.value,
                        EngagementEntry.video_id.in_(keys),
                    )
                )
                await db.commit()
            except Exception:
                await db.rollback()
                logger.warning("clear %s for %s stopped after %s entries", kind.value, uid, deleted)
                raise
            deleted += result.rowcount or 0
        logger.info("cleared %s entries of %s for %s", deleted, kind.value, uid)
        return deleted

    @staticmethod
    async def list(db: AsyncSession, kind: EngagementKind, uid: str) -> list[EngagementItem]:
        """Entries for ``uid``, most recent first."""
        if kind is EngagementKind.SUBSCRIPTIONS:
            subscriptions = await SubscriptionService.list_subscriptions(db, uid)
            return [
                EngagementItem(
                    key=item.channel_uid,
                    kind=kind,
                    timestamp=item.subscribed_at,
                    snapshot={
                        "channelName": item.channel_name,
                        "channelPhoto": item.channel_photo,
                    },
                )
                for item in subscriptions
            ]
        result = await db.execute(
            select(EngagementEntry)
            .where(EngagementEntry.user_id == uid, EngagementEntry.kind == kind.value)
            .order_by(EngagementEntry.recorded_at.desc())
        )
        return [EngagementService._to_item(entry) for entry in result.scalars().all()]

    @staticmethod
    async def _get_entry(
        db: AsyncSession, kind: EngagementKind, uid: str, video_id: str
    ) -> Optional[EngagementEntry]:
        result = await db.execute(
            select(EngagementEntry).where(
                EngagementEntry.user_id == uid,
                EngagementEntry.kind == kind.value,
                EngagementEntry.video_id == video_id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def _keys(db: AsyncSession, kind: EngagementKind, uid: str, limit: int) -> list[str]:
        if kind is EngagementKind.SUBSCRIPTIONS:
            subscriptions = await SubscriptionService.list_subscriptions(db, uid)
            return [item.channel_uid for item in subscriptions[:limit]]
        result = await db.execute(
            select(EngagementEntry.video_id)
            .where(EngagementEntry.user_id == uid, EngagementEntry.kind == kind.value)
            .limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    def _to_item(entry: EngagementEntry) -> EngagementItem:
        return EngagementItem(
            key=entry.video_id,
            kind=EngagementKind(entry.kind),
            timestamp=entry.recorded_at,
            snapshot=dict(entry.snapshot or {}),
        )
