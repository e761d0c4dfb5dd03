from __future__ import annotations

import asyncio
import contextlib
import inspect
import json
import logging
from types import TracebackType
from typing import AsyncIterator, Awaitable, Callable, Optional, Union

from redis.asyncio import Redis
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tubelite.core.exceptions import BusinessError
from tubelite.core.redis import publish_message
from tubelite.i18n.codes import ErrorCode
from tubelite.models.comment import Comment
from tubelite.models.video import Video
from tubelite.services.video_service import VideoService

logger = logging.getLogger("tubelite.comments")

Snapshot = list[Comment]
SnapshotHandler = Callable[[Snapshot], Union[None, Awaitable[None]]]


def comment_channel(video_id: str) -> str:
    return f"comments:{video_id}"


class CommentService:
    @staticmethod
    async def post_comment(
        db: AsyncSession,
        redis: Optional[Redis],
        video_id: str,
        author_uid: str,
        author_name: Optional[str],
        author_photo: Optional[str],
        text: str,
        max_length: int = 10000,
    ) -> Comment:
        text = (text or "").strip()
        if not text:
            raise BusinessError(ErrorCode.COMMENT_EMPTY)
        if len(text) > max_length:
            raise BusinessError(ErrorCode.COMMENT_TOO_LONG, max_length=str(max_length))
        await VideoService.get_video(db, video_id)

        comment = Comment(
            video_id=video_id,
            text=text,
            author_uid=author_uid,
            author_name=author_name,
            author_photo=author_photo,
        )
        db.add(comment)
        try:
            await db.flush()
            await db.execute(
                update(Video).where(Video.id == video_id).values(comments=Video.comments + 1)
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if redis is not None:
            payload = json.dumps({"type": "comment_added", "commentId": comment.id})
            try:
                await publish_message(redis, comment_channel(video_id), payload)
            except RedisError as exc:
                # stored already; open feeds pick it up on the next notification
                logger.warning("comment notify failed video=%s: %s", video_id, exc)
        return comment

    @staticmethod
    async def list_comments(
        db: AsyncSession, video_id: str, limit: Optional[int] = None
    ) -> list[Comment]:
        """Comments on ``video_id``, newest first."""
        query = (
            select(Comment)
            .where(Comment.video_id == video_id)
            .order_by(Comment.timestamp.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())


class CommentFeed:
    """Live, ordered comment list for one video.

    Use as ``async with CommentFeed(...) as feed: async for snapshot in feed``.
    Each snapshot is the complete newest-first list: one on open, then one
    after every change notification. Leaving the ``async with`` block always
    releases the Redis subscription.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        redis: Redis,
        video_id: str,
        poll_timeout: float = 1.0,
    ) -> None:
        self._session_factory = session_factory
        self._redis = redis
        self._video_id = video_id
        self._poll_timeout = poll_timeout
        self._pubsub: Optional[PubSub] = None

    async def __aenter__(self) -> "CommentFeed":
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(comment_channel(self._video_id))
        self._pubsub = pubsub
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.close()

    async def close(self) -> None:
        pubsub, self._pubsub = self._pubsub, None
        if pubsub is None:
            return
        try:
            await pubsub.unsubscribe(comment_channel(self._video_id))
        finally:
            await pubsub.aclose()

    def __aiter__(self) -> AsyncIterator[Snapshot]:
        return self._snapshots()

    async def _snapshots(self) -> AsyncIterator[Snapshot]:
        if self._pubsub is None:
            raise RuntimeError("CommentFeed must be opened with 'async with'")
        yield await self._load()
        while self._pubsub is not None:
            message = await self._pubsub.get_message(
                ignore_subscribe_messages=True, timeout=self._poll_timeout
            )
            if message and message.get("type") == "message":
                yield await self._load()
            await asyncio.sleep(0.05)

    async def _load(self) -> Snapshot:
        async with self._session_factory() as session:
            return await CommentService.list_comments(session, self._video_id)


async def subscribe_comments(
    session_factory: async_sessionmaker[AsyncSession],
    redis: Redis,
    video_id: str,
    on_change: SnapshotHandler,
) -> Callable[[], Awaitable[None]]:
    """Deliver snapshots to ``on_change`` until the returned coroutine is awaited."""
    opened = asyncio.Event()

    async def _run() -> None:
        async with CommentFeed(session_factory, redis, video_id) as feed:
            opened.set()
            async for snapshot in feed:
                outcome = on_change(snapshot)
                if inspect.isawaitable(outcome):
                    await outcome

    task = asyncio.create_task(_run())
    opened_wait = asyncio.create_task(opened.wait())
    await asyncio.wait({task, opened_wait}, return_when=asyncio.FIRST_COMPLETED)
    opened_wait.cancel()
    if task.done():
        # surface subscribe failures to the caller
        task.result()

    async def unsubscribe() -> None:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    return unsubscribe
