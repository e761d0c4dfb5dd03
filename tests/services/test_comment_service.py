from __future__ import annotations

import asyncio
import json

import pytest
from sqlalchemy import select

from tubelite.core.exceptions import BusinessError
from tubelite.i18n.codes import ErrorCode
from tubelite.models.video import Video
from tubelite.services.comment_service import (
    CommentFeed,
    CommentService,
    comment_channel,
    subscribe_comments,
)


async def _post(db, redis, video_id: str, text: str, author: str = "Alice"):
    return await CommentService.post_comment(
        db,
        redis,
        video_id,
        author_uid=author.lower(),
        author_name=author,
        author_photo=None,
        text=text,
    )


@pytest.mark.asyncio
async def test_post_comment_trims_and_counts(db, make_video, fake_redis) -> None:
    video = await make_video(db)

    comment = await _post(db, fake_redis, video.id, "  nice!  ")

    assert comment.text == "nice!"
    assert comment.timestamp is not None
    result = await db.execute(select(Video.comments).where(Video.id == video.id))
    assert result.scalar_one() == 1
    channel, payload = fake_redis.published[-1]
    assert channel == comment_channel(video.id)
    assert json.loads(payload)["commentId"] == comment.id


@pytest.mark.asyncio
async def test_empty_comment_is_rejected(db, make_video, fake_redis) -> None:
    video = await make_video(db)
    with pytest.raises(BusinessError) as exc_info:
        await _post(db, fake_redis, video.id, "   ")
    assert exc_info.value.code == ErrorCode.COMMENT_EMPTY
    assert fake_redis.published == []


@pytest.mark.asyncio
async def test_overlong_comment_is_rejected(db, make_video, fake_redis) -> None:
    video = await make_video(db)
    with pytest.raises(BusinessError) as exc_info:
        await CommentService.post_comment(
            db, fake_redis, video.id, "u1", "U", None, "x" * 11, max_length=10
        )
    assert exc_info.value.code == ErrorCode.COMMENT_TOO_LONG


@pytest.mark.asyncio
async def test_comment_on_missing_video(db, fake_redis) -> None:
    with pytest.raises(BusinessError) as exc_info:
        await _post(db, fake_redis, "missing", "hello")
    assert exc_info.value.code == ErrorCode.VIDEO_NOT_FOUND


@pytest.mark.asyncio
async def test_list_comments_newest_first(db, make_video, fake_redis) -> None:
    video = await make_video(db)
    await _post(db, fake_redis, video.id, "first")
    await _post(db, fake_redis, video.id, "second")

    comments = await CommentService.list_comments(db, video.id)

    assert [comment.text for comment in comments] == ["second", "first"]


@pytest.mark.asyncio
async def test_feed_yields_full_snapshot_on_open_and_on_change(
    db, session_factory, make_video, fake_redis
) -> None:
    video = await make_video(db)
    await _post(db, fake_redis, video.id, "nice!")

    async with CommentFeed(session_factory, fake_redis, video.id, poll_timeout=0.05) as feed:
        snapshots = feed.__aiter__()
        first = await asyncio.wait_for(snapshots.__anext__(), timeout=2)
        assert [(item.text, item.author_name) for item in first] == [("nice!", "Alice")]

        await _post(db, fake_redis, video.id, "agreed", author="Bob")
        second = await asyncio.wait_for(snapshots.__anext__(), timeout=2)
        assert [item.text for item in second] == ["agreed", "nice!"]
        await snapshots.aclose()

    assert fake_redis.subscribers[comment_channel(video.id)] == []


@pytest.mark.asyncio
async def test_feed_requires_async_with(session_factory, fake_redis) -> None:
    feed = CommentFeed(session_factory, fake_redis, "any")
    with pytest.raises(RuntimeError):
        await feed.__aiter__().__anext__()


@pytest.mark.asyncio
async def test_subscribe_comments_callback_and_unsubscribe(
    db, session_factory, make_video, fake_redis
) -> None:
    video = await make_video(db)
    received: list[list[str]] = []
    opened = asyncio.Event()
    changed = asyncio.Event()

    def _on_change(snapshot) -> None:
        received.append([item.text for item in snapshot])
        opened.set()
        if len(received) >= 2:
            changed.set()

    unsubscribe = await subscribe_comments(session_factory, fake_redis, video.id, _on_change)
    await asyncio.wait_for(opened.wait(), timeout=3)
    await _post(db, fake_redis, video.id, "live!")
    await asyncio.wait_for(changed.wait(), timeout=3)
    await unsubscribe()

    assert received == [[], ["live!"]]
    assert fake_redis.subscribers[comment_channel(video.id)] == []
