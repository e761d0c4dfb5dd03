from __future__ import annotations

import asyncio
import contextlib
import json
from typing import Optional
from uuid import uuid4

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from fastapi.encoders import jsonable_encoder
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from tubelite.core.context import AppContext, get_context
from tubelite.core.exceptions import BusinessError, ConfigurationError
from tubelite.core.i18n import get_message, resolve_locale
from tubelite.core.security import extract_bearer_token
from tubelite.i18n.codes import ErrorCode
from tubelite.schemas.comment import CommentResponse
from tubelite.services.auth_service import AuthService
from tubelite.services.comment_service import CommentFeed
from tubelite.services.upload_service import upload_channel
from tubelite.services.video_service import VideoService

router = APIRouter(prefix="/ws")


async def _send_error(
    websocket: WebSocket, code: ErrorCode, locale: str, trace_id: str, **kwargs: str
) -> None:
    message = get_message(code, locale, **kwargs)
    payload = {"code": code.value, "message": message, "data": None, "traceId": trace_id}
    await websocket.send_text(json.dumps(payload, ensure_ascii=False))


async def _viewer_uid(
    websocket: WebSocket, session: AsyncSession, context: AppContext
) -> Optional[str]:
    """Anonymous viewers are allowed; a presented token must be valid."""
    authorization = websocket.headers.get("Authorization")
    if not authorization:
        return None
    token = extract_bearer_token(authorization)
    user = await AuthService.resolve(session, context.redis, context.settings, token)
    return user.uid


async def _forward_pubsub(websocket: WebSocket, redis: Redis, channel: str) -> None:
    pubsub = redis.pubsub()
    await pubsub.subscribe(channel)
    try:
        while True:
            message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
            if message and message.get("type") == "message":
                data = message.get("data")
                if isinstance(data, bytes):
                    data = data.decode("utf-8")
                if isinstance(data, str):
                    await websocket.send_text(data)
            await asyncio.sleep(0.05)
    finally:
        await pubsub.unsubscribe(channel)
        await pubsub.aclose()


async def _drain_until_disconnect(websocket: WebSocket, forward_task: asyncio.Task) -> None:
    receive_task = asyncio.create_task(websocket.receive_text())
    try:
        while True:
            done, _ = await asyncio.wait(
                {receive_task, forward_task}, return_when=asyncio.FIRST_COMPLETED
            )
            if forward_task in done:
                forward_task.result()
                return
            receive_task.result()
            receive_task = asyncio.create_task(websocket.receive_text())
    except WebSocketDisconnect:
        pass
    finally:
        for task in (receive_task, forward_task):
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError, WebSocketDisconnect):
                await task


async def _stream_comments(websocket: WebSocket, feed: CommentFeed, video_id: str) -> None:
    async for snapshot in feed:
        items = [jsonable_encoder(CommentResponse.model_validate(item)) for item in snapshot]
        payload = {"type": "comments", "videoId": video_id, "items": items, "total": len(items)}
        await websocket.send_text(json.dumps(payload, ensure_ascii=False))


@router.websocket("/videos/{video_id}/comments")
async def comment_feed(websocket: WebSocket, video_id: str) -> None:
    await websocket.accept()
    locale = resolve_locale(websocket.headers.get("Accept-Language"))
    trace_id = uuid4().hex
    context = get_context(websocket.app)
    try:
        session_factory = context.require_session_factory()
        redis = context.require_redis()
    except ConfigurationError as exc:
        await _send_error(
            websocket, ErrorCode.CONFIGURATION_ERROR, locale, trace_id, missing=", ".join(exc.missing)
        )
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return

    async with session_factory() as session:
        try:
            viewer_uid = await _viewer_uid(websocket, session, context)
            await VideoService.get_visible_video(session, video_id, viewer_uid)
        except BusinessError as exc:
            await _send_error(websocket, exc.code, locale, trace_id, **exc.kwargs)
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

    async with CommentFeed(session_factory, redis, video_id) as feed:
        forward_task = asyncio.create_task(_stream_comments(websocket, feed, video_id))
        await _drain_until_disconnect(websocket, forward_task)


@router.websocket("/uploads/{upload_id}")
async def upload_progress(websocket: WebSocket, upload_id: str) -> None:
    await websocket.accept()
    locale = resolve_locale(websocket.headers.get("Accept-Language"))
    context = get_context(websocket.app)
    try:
        redis = context.require_redis()
    except ConfigurationError as exc:
        await _send_error(
            websocket,
            ErrorCode.CONFIGURATION_ERROR,
            locale,
            uuid4().hex,
            missing=", ".join(exc.missing),
        )
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return

    forward_task = asyncio.create_task(
        _forward_pubsub(websocket, redis, upload_channel(upload_id))
    )
    await _drain_until_disconnect(websocket, forward_task)
