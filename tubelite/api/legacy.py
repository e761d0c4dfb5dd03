"""Bare-JSON video endpoints kept for older clients.

Responses are plain documents with an ``_id`` key, not the ``/api/v1``
envelope. When the store cannot be reached, every endpoint answers 200 with a
fixed sample catalog instead of an error.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tubelite.core.context import get_context
from tubelite.core.exceptions import ConfigurationError
from tubelite.models.video import Video
from tubelite.services.video_service import VideoService

logger = logging.getLogger("tubelite.legacy")

router = APIRouter(prefix="/api/videos")

_SAMPLE_DATE = datetime(2026, 1, 1, tzinfo=timezone.utc).isoformat()
_SAMPLE_URL = "https://www.youtube.com/embed/dQw4w9WgXcQ"


def _sample(
    video_id: str, title: str, description: str, views: int, uploader: str, duration: str
) -> dict[str, Any]:
    return {
        "_id": video_id,
        "title": title,
        "description": description,
        "thumbnailUrl": f"https://picsum.photos/id/{video_id}/640/360",
        "videoUrl": _SAMPLE_URL,
        "views": views,
        "likes": 0,
        "dislikes": 0,
        "uploader": uploader,
        "uploadDate": _SAMPLE_DATE,
        "duration": duration,
    }


MOCK_VIDEOS: list[dict[str, Any]] = [
    _sample(
        "1",
        "Build a YouTube Clone with React & Node.js",
        "Learn how to build a full-stack YouTube clone using the MERN stack.",
        12000,
        "Code Master",
        "10:35",
    ),
    _sample(
        "2",
        "Top 10 Programming Languages in 2026",
        "What should you learn in 2026? Here are the top languages.",
        50000,
        "Tech Guru",
        "15:20",
    ),
    _sample(
        "3",
        "Chill Lofi Beats to Code/Relax To",
        "Best music for coding.",
        890000,
        "Lofi Girl",
        "1:00:00",
    ),
    _sample(
        "4",
        "React vs Vue vs Angular - Which one is best?",
        "Comparison of frontend frameworks.",
        3400,
        "Frontend Wizard",
        "8:45",
    ),
    _sample(
        "5",
        "100 Days of Code Challenge",
        "My journey through 100 days of coding.",
        1200,
        "Newbie Coder",
        "5:00",
    ),
    _sample(
        "6",
        "Exploring the Metaverse",
        "Is it still a thing? Let's find out.",
        45000,
        "Future Tech",
        "20:10",
    ),
    _sample(
        "7",
        "How to fail at coding interviews",
        "Don't do this.",
        99000,
        "Career Coach",
        "12:30",
    ),
    _sample(
        "8",
        "My setup tour 2026",
        "Check out my new gear.",
        4500,
        "Tech Minimalist",
        "9:15",
    ),
]

_STORE_ERRORS = (SQLAlchemyError, ConfigurationError, OSError, asyncio.TimeoutError)

StoreQuery = Callable[[AsyncSession], Awaitable[Any]]


def _document(video: Video) -> dict[str, Any]:
    return {
        "_id": video.id,
        "title": video.title,
        "description": video.description,
        "thumbnailUrl": video.thumbnail_url,
        "videoUrl": video.video_url,
        "views": video.views,
        "likes": video.likes,
        "dislikes": video.dislikes,
        "uploader": video.uploader_name,
        "uploaderId": video.uploader_id,
        "uploadDate": video.upload_date.isoformat() if video.upload_date else None,
        "duration": video.duration,
    }


def _find_mock(video_id: str) -> Optional[dict[str, Any]]:
    return next((item for item in MOCK_VIDEOS if item["_id"] == video_id), None)


async def _query_store(request: Request, query: StoreQuery) -> Any:
    """Run ``query`` in a fresh session, bounded by ``REQUEST_TIMEOUT_SECONDS``."""
    context = get_context(request.app)
    session_factory = context.require_session_factory()
    timeout = context.settings.REQUEST_TIMEOUT_SECONDS

    async def _run() -> Any:
        async with session_factory() as db:
            return await query(db)

    return await asyncio.wait_for(_run(), timeout=timeout if timeout > 0 else None)


@router.get("")
async def get_videos(request: Request) -> JSONResponse:
    try:
        videos = await _query_store(
            request, lambda db: VideoService.list_videos(db, public_only=True)
        )
    except _STORE_ERRORS as exc:
        logger.warning("store unavailable, serving sample videos: %r", exc)
        return JSONResponse(MOCK_VIDEOS)
    return JSONResponse([_document(video) for video in videos])


@router.get("/search")
async def search_videos(request: Request, q: str = Query("")) -> JSONResponse:
    term = q.strip()
    limit = get_context(request.app).settings.SEARCH_RESULT_LIMIT

    async def _search(db: AsyncSession) -> list[Video]:
        # an empty term matches every title, as a blank regex does
        if not term:
            return await VideoService.list_videos(db, limit=limit, public_only=True)
        return await VideoService.search_videos(db, term, limit=limit, public_only=True)

    try:
        videos = await _query_store(request, _search)
    except _STORE_ERRORS as exc:
        logger.warning("store unavailable, filtering sample videos: %r", exc)
        lowered = term.lower()
        return JSONResponse([item for item in MOCK_VIDEOS if lowered in item["title"].lower()])
    return JSONResponse([_document(video) for video in videos])


@router.get("/{video_id}")
async def get_video(request: Request, video_id: str) -> JSONResponse:
    try:
        video = await _query_store(request, lambda db: db.get(Video, video_id))
    except _STORE_ERRORS as exc:
        logger.warning("store unavailable, serving sample video %s: %r", video_id, exc)
        return JSONResponse(_find_mock(video_id) or MOCK_VIDEOS[0])

    if video is None or video.visibility == "private":
        mock = _find_mock(video_id)
        if mock is not None:
            return JSONResponse(mock)
        return JSONResponse({"message": "Video not found"}, status_code=404)
    return JSONResponse(_document(video))
