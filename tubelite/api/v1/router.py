from fastapi import APIRouter

from tubelite.api.v1 import auth, channels, comments, engagement, health, upload, videos, ws

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(health.router)
api_router.include_router(auth.router)
api_router.include_router(videos.router)
api_router.include_router(comments.router)
api_router.include_router(engagement.router)
api_router.include_router(channels.router)
api_router.include_router(upload.router)
api_router.include_router(ws.router)
