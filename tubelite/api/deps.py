from __future__ import annotations

from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, Request, UploadFile
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from tubelite.config import Settings
from tubelite.core.context import AppContext, get_context
from tubelite.core.exceptions import BusinessError
from tubelite.core.security import extract_bearer_token
from tubelite.db import get_db_session
from tubelite.services.auth_service import AuthService, AuthSession, AuthState, CurrentUser
from tubelite.services.storage.base import StorageService
from tubelite.services.upload_service import UploadSource


def get_app_context(request: Request) -> AppContext:
    return get_context(request.app)


def get_settings(context: AppContext = Depends(get_app_context)) -> Settings:
    return context.settings


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async for session in get_db_session(request):
        yield session


def get_redis(context: AppContext = Depends(get_app_context)) -> Redis:
    return context.require_redis()


def get_optional_redis(context: AppContext = Depends(get_app_context)) -> Optional[Redis]:
    return context.redis


def get_storage(context: AppContext = Depends(get_app_context)) -> StorageService:
    return context.require_storage()


def upload_source(file: UploadFile) -> UploadSource:
    """Wrap a multipart part; spooled parts may not report their size."""
    stream = file.file
    size = file.size
    if size is None:
        stream.seek(0, 2)
        size = stream.tell()
    stream.seek(0)
    return UploadSource(
        data=stream,
        filename=file.filename or "",
        size_bytes=size,
        content_type=file.content_type,
    )


async def get_auth_session(
    db: AsyncSession = Depends(get_db),
    context: AppContext = Depends(get_app_context),
    authorization: Optional[str] = Header(default=None),
) -> AuthSession:
    """Resolve the caller without raising; failures land in ``AuthSession.error``."""
    if not authorization:
        return AuthSession(state=AuthState.UNAUTHENTICATED)
    try:
        token = extract_bearer_token(authorization)
        user = await AuthService.resolve(db, context.redis, context.settings, token)
    except BusinessError as exc:
        return AuthSession(state=AuthState.AUTH_ERROR, error=exc.code)
    return AuthSession(state=AuthState.AUTHENTICATED, user=user)


async def get_current_user(
    db: AsyncSession = Depends(get_db),
    context: AppContext = Depends(get_app_context),
    authorization: Optional[str] = Header(default=None),
) -> CurrentUser:
    token = extract_bearer_token(authorization)
    return await AuthService.resolve(db, context.redis, context.settings, token)


async def get_current_user_optional(
    db: AsyncSession = Depends(get_db),
    context: AppContext = Depends(get_app_context),
    authorization: Optional[str] = Header(default=None),
) -> Optional[CurrentUser]:
    if not authorization:
        return None
    return await get_current_user(db, context, authorization)
