from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from tubelite.api.deps import (
    get_auth_session,
    get_current_user,
    get_db,
    get_redis,
    get_settings,
)
from tubelite.config import Settings
from tubelite.core.response import success
from tubelite.schemas.auth import AuthMeResponse, AuthSyncRequest, AuthSyncResponse
from tubelite.services.auth_service import AuthService, AuthSession, CurrentUser

router = APIRouter(prefix="/auth")


@router.post("/sync")
async def sync_auth_account(
    data: AuthSyncRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    x_auth_sync_secret: Optional[str] = Header(default=None),
) -> JSONResponse:
    AuthService.verify_sync_secret(settings, x_auth_sync_secret)
    profile, token, expires_in = await AuthService.sync_identity(
        db,
        settings,
        uid=data.uid,
        display_name=data.display_name,
        photo_url=data.photo_url,
        email=data.email,
    )
    response = AuthSyncResponse(user_id=profile.uid, access_token=token, expires_in=expires_in)
    return success(data=jsonable_encoder(response))


@router.get("/me")
async def who_am_i(session: AuthSession = Depends(get_auth_session)) -> JSONResponse:
    user = session.user
    response = AuthMeResponse(
        state=session.state.value,
        uid=user.uid if user else None,
        display_name=user.display_name if user else None,
        photo_url=user.photo_url if user else None,
        email=user.email if user else None,
        error=session.error.name if session.error is not None else None,
    )
    return success(data=jsonable_encoder(response))


@router.post("/sign-out")
async def sign_out(
    user: CurrentUser = Depends(get_current_user),
    redis: Redis = Depends(get_redis),
) -> JSONResponse:
    await AuthService.sign_out(redis, user)
    return success(data={"signedOut": True})
