from __future__ import annotations

import hmac
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from tubelite.config import Settings
from tubelite.core.exceptions import BusinessError
from tubelite.core.security import create_access_token, decode_access_token
from tubelite.i18n.codes import ErrorCode
from tubelite.models.user_profile import UserProfile
from tubelite.services.channel_service import ChannelService

logger = logging.getLogger("tubelite.auth_service")


class AuthState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    AUTH_ERROR = "auth_error"


@dataclass
class CurrentUser:
    uid: str
    display_name: Optional[str]
    photo_url: Optional[str]
    email: Optional[str]
    token_id: str
    expires_at: int


@dataclass
class AuthSession:
    state: AuthState
    user: Optional[CurrentUser] = None
    error: Optional[ErrorCode] = None


def revoked_token_key(token_id: str) -> str:
    return f"auth:revoked:{token_id}"


class AuthService:
    @staticmethod
    def verify_sync_secret(settings: Settings, provided: Optional[str]) -> None:
        expected = settings.AUTH_SYNC_SECRET
        if not expected or not provided or not hmac.compare_digest(expected, provided):
            raise BusinessError(ErrorCode.AUTH_SYNC_FORBIDDEN)

    @staticmethod
    async def sync_identity(
        db: AsyncSession,
        settings: Settings,
        uid: str,
        display_name: Optional[str],
        photo_url: Optional[str],
        email: Optional[str],
    ) -> tuple[UserProfile, str, int]:
        """Upsert the profile for a verified identity and issue an access token."""
        logger.info("syncing identity uid=%s", uid)
        profile = await ChannelService.ensure_profile(db, uid, display_name, photo_url, email)
        token, expires_in = create_access_token(
            settings,
            subject=profile.uid,
            claims={"name": profile.display_name, "picture": profile.photo_url, "email": profile.email},
        )
        return profile, token, expires_in

    @staticmethod
    async def resolve(
        db: AsyncSession, redis: Optional[Redis], settings: Settings, token: str
    ) -> CurrentUser:
        payload = decode_access_token(settings, token)
        subject = payload.get("sub")
        token_id = payload.get("jti")
        if not isinstance(subject, str) or not subject or not isinstance(token_id, str):
            raise BusinessError(ErrorCode.AUTH_TOKEN_INVALID)
        if redis is not None and await redis.exists(revoked_token_key(token_id)):
            raise BusinessError(ErrorCode.AUTH_TOKEN_REVOKED)
        profile = await db.get(UserProfile, subject)
        if profile is None:
            raise BusinessError(ErrorCode.AUTH_TOKEN_INVALID)
        expires_at = payload.get("exp")
        return CurrentUser(
            uid=profile.uid,
            display_name=profile.display_name,
            photo_url=profile.photo_url,
            email=profile.email,
            token_id=token_id,
            expires_at=int(expires_at) if isinstance(expires_at, (int, float)) else 0,
        )

    @staticmethod
    async def sign_out(redis: Redis, user: CurrentUser) -> None:
        """Revoke the presented token until it would have expired anyway."""
        ttl = max(1, user.expires_at - int(time.time()))
        await redis.set(revoked_token_key(user.token_id), "1", ex=ttl)
        logger.info("signed out uid=%s", user.uid)
