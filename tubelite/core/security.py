from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import uuid4

from jose import ExpiredSignatureError, JWTError, jwt

from tubelite.config import Settings
from tubelite.core.exceptions import BusinessError, ConfigurationError
from tubelite.i18n.codes import ErrorCode


def _get_jwt_config(settings: Settings) -> tuple[str, str]:
    secret = settings.JWT_SECRET
    algorithm = settings.JWT_ALGORITHM
    if not secret or not algorithm:
        raise ConfigurationError(["JWT_SECRET", "JWT_ALGORITHM"])
    return secret, algorithm


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise BusinessError(ErrorCode.AUTH_TOKEN_NOT_PROVIDED)
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise BusinessError(ErrorCode.AUTH_TOKEN_INVALID)
    return token


def create_access_token(
    settings: Settings, subject: str, claims: Optional[dict[str, object]] = None
) -> tuple[str, int]:
    """Sign a token for ``subject``; returns ``(token, expires_in_seconds)``."""
    secret, algorithm = _get_jwt_config(settings)
    now = datetime.now(timezone.utc)
    expires_in = settings.JWT_EXPIRES_SECONDS
    payload: dict[str, object] = dict(claims or {})
    payload.update(
        {
            "sub": subject,
            "jti": uuid4().hex,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=expires_in)).timestamp()),
        }
    )
    return jwt.encode(payload, secret, algorithm=algorithm), expires_in


def decode_access_token(settings: Settings, token: str) -> dict[str, object]:
    if not token:
        raise BusinessError(ErrorCode.AUTH_TOKEN_NOT_PROVIDED)
    secret, algorithm = _get_jwt_config(settings)
    try:
        payload: dict[str, object] = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"verify_aud": False},
        )
        return payload
    except ExpiredSignatureError as exc:
        raise BusinessError(ErrorCode.AUTH_TOKEN_EXPIRED) from exc
    except JWTError as exc:
        raise BusinessError(ErrorCode.AUTH_TOKEN_INVALID) from exc
