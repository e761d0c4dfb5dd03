from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field

from tubelite.schemas.common import CamelModel

AuthStateValue = Literal["unauthenticated", "authenticating", "authenticated", "auth_error"]


class AuthSyncRequest(CamelModel):
    uid: str = Field(min_length=1, max_length=128)
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    email: Optional[str] = None


class AuthSyncResponse(CamelModel):
    user_id: str
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class AuthMeResponse(CamelModel):
    state: AuthStateValue
    uid: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    email: Optional[str] = None
    error: Optional[str] = None
