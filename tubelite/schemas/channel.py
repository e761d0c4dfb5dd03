from __future__ import annotations

from typing import Optional

from pydantic import Field

from tubelite.schemas.common import CamelModel
from tubelite.schemas.video import VideoResponse


class ChannelProfileResponse(CamelModel):
    uid: str
    display_name: Optional[str]
    photo_url: Optional[str]
    banner_url: Optional[str]
    description: Optional[str]
    subscribers: int
    email: Optional[str] = None


class ChannelResponse(CamelModel):
    profile: ChannelProfileResponse
    videos: list[VideoResponse]


class ChannelCustomizeRequest(CamelModel):
    display_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    photo_url: Optional[str] = Field(default=None)
    banner_url: Optional[str] = Field(default=None)


class MonetizationResponse(CamelModel):
    subscribers: int
    subscribers_required: int
    subscriber_progress: float
    watch_hours: int
    watch_hours_required: int
    watch_hours_progress: float
    eligible: bool
