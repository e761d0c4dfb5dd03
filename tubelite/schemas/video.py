from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import Field

from tubelite.schemas.common import CamelModel

Visibility = Literal["public", "unlisted", "private"]
VoteValue = Literal["none", "liked", "disliked"]


class VideoCreateRequest(CamelModel):
    title: str = Field(min_length=1, max_length=500)
    description: str = Field(default="")
    category: Optional[str] = Field(default=None, max_length=50)
    visibility: Visibility = Field(default="public")
    video_url: str = Field(min_length=1)
    thumbnail_url: Optional[str] = Field(default=None)
    duration: Optional[str] = Field(default=None)


class VideoUpdateRequest(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = Field(default=None)
    category: Optional[str] = Field(default=None, max_length=50)
    visibility: Optional[Visibility] = Field(default=None)


class VideoResponse(CamelModel):
    id: str
    title: str
    description: str
    category: Optional[str]
    visibility: str
    video_url: str
    thumbnail_url: str
    uploader_id: str
    uploader_name: str
    upload_date: datetime
    duration: Optional[str]
    views: int
    likes: int
    dislikes: int
    comments: int


class VideoCreateResponse(CamelModel):
    id: str


class ViewRequest(CamelModel):
    session_id: Optional[str] = Field(default=None, max_length=128)


class ViewResponse(CamelModel):
    counted: bool
    session_id: str
    views: int


class VoteRequest(CamelModel):
    vote: VoteValue


class VoteResponse(CamelModel):
    vote: VoteValue
    likes: int
    dislikes: int
