from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from tubelite.schemas.common import CamelModel


class CommentCreateRequest(CamelModel):
    text: str = Field(min_length=1)


class CommentResponse(CamelModel):
    id: str
    video_id: str
    text: str
    author_uid: str
    author_name: Optional[str]
    author_photo: Optional[str]
    timestamp: datetime
