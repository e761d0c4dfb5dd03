from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from tubelite.schemas.common import CamelModel


class EngagementEntryResponse(CamelModel):
    key: str
    kind: str
    timestamp: datetime
    snapshot: dict[str, Any]


class ClearResponse(CamelModel):
    deleted: int


class SubscriptionResponse(CamelModel):
    channel_uid: str
    channel_name: Optional[str]
    channel_photo: Optional[str]
    subscribed_at: datetime


class SubscriptionStatusResponse(CamelModel):
    channel_uid: str
    subscribed: bool
    subscribers: int
