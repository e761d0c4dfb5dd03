from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tubelite.models.base import BaseRecord, JSONDocument, utcnow


class EngagementEntry(BaseRecord):
    """History, liked and watch-later rows, told apart by ``kind``.

    ``snapshot`` holds a denormalized copy of the video at record time so
    lists render without joining back to ``videos``.
    """

    __tablename__ = "engagement_entries"
    __table_args__ = (
        UniqueConstraint("user_id", "kind", "video_id", name="uk_engagement_user_kind_video"),
        Index("idx_engagement_user_kind_time", "user_id", "kind", "recorded_at"),
    )

    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    video_id: Mapped[str] = mapped_column(String(32), nullable=False)
    snapshot: Mapped[dict[str, object]] = mapped_column(
        JSONDocument, default=dict, nullable=False
    )
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
