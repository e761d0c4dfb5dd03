from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tubelite.models.base import BaseRecord, utcnow


class Subscription(BaseRecord):
    """Existence of a row is the only record that a user follows a channel."""

    __tablename__ = "subscriptions"
    __table_args__ = (
        UniqueConstraint("subscriber_uid", "channel_uid", name="uk_subscriptions_pair"),
        Index("idx_subscriptions_subscriber", "subscriber_uid", "subscribed_at"),
    )

    subscriber_uid: Mapped[str] = mapped_column(String(128), nullable=False)
    channel_uid: Mapped[str] = mapped_column(String(128), nullable=False)
    channel_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    channel_photo: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    subscribed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
