from __future__ import annotations

from typing import Optional

from sqlalchemy import CheckConstraint, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tubelite.models.base import Base, TimestampMixin


class UserProfile(Base, TimestampMixin):
    """A signed-in account; doubles as the user's channel."""

    __tablename__ = "user_profiles"
    __table_args__ = (CheckConstraint("subscribers >= 0", name="subscribers_non_negative"),)

    uid: Mapped[str] = mapped_column(String(128), primary_key=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    photo_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    banner_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    subscribers: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
