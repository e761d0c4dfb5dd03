from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tubelite.models.base import BaseRecord, utcnow

VISIBILITIES = ("public", "unlisted", "private")


class Video(BaseRecord):
    __tablename__ = "videos"
    __table_args__ = (
        CheckConstraint("views >= 0", name="views_non_negative"),
        CheckConstraint("likes >= 0", name="likes_non_negative"),
        CheckConstraint("dislikes >= 0", name="dislikes_non_negative"),
        Index("idx_videos_uploader", "uploader_id", "upload_date"),
        Index("idx_videos_upload_date", "upload_date"),
    )

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    visibility: Mapped[str] = mapped_column(String(20), default="public", nullable=False)
    video_url: Mapped[str] = mapped_column(Text, nullable=False)
    thumbnail_url: Mapped[str] = mapped_column(Text, nullable=False)
    uploader_id: Mapped[str] = mapped_column(String(128), nullable=False)
    uploader_name: Mapped[str] = mapped_column(String(255), nullable=False)
    upload_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    duration: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    likes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    dislikes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    comments: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
