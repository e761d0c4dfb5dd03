from __future__ import annotations

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tubelite.models.base import BaseRecord


class VideoVote(BaseRecord):
    """Current like/dislike of one user on one video; no row means no vote."""

    __tablename__ = "video_votes"
    __table_args__ = (UniqueConstraint("user_id", "video_id", name="uk_video_votes_user_video"),)

    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    video_id: Mapped[str] = mapped_column(String(32), nullable=False)
    vote: Mapped[str] = mapped_column(String(10), nullable=False)
