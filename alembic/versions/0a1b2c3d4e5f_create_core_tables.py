"""create profiles, videos, subscriptions, engagement, comments, votes

Revision ID: 0a1b2c3d4e5f
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0a1b2c3d4e5f"
down_revision = None
branch_labels = None
depends_on = None

JSON_DOCUMENT = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "user_profiles",
        sa.Column("uid", sa.String(length=128), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        sa.Column("photo_url", sa.Text(), nullable=True),
        sa.Column("banner_url", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("subscribers", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.CheckConstraint(
            "subscribers >= 0", name="ck_user_profiles_subscribers_non_negative"
        ),
        sa.PrimaryKeyConstraint("uid", name="pk_user_profiles"),
    )

    op.create_table(
        "videos",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("category", sa.String(length=50), nullable=True),
        sa.Column("visibility", sa.String(length=20), nullable=False, server_default="public"),
        sa.Column("video_url", sa.Text(), nullable=False),
        sa.Column("thumbnail_url", sa.Text(), nullable=False),
        sa.Column("uploader_id", sa.String(length=128), nullable=False),
        sa.Column("uploader_name", sa.String(length=255), nullable=False),
        sa.Column("upload_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration", sa.String(length=16), nullable=True),
        sa.Column("views", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("likes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("dislikes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("comments", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.CheckConstraint("views >= 0", name="ck_videos_views_non_negative"),
        sa.CheckConstraint("likes >= 0", name="ck_videos_likes_non_negative"),
        sa.CheckConstraint("dislikes >= 0", name="ck_videos_dislikes_non_negative"),
        sa.PrimaryKeyConstraint("id", name="pk_videos"),
    )
    op.create_index("idx_videos_uploader", "videos", ["uploader_id", "upload_date"])
    op.create_index("idx_videos_upload_date", "videos", ["upload_date"])

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("subscriber_uid", sa.String(length=128), nullable=False),
        sa.Column("channel_uid", sa.String(length=128), nullable=False),
        sa.Column("channel_name", sa.String(length=255), nullable=True),
        sa.Column("channel_photo", sa.Text(), nullable=True),
        sa.Column("subscribed_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_subscriptions"),
        sa.UniqueConstraint("subscriber_uid", "channel_uid", name="uk_subscriptions_pair"),
    )
    op.create_index(
        "idx_subscriptions_subscriber", "subscriptions", ["subscriber_uid", "subscribed_at"]
    )

    op.create_table(
        "engagement_entries",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("video_id", sa.String(length=32), nullable=False),
        sa.Column("snapshot", JSON_DOCUMENT, nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_engagement_entries"),
        sa.UniqueConstraint(
            "user_id", "kind", "video_id", name="uk_engagement_user_kind_video"
        ),
    )
    op.create_index(
        "idx_engagement_user_kind_time",
        "engagement_entries",
        ["user_id", "kind", "recorded_at"],
    )

    op.create_table(
        "comments",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("video_id", sa.String(length=32), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("author_uid", sa.String(length=128), nullable=False),
        sa.Column("author_name", sa.String(length=255), nullable=True),
        sa.Column("author_photo", sa.Text(), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["video_id"],
            ["videos.id"],
            name="fk_comments_video_id_videos",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_comments"),
    )
    op.create_index("idx_comments_video_time", "comments", ["video_id", "timestamp"])

    op.create_table(
        "video_votes",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("video_id", sa.String(length=32), nullable=False),
        sa.Column("vote", sa.String(length=10), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_video_votes"),
        sa.UniqueConstraint("user_id", "video_id", name="uk_video_votes_user_video"),
    )


def downgrade() -> None:
    op.drop_table("video_votes")
    op.drop_index("idx_comments_video_time", table_name="comments")
    op.drop_table("comments")
    op.drop_index("idx_engagement_user_kind_time", table_name="engagement_entries")
    op.drop_table("engagement_entries")
    op.drop_index("idx_subscriptions_subscriber", table_name="subscriptions")
    op.drop_table("subscriptions")
    op.drop_index("idx_videos_upload_date", table_name="videos")
    op.drop_index("idx_videos_uploader", table_name="videos")
    op.drop_table("videos")
    op.drop_table("user_profiles")
