"""Channel subscriptions.

Creating or deleting a subscription row and adjusting the channel's
``subscribers`` counter happen in the same transaction, so the counter always
equals the number of rows that ever committed for that channel.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tubelite.core.exceptions import BusinessError
from tubelite.i18n.codes import ErrorCode
from tubelite.models.subscription import Subscription
from tubelite.models.user_profile import UserProfile

logger = logging.getLogger("tubelite.subscriptions")


def subscriber_delta(delta: int):  # type: ignore[no-untyped-def]
    """SQL expression for ``subscribers + delta`` that never drops below zero."""
    return case(
        (UserProfile.subscribers + delta < 0, 0),
        else_=UserProfile.subscribers + delta,
    )


class SubscriptionService:
    @staticmethod
    async def _find(
        db: AsyncSession, subscriber_uid: str, channel_uid: str
    ) -> Optional[Subscription]:
        result = await db.execute(
            select(Subscription).where(
                Subscription.subscriber_uid == subscriber_uid,
                Subscription.channel_uid == channel_uid,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def is_subscribed(db: AsyncSession, subscriber_uid: str, channel_uid: str) -> bool:
        return await SubscriptionService._find(db, subscriber_uid, channel_uid) is not None

    @staticmethod
    async def subscribe(
        db: AsyncSession, subscriber_uid: str, channel_uid: str
    ) -> tuple[Subscription, bool]:
        """Subscribe and bump the counter; returns ``(row, created)``.

        Subscribing twice is a no-op that returns the existing row.
        """
        if subscriber_uid == channel_uid:
            raise BusinessError(ErrorCode.CANNOT_SUBSCRIBE_SELF)
        channel = await db.get(UserProfile, channel_uid)
        if channel is None:
            raise BusinessError(ErrorCode.CHANNEL_NOT_FOUND)

        existing = await SubscriptionService._find(db, subscriber_uid, channel_uid)
        if existing is not None:
            return existing, False

        subscription = Subscription(
            subscriber_uid=subscriber_uid,
            channel_uid=channel_uid,
            channel_name=channel.display_name,
            channel_photo=channel.photo_url,
        )
        db.add(subscription)
        try:
            await db.flush()
            await db.execute(
                update(UserProfile)
                .where(UserProfile.uid == channel_uid)
                .values(subscribers=subscriber_delta(1))
            )
            await db.commit()
        except IntegrityError:
            # a concurrent request inserted the same pair first
            await db.rollback()
            existing = await SubscriptionService._find(db, subscriber_uid, channel_uid)
            if existing is None:
                raise
            return existing, False
        except Exception:
            await db.rollback()
            raise
        logger.info("subscribed %s -> %s", subscriber_uid, channel_uid)
        return subscription, True

    @staticmethod
    async def unsubscribe(db: AsyncSession, subscriber_uid: str, channel_uid: str) -> bool:
        """Delete the subscription and decrement the counter; ``False`` if absent."""
        try:
            result = await db.execute(
                delete(Subscription).where(
                    Subscription.subscriber_uid == subscriber_uid,
                    Subscription.channel_uid == channel_uid,
                )
            )
            if not result.rowcount:
                await db.rollback()
                return False
            await db.execute(
                update(UserProfile)
                .where(UserProfile.uid == channel_uid)
                .values(subscribers=subscriber_delta(-1))
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("unsubscribed %s -> %s", subscriber_uid, channel_uid)
        return True

    @staticmethod
    async def list_subscriptions(db: AsyncSession, subscriber_uid: str) -> list[Subscription]:
        result = await db.execute(
            select(Subscription)
            .where(Subscription.subscriber_uid == subscriber_uid)
            .order_by(Subscription.subscribed_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def subscriber_count(db: AsyncSession, channel_uid: str) -> int:
        result = await db.execute(
            select(func.coalesce(UserProfile.subscribers, 0)).where(
                UserProfile.uid == channel_uid
            )
        )
        return int(result.scalar_one_or_none() or 0)
