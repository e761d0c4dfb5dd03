from __future__ import annotations

from redis.asyncio import Redis


def build_redis_client(redis_url: str) -> Redis:
    return Redis.from_url(redis_url, decode_responses=True)


async def publish_message(client: Redis, channel: str, message: str) -> None:
    await client.publish(channel, message)
