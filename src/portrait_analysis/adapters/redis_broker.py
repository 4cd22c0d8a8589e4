"""Redis publish/subscribe broker for the notification bus."""

from collections.abc import AsyncIterator
from dataclasses import dataclass

from redis.asyncio import Redis


@dataclass
class RedisMessageBroker:
    """Publishes and listens on Redis pub/sub channels."""

    redis: Redis

    @classmethod
    def create(cls, redis_url: str) -> "RedisMessageBroker":
        return cls(redis=Redis.from_url(redis_url, decode_responses=True))

    async def publish(self, channel: str, message: str) -> None:
        await self.redis.publish(channel, message)

    async def listen(self, channel: str) -> AsyncIterator[str]:
        pubsub = self.redis.pubsub()
        await pubsub.subscribe(channel)
        try:
            async for msg in pubsub.listen():
                if msg is None or msg.get("type") != "message":
                    continue
                data = msg.get("data")
                if isinstance(data, bytes):
                    data = data.decode()
                if data:
                    yield data
        finally:
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()

    async def close(self) -> None:
        await self.redis.aclose()
