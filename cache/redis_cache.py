import redis.asyncio as redis

from core.settings import Settings


class RedisCache:
    """Реализация Cache поверх redis.asyncio."""

    SCAN_BATCH = 100

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> 'RedisCache':
        client = redis.from_url(
            settings.redis_url(),
            decode_responses=True,
            socket_timeout=2,
            socket_connect_timeout=2,
        )
        return cls(client)

    async def get(self, key: str) -> str | None:
        # None, если ключа нет
        return await self.client.get(key)

    async def set(self, key: str, value: str, ttl: int) -> None:
        await self.client.set(key, value, ex=ttl)

    async def delete(self, key: str) -> None:
        await self.client.delete(key)

    async def delete_by_pattern(self, pattern: str) -> int:
        """SCAN вместо KEYS, чтобы не блокировать Redis на больших базах."""
        keys = [key async for key in self.client.scan_iter(match=pattern, count=self.SCAN_BATCH)]
        if not keys:
            return 0
        return await self.client.delete(*keys)

    async def exists(self, key: str) -> bool:
        return await self.client.exists(key) > 0

    async def ping(self) -> bool:
        return bool(await self.client.ping())

    async def close(self) -> None:
        await self.client.aclose()
