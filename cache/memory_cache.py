import time
from fnmatch import fnmatchcase

from cachetools import TLRUCache


def _expires_at(_key: str, value: tuple[str, int], now: float) -> float:
    return now + value[1]


class InMemoryCache:
    """
    Кэш в памяти процесса с TTL на каждую запись.

    Не разделяется между инстансами приложения, годится для разработки
    и одного воркера. В проде используйте RedisCache.
    """

    def __init__(self, maxsize: int = 1024, timer=time.monotonic):
        self._store: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_expires_at, timer=timer)

    async def get(self, key: str) -> str | None:
        entry = self._store.get(key)
        return entry[0] if entry is not None else None

    async def set(self, key: str, value: str, ttl: int) -> None:
        self._store[key] = (value, ttl)

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def delete_by_pattern(self, pattern: str) -> int:
        self._store.expire()
        keys = [key for key in list(self._store.keys()) if fnmatchcase(key, pattern)]
        for key in keys:
            self._store.pop(key, None)
        return len(keys)

    async def exists(self, key: str) -> bool:
        return key in self._store

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        self._store.expire()
        return len(self._store)
