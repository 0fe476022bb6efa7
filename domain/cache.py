from typing import Protocol


class Cache(Protocol):
    """
    Key-value кэш с TTL.

    Доменный слой не знает, Redis это или память процесса. Все методы
    могут бросать исключения бэкенда; решать, фатальны ли они, должен
    вызывающий код.
    """

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl: int) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def delete_by_pattern(self, pattern: str) -> int: ...

    async def exists(self, key: str) -> bool: ...

    async def ping(self) -> bool: ...


class CacheKeyBuilder:
    """CacheKeyBuilder('department').build('hierarchy', id) -> 'department:hierarchy:<id>'"""

    def __init__(self, prefix: str):
        self.prefix = prefix

    def build(self, *parts: object) -> str:
        return ':'.join([self.prefix, *(str(part) for part in parts)])
