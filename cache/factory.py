from core.logger import StructuredLogger
from core.settings import Settings

from .memory_cache import InMemoryCache
from .redis_cache import RedisCache


def build_cache(settings: Settings, logger: StructuredLogger) -> RedisCache | InMemoryCache:
    if settings.REDIS_ENABLED:
        logger.info(
            '[CACHE] Используется Redis',
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
        )
        return RedisCache.from_settings(settings)

    logger.info('[CACHE] Redis выключен, используется кэш в памяти', maxsize=settings.CACHE_MAX_ENTRIES)
    return InMemoryCache(maxsize=settings.CACHE_MAX_ENTRIES)
