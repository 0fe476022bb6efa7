from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    # === Приложение ===
    APP_NAME: str = 'api-employees-and-departments'
    APP_ENV: str = 'development'

    # === Логирование ===
    LOG_LEVEL: str = 'INFO'
    LOG_FORMAT: str = 'text'  # text | json

    # === PostgreSQL параметры ===
    DB_HOST: str = 'localhost'
    DB_PORT: int = 5432
    DB_USER: str = 'postgres'
    DB_PASSWORD: str = 'postgres'
    DB_NAME: str = 'companydb'

    # SQLAlchemy параметры
    DRIVER: str = 'postgresql+asyncpg'
    ECHO: bool = False
    POOL_SIZE: int = 5
    MAX_OVERFLOW: int = 10
    POOL_PRE_PING: bool = True
    AUTO_CREATE_TABLES: bool = True

    # === Redis / кэш ===
    REDIS_ENABLED: bool = True
    REDIS_HOST: str = 'localhost'
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: str = ''
    REDIS_DB: int = 0
    CACHE_TTL_SECONDS: int = 300
    CACHE_MAX_ENTRIES: int = 1024  # Только для in-memory кэша

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=False,  # В .env можно использовать как верхний, так и нижний регистр
    )

    def url(self) -> URL:
        """Собрать URL подключения безопасно (защита от SQL injection)."""
        return URL.create(
            drivername=self.DRIVER,
            username=self.DB_USER,
            password=self.DB_PASSWORD,
            host=self.DB_HOST,
            port=self.DB_PORT,
            database=self.DB_NAME,
        )

    def redis_url(self) -> str:
        auth = f':{self.REDIS_PASSWORD}@' if self.REDIS_PASSWORD else ''
        return f'redis://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}'


@lru_cache
def get_settings() -> Settings:
    """Настройки читаются один раз; дальше объект передаётся явно в конструкторы."""
    return Settings()
