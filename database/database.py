import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from core.logger import StructuredLogger
from core.settings import Settings

from . import models  # noqa: F401  регистрирует таблицы в metadata
from .base import Base


class DataBaseConnection:
    """
    Управление подключением к PostgreSQL с async поддержкой.

    Принципы:
    - Все параметры берутся из переданного Settings
    - Один engine и sessionmaker на приложение
    - Async context manager для безопасной работы с сессией
    """

    def __init__(self, settings: Settings, logger: StructuredLogger):
        self.settings = settings
        self.logger = logger.bind(component='database')
        self.engine = create_async_engine(
            settings.url(),
            echo=settings.ECHO,
            pool_pre_ping=settings.POOL_PRE_PING,  # Проверять соединение перед использованием
            pool_size=settings.POOL_SIZE,
            max_overflow=settings.MAX_OVERFLOW,
            connect_args={
                'timeout': 10,  # Таймаут подключения (секунды)
                'command_timeout': 60,  # Таймаут выполнения команд (секунды)
                'server_settings': {
                    'application_name': settings.APP_NAME,
                },
            },
        )

        self.AsyncSessionLocal = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Создаёт сессию и закрывает её после использования.

        Коммит/откат делает вызывающий код (зависимость FastAPI).
        """
        session = self.AsyncSessionLocal()
        try:
            yield session
        finally:
            await session.close()

    async def connect(self, max_retries: int = 10, retry_delay: float = 3) -> None:
        """Подключиться к БД (для lifespan startup) с retry логикой."""
        db_url = self.settings.url()
        self.logger.info('[DATABASE] Попытка подключения к БД', url=db_url.render_as_string(hide_password=True))

        for attempt in range(1, max_retries + 1):
            try:
                async with self.engine.begin() as conn:
                    await conn.execute(text('SELECT 1'))
                self.logger.info('[DATABASE] Успешно подключились к PostgreSQL', attempt=attempt)
                return
            except (TimeoutError, ConnectionError, OSError, OperationalError) as e:
                if attempt == max_retries:
                    self.logger.error(
                        f'[DATABASE] Не удалось подключиться после {max_retries} попыток',
                        error=repr(e),
                    )
                    raise
                self.logger.warning(
                    f'[DATABASE] Попытка подключения {attempt}/{max_retries} не удалась. '
                    f'Повтор через {retry_delay} сек...',
                    error=repr(e),
                )
                await asyncio.sleep(retry_delay)
                retry_delay = min(retry_delay * 1.5, 10)  # Экспоненциальная задержка, но не больше 10 сек

    async def create_tables(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.logger.info('[DATABASE] Схема создана/проверена')

    async def is_connected(self) -> bool:
        """Проверить, подключена ли БД."""
        try:
            async with self.engine.begin() as conn:
                await conn.execute(text('SELECT 1'))
            return True
        except Exception as e:
            self.logger.warning('[DATABASE] Проверка соединения не удалась', error=repr(e))
            return False

    async def dispose(self) -> None:
        """Корректно закрыть соединения пула (при завершении приложения)."""
        await self.engine.dispose()
        self.logger.info('[DATABASE] Пул соединений закрыт')
