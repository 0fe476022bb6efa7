from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from cache.factory import build_cache
from core.logger import setup_logging
from core.settings import Settings, get_settings
from database.database import DataBaseConnection
from presentation.department import router as department_router
from presentation.employee import router as employee_router
from presentation.errors import register_exception_handlers
from presentation.manager import router as manager_router
from presentation.middleware import log_requests


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logger = setup_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Управление жизненным циклом приложения."""
        # Startup
        logger.info('[STARTUP] Запуск приложения...')
        database = DataBaseConnection(settings, logger)
        cache = build_cache(settings, logger)
        app.state.database = database
        app.state.cache = cache

        await database.connect()
        if settings.AUTO_CREATE_TABLES:
            await database.create_tables()
        logger.info('[STARTUP] Приложение успешно запущено')

        yield

        # Shutdown
        logger.info('[SHUTDOWN] Остановка приложения...')
        await cache.close()
        await database.dispose()
        logger.info('[SHUTDOWN] Приложение остановлено')

    app = FastAPI(
        title='Employees & Departments API',
        description='API для управления сотрудниками и иерархией подразделений',
        version='1.0.0',
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.logger = logger

    app.middleware('http')(log_requests)
    register_exception_handlers(app)

    # Подключение роутеров
    app.include_router(employee_router)
    app.include_router(department_router)
    app.include_router(manager_router)

    @app.get('/health', tags=['health'])
    async def health(request: Request):
        """Health check endpoint."""
        db_ok = await request.app.state.database.is_connected()
        try:
            cache_ok = await request.app.state.cache.ping()
        except Exception as e:
            logger.warning('[HEALTH] Кэш недоступен', error=repr(e))
            cache_ok = False

        return {
            'status': 'ok' if db_ok and cache_ok else 'degraded',
            'service': settings.APP_NAME,
            'db_connected': db_ok,
            'cache_connected': cache_ok,
        }

    return app


app = create_app()


if __name__ == '__main__':
    import uvicorn

    uvicorn.run(
        'main:app',
        host='0.0.0.0',
        port=8000,
        reload=get_settings().APP_ENV == 'development',
    )
