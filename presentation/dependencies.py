from collections.abc import AsyncGenerator, Awaitable, Callable

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from core.logger import StructuredLogger
from core.settings import Settings
from database.repositories.department_repo import DepartmentRepo
from database.repositories.employee_repo import EmployeeReader, EmployeeRepo
from domain.cache import Cache
from services.department_service import DepartmentService
from services.employee_service import EmployeeService
from services.hierarchy import HierarchyEngine
from services.manager_service import ManagerService


# ========== INFRASTRUCTURE ==========

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_cache(request: Request) -> Cache:
    return request.app.state.cache


def get_logger(request: Request) -> StructuredLogger:
    logger: StructuredLogger = request.app.state.logger
    request_id = getattr(request.state, 'request_id', None)
    return logger.bind(request_id=request_id) if request_id else logger


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Сессия на запрос: коммит при успехе, откат при ошибке.

    Колбэки из request.state.after_commit выполняются только после
    успешного коммита.
    """
    after_commit: list[Callable[[], Awaitable[None]]] = []
    request.state.after_commit = after_commit

    async with request.app.state.database.get_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise

    for callback in after_commit:
        await callback()


# ========== SERVICES ==========

def get_hierarchy_engine(
    request: Request,
    session: AsyncSession = Depends(get_session),
    cache: Cache = Depends(get_cache),
    settings: Settings = Depends(get_settings),
    logger: StructuredLogger = Depends(get_logger),
) -> HierarchyEngine:
    engine = HierarchyEngine(
        DepartmentRepo(session, logger),
        cache,
        logger,
        cache_ttl=settings.CACHE_TTL_SECONDS,
    )
    # Повторная инвалидация после коммита
    request.state.after_commit.append(engine.flush_pending)
    return engine


def get_department_service(
    session: AsyncSession = Depends(get_session),
    hierarchy: HierarchyEngine = Depends(get_hierarchy_engine),
    logger: StructuredLogger = Depends(get_logger),
) -> DepartmentService:
    employee_repo = EmployeeRepo(session, logger)
    return DepartmentService(
        repo=hierarchy.repo,
        managers=EmployeeReader(employee_repo),
        employees=employee_repo,
        hierarchy=hierarchy,
        logger=logger,
    )


def get_employee_service(
    session: AsyncSession = Depends(get_session),
    hierarchy: HierarchyEngine = Depends(get_hierarchy_engine),
    logger: StructuredLogger = Depends(get_logger),
) -> EmployeeService:
    return EmployeeService(
        repo=EmployeeRepo(session, logger),
        departments=hierarchy.repo,
        logger=logger,
        hierarchy=hierarchy,
    )


def get_manager_service(
    departments: DepartmentService = Depends(get_department_service),
    employees: EmployeeService = Depends(get_employee_service),
    logger: StructuredLogger = Depends(get_logger),
) -> ManagerService:
    return ManagerService(departments, employees, logger)
