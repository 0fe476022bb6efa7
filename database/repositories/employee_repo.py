from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from core.logger import StructuredLogger, get_logger
from domain.entities import Employee, EmployeeFilters, EmployeeWithManager, ManagerRef
from domain.errors import ConflictError, InfrastructureError

from ..mappers import EmployeeMapper
from ..models import Department as DepartmentORM
from ..models import Employee as EmployeeORM


class EmployeeRepo:
    def __init__(self, session: AsyncSession, logger: StructuredLogger | None = None):
        self.session = session
        self.logger = logger or get_logger('repositories.employee')

    def _fail(self, action: str, e: SQLAlchemyError, **fields) -> InfrastructureError:
        self.logger.error(f'Ошибка БД: {action}', error=repr(e), **fields)
        return InfrastructureError(f'failed to {action}')

    async def _get_orm(self, id: UUID) -> EmployeeORM | None:
        stmt = select(EmployeeORM).where(EmployeeORM.id == id, EmployeeORM.alive())
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def find_all(self) -> list[Employee]:
        try:
            stmt = select(EmployeeORM).where(EmployeeORM.alive()).order_by(EmployeeORM.name)
            result = await self.session.execute(stmt)
            return [EmployeeMapper.to_domain(e) for e in result.scalars().all()]
        except SQLAlchemyError as e:
            raise self._fail('list employees', e) from e

    async def find_by_id(self, id: UUID) -> Employee | None:
        try:
            orm_employee = await self._get_orm(id)
        except SQLAlchemyError as e:
            raise self._fail('get employee', e, employee_id=str(id)) from e

        if not orm_employee:
            return None
        return EmployeeMapper.to_domain(orm_employee)

    async def find_by_id_with_manager(self, id: UUID) -> EmployeeWithManager | None:
        """Сотрудник + имя менеджера его подразделения (LEFT JOIN, менеджера может не быть)."""
        manager = aliased(EmployeeORM)
        stmt = (
            select(EmployeeORM, manager.name)
            .join(DepartmentORM, DepartmentORM.id == EmployeeORM.department_id)
            .outerjoin(manager, (manager.id == DepartmentORM.manager_id) & manager.deleted_at.is_(None))
            .where(EmployeeORM.id == id, EmployeeORM.alive())
        )
        try:
            result = await self.session.execute(stmt)
            row = result.first()
        except SQLAlchemyError as e:
            raise self._fail('get employee with manager', e, employee_id=str(id)) from e

        if row is None:
            return None
        orm_employee, manager_name = row
        return EmployeeWithManager(
            employee=EmployeeMapper.to_domain(orm_employee),
            manager_name=manager_name or '',
        )

    async def find_by_department_ids(self, department_ids: list[UUID]) -> list[Employee]:
        if not department_ids:
            return []
        try:
            stmt = (
                select(EmployeeORM)
                .where(EmployeeORM.department_id.in_(department_ids), EmployeeORM.alive())
                .order_by(EmployeeORM.name)
            )
            result = await self.session.execute(stmt)
            return [EmployeeMapper.to_domain(e) for e in result.scalars().all()]
        except SQLAlchemyError as e:
            raise self._fail('list employees by departments', e) from e

    async def find_with_filters(
        self,
        filters: EmployeeFilters,
        page: int,
        page_size: int,
    ) -> tuple[list[Employee], int]:
        stmt = select(EmployeeORM).where(EmployeeORM.alive())

        if filters.name:
            stmt = stmt.where(EmployeeORM.name.ilike(f'%{filters.name}%'))
        if filters.cpf:
            stmt = stmt.where(EmployeeORM.cpf == filters.cpf)
        if filters.rg:
            stmt = stmt.where(EmployeeORM.rg == filters.rg)
        if filters.department_id is not None:
            stmt = stmt.where(EmployeeORM.department_id == filters.department_id)

        try:
            total = await self.session.scalar(select(func.count()).select_from(stmt.subquery()))
            result = await self.session.execute(
                stmt.order_by(EmployeeORM.name, EmployeeORM.id)
                .offset((page - 1) * page_size)
                .limit(page_size)
            )
            return [EmployeeMapper.to_domain(e) for e in result.scalars().all()], total or 0
        except SQLAlchemyError as e:
            raise self._fail('filter employees', e) from e

    async def _exists(self, column, value: str, exclude_id: UUID | None) -> bool:
        stmt = select(EmployeeORM.id).where(column == value, EmployeeORM.alive())
        if exclude_id is not None:
            stmt = stmt.where(EmployeeORM.id != exclude_id)
        try:
            result = await self.session.execute(stmt.limit(1))
            return result.scalar_one_or_none() is not None
        except SQLAlchemyError as e:
            raise self._fail('check employee uniqueness', e) from e

    async def exists_by_cpf(self, cpf: str, exclude_id: UUID | None = None) -> bool:
        return await self._exists(EmployeeORM.cpf, cpf, exclude_id)

    async def exists_by_rg(self, rg: str, exclude_id: UUID | None = None) -> bool:
        return await self._exists(EmployeeORM.rg, rg, exclude_id)

    async def create(self, employee: Employee) -> Employee:
        try:
            orm_employee = EmployeeMapper.to_orm(employee)
            self.session.add(orm_employee)
            await self.session.flush()
            await self.session.refresh(orm_employee)
            self.logger.info('Сотрудник сохранён', employee_id=str(orm_employee.id))
            return EmployeeMapper.to_domain(orm_employee)
        except IntegrityError as e:
            # Гонка между проверкой уникальности и вставкой
            self.logger.warning('Нарушение уникальности при сохранении сотрудника', error=repr(e))
            raise ConflictError('employee with this CPF or RG already exists') from e
        except SQLAlchemyError as e:
            raise self._fail('create employee', e) from e

    async def update(self, employee: Employee) -> Employee | None:
        try:
            orm_employee = await self._get_orm(employee.id)
            if not orm_employee:
                self.logger.warning('Сотрудник не найден при обновлении', employee_id=str(employee.id))
                return None

            EmployeeMapper.apply(employee, orm_employee)
            await self.session.flush()
            await self.session.refresh(orm_employee)

            self.logger.info('Сотрудник обновлён', employee_id=str(orm_employee.id))
            return EmployeeMapper.to_domain(orm_employee)
        except IntegrityError as e:
            self.logger.warning('Нарушение уникальности при обновлении сотрудника', error=repr(e))
            raise ConflictError('employee with this CPF or RG already exists') from e
        except SQLAlchemyError as e:
            raise self._fail('update employee', e, employee_id=str(employee.id)) from e

    async def delete(self, id: UUID) -> bool:
        try:
            orm_employee = await self._get_orm(id)
            if not orm_employee:
                self.logger.warning('Сотрудник не найден при удалении', employee_id=str(id))
                return False

            orm_employee.deleted_at = func.now()
            await self.session.flush()
            return True
        except SQLAlchemyError as e:
            raise self._fail('delete employee', e, employee_id=str(id)) from e


class EmployeeReader:
    """Адаптер EmployeeRepo под нужды подразделений: только id, имя и подразделение."""

    def __init__(self, repo: EmployeeRepo):
        self.repo = repo

    async def find_by_id(self, id: UUID) -> ManagerRef | None:
        employee = await self.repo.find_by_id(id)
        if employee is None:
            return None
        return ManagerRef(id=employee.id, name=employee.name, department_id=employee.department_id)
