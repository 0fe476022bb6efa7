from uuid import UUID

from core.logger import StructuredLogger
from domain.entities import Employee, EmployeeFilters, EmployeeWithManager
from domain.errors import ConflictError, ManagerNotInDepartmentError, NotFoundError, ValidationError
from domain.repositories import DepartmentLookup, EmployeeRepository
from domain.validators import normalize_cpf, validate_cpf

from .hierarchy import HierarchyEngine


class EmployeeService:
    def __init__(
        self,
        repo: EmployeeRepository,
        departments: DepartmentLookup,
        logger: StructuredLogger,
        hierarchy: HierarchyEngine | None = None,
    ):
        self.repo = repo
        self.departments = departments
        self.hierarchy = hierarchy
        self.logger = logger.bind(component='employee_service')

    # ========== READ ==========

    async def get_all(self) -> list[Employee]:
        return await self.repo.find_all()

    async def list_paginated(
        self,
        filters: EmployeeFilters,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Employee], int]:
        if filters.cpf:
            filters.cpf = normalize_cpf(filters.cpf)
        return await self.repo.find_with_filters(filters, page, page_size)

    async def get(self, id: UUID) -> Employee:
        employee = await self.repo.find_by_id(id)
        if employee is None:
            raise NotFoundError('employee not found')
        return employee

    async def get_with_manager(self, id: UUID) -> EmployeeWithManager:
        result = await self.repo.find_by_id_with_manager(id)
        if result is None:
            raise NotFoundError('employee not found')
        return result

    async def get_by_department_ids(self, department_ids: list[UUID]) -> list[Employee]:
        return await self.repo.find_by_department_ids(department_ids)

    # ========== WRITE ==========

    async def create(self, employee: Employee) -> Employee:
        try:
            await self._validate(employee)
        except (ValidationError, ConflictError, NotFoundError) as e:
            self.logger.warning('Сотрудник не прошёл валидацию', name=employee.name, error=e.message)
            raise

        created = await self.repo.create(employee)

        self.logger.info(
            'Сотрудник создан',
            employee_id=str(created.id),
            name=created.name,
            department_id=str(created.department_id),
        )
        return created

    async def update(self, id: UUID, employee: Employee) -> Employee:
        existing = await self.repo.find_by_id(id)
        if existing is None:
            self.logger.warning('Сотрудник для обновления не найден', employee_id=str(id))
            raise NotFoundError('employee not found')

        employee.id = existing.id
        try:
            await self._validate(employee, exclude_id=id)
        except (ValidationError, ConflictError, NotFoundError) as e:
            self.logger.warning('Обновление сотрудника не прошло валидацию', employee_id=str(id), error=e.message)
            raise

        if employee.department_id != existing.department_id:
            await self._ensure_not_moving_manager(id)

        updated = await self.repo.update(employee)
        if updated is None:
            raise NotFoundError('employee not found')

        # Имя менеджера вшито в закэшированные деревья
        if updated.name != existing.name:
            await self._invalidate_managed_hierarchies(id)

        self.logger.info('Сотрудник обновлён', employee_id=str(id), name=updated.name)
        return updated

    async def delete(self, id: UUID) -> None:
        existing = await self.repo.find_by_id(id)
        if existing is None:
            self.logger.warning('Сотрудник для удаления не найден', employee_id=str(id))
            raise NotFoundError('employee not found')

        if await self.departments.find_by_manager_id(id):
            raise ConflictError('employee manages a department')

        if not await self.repo.delete(id):
            raise NotFoundError('employee not found')

        self.logger.info('Сотрудник удалён', employee_id=str(id), name=existing.name)

    # ========== HELPERS ==========

    async def _validate(self, employee: Employee, exclude_id: UUID | None = None) -> None:
        if not employee.name or not employee.name.strip():
            raise ValidationError('employee name is required', field='name')
        if not employee.cpf:
            raise ValidationError('employee CPF is required', field='cpf')
        if not validate_cpf(employee.cpf):
            raise ValidationError('invalid CPF', field='cpf')
        if employee.department_id is None or employee.department_id.int == 0:
            raise ValidationError('employee department is required', field='department_id')

        employee.name = employee.name.strip()
        employee.cpf = normalize_cpf(employee.cpf)
        employee.rg = employee.rg.strip() if employee.rg and employee.rg.strip() else None

        if await self.departments.find_by_id(employee.department_id) is None:
            raise NotFoundError('department not found', field='department_id')

        if await self.repo.exists_by_cpf(employee.cpf, exclude_id=exclude_id):
            raise ConflictError('CPF already exists', field='cpf')
        if employee.rg and await self.repo.exists_by_rg(employee.rg, exclude_id=exclude_id):
            raise ConflictError('RG already exists', field='rg')

    async def _ensure_not_moving_manager(self, employee_id: UUID) -> None:
        """Менеджер обязан состоять в подразделении, которым руководит."""
        if await self.departments.find_by_manager_id(employee_id):
            self.logger.warning('Попытка перевести менеджера в другое подразделение', employee_id=str(employee_id))
            raise ManagerNotInDepartmentError(
                'employee manages a department and cannot leave it', field='department_id'
            )

    async def _invalidate_managed_hierarchies(self, employee_id: UUID) -> None:
        if self.hierarchy is None:
            return
        managed = await self.departments.find_by_manager_id(employee_id)
        if managed:
            await self.hierarchy.invalidate_with_ancestors(*(d.id for d in managed))
