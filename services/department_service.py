from uuid import UUID

from core.logger import StructuredLogger
from domain.entities import Department, DepartmentFilters, DepartmentWithHierarchy
from domain.errors import ConflictError, ManagerNotInDepartmentError, NotFoundError, ValidationError
from domain.repositories import DepartmentRepository, EmployeeRepository, ManagerReader

from .hierarchy import HierarchyEngine


class DepartmentService:
    """
    CRUD подразделений поверх HierarchyEngine.

    Порядок записи: валидация -> проверка цикла -> сохранение ->
    инвалидация кэша. Если сохранение упало, кэш не трогаем.
    """

    def __init__(
        self,
        repo: DepartmentRepository,
        managers: ManagerReader,
        employees: EmployeeRepository,
        hierarchy: HierarchyEngine,
        logger: StructuredLogger,
    ):
        self.repo = repo
        self.managers = managers
        self.employees = employees
        self.hierarchy = hierarchy
        self.logger = logger.bind(component='department_service')

    # ========== READ ==========

    async def get_all(self) -> list[Department]:
        return await self.repo.find_all()

    async def list_paginated(
        self,
        filters: DepartmentFilters,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Department], int]:
        return await self.repo.find_with_filters(filters, page, page_size)

    async def get(self, id: UUID) -> Department:
        department = await self.repo.find_by_id(id)
        if department is None:
            raise NotFoundError('department not found')
        return department

    async def get_by_manager_id(self, manager_id: UUID) -> list[Department]:
        return await self.repo.find_by_manager_id(manager_id)

    async def get_by_parent_id(self, parent_id: UUID) -> list[Department]:
        return await self.repo.find_by_parent_id(parent_id)

    async def get_with_hierarchy(self, id: UUID) -> DepartmentWithHierarchy:
        return await self.hierarchy.get_with_hierarchy(id)

    # ========== WRITE ==========

    async def create(self, department: Department) -> Department:
        self._validate(department)

        # Новый узел ещё ничей не предок, достаточно проверить, что родитель есть
        if department.parent_department_id is not None:
            parent = await self.repo.find_by_id(department.parent_department_id)
            if parent is None:
                self.logger.warning(
                    'Родительское подразделение не найдено',
                    parent_id=str(department.parent_department_id),
                )
                raise NotFoundError('parent department not found', field='parent_department_id')

        created = await self.repo.create(department)

        await self.hierarchy.invalidate_with_ancestors(created.parent_department_id)

        self.logger.info(
            'Подразделение создано',
            department_id=str(created.id),
            name=created.name,
            manager_id=str(created.manager_id),
        )
        return created

    async def update(self, id: UUID, department: Department) -> Department:
        """Полная замена name / manager_id / parent_department_id; id сохраняется."""
        existing = await self.repo.find_by_id(id)
        if existing is None:
            self.logger.warning('Подразделение для обновления не найдено', department_id=str(id))
            raise NotFoundError('department not found')

        self._validate(department)

        try:
            await self.hierarchy.validate_no_cycle(id, department.parent_department_id)
        except (ConflictError, NotFoundError) as e:
            self.logger.warning(
                'Недопустимый родитель подразделения',
                department_id=str(id),
                parent_id=str(department.parent_department_id),
                error=e.message,
            )
            raise

        await self._validate_manager_belongs(department.manager_id, id)

        department.id = existing.id
        updated = await self.repo.update(department)
        if updated is None:
            raise NotFoundError('department not found')

        await self.hierarchy.invalidate_with_ancestors(
            id,
            existing.parent_department_id,
            updated.parent_department_id,
        )

        self.logger.info('Подразделение обновлено', department_id=str(id), name=updated.name)
        return updated

    async def delete(self, id: UUID) -> None:
        existing = await self.repo.find_by_id(id)
        if existing is None:
            self.logger.warning('Подразделение для удаления не найдено', department_id=str(id))
            raise NotFoundError('department not found')

        # Не оставляем висячих ссылок на удалённое подразделение
        if await self.repo.has_children(id):
            raise ConflictError('department has active subdepartments')

        # Собственный менеджер удаляется вместе с подразделением
        staff = await self.employees.find_by_department_ids([id])
        if any(e.id != existing.manager_id for e in staff):
            raise ConflictError('department has active employees')
        manager_in_staff = bool(staff)
        if manager_in_staff and await self._manages_elsewhere(existing.manager_id, id):
            raise ConflictError('department manager also manages another department')

        if not await self.repo.delete(id):
            raise NotFoundError('department not found')
        if manager_in_staff:
            await self.employees.delete(existing.manager_id)

        await self.hierarchy.invalidate_with_ancestors(id, existing.parent_department_id)

        self.logger.info('Подразделение удалено', department_id=str(id), name=existing.name)

    # ========== VALIDATION ==========

    def _validate(self, department: Department) -> None:
        if not department.name or not department.name.strip():
            raise ValidationError('department name is required', field='name')
        if department.manager_id is None or department.manager_id.int == 0:
            raise ValidationError('department manager is required', field='manager_id')
        department.name = department.name.strip()

    async def _manages_elsewhere(self, manager_id: UUID, department_id: UUID) -> bool:
        managed = await self.repo.find_by_manager_id(manager_id)
        return any(d.id != department_id for d in managed)

    async def _validate_manager_belongs(self, manager_id: UUID, department_id: UUID) -> None:
        manager = await self.managers.find_by_id(manager_id)
        if manager is None:
            raise NotFoundError('manager not found', field='manager_id')

        if manager.department_id != department_id:
            self.logger.warning(
                'Менеджер не состоит в подразделении',
                department_id=str(department_id),
                manager_id=str(manager_id),
                manager_department_id=str(manager.department_id),
            )
            raise ManagerNotInDepartmentError(
                'manager must be linked to the same department', field='manager_id'
            )
