from uuid import UUID

from core.logger import StructuredLogger
from domain.entities import Employee
from domain.errors import NotFoundError

from .department_service import DepartmentService
from .employee_service import EmployeeService


class ManagerService:
    """Сотрудники, подчинённые менеджеру через всю цепочку его подразделений."""

    def __init__(
        self,
        departments: DepartmentService,
        employees: EmployeeService,
        logger: StructuredLogger,
    ):
        self.departments = departments
        self.employees = employees
        self.logger = logger.bind(component='manager_service')

    async def get_managed_department_ids(self, manager_id: UUID) -> list[UUID]:
        """
        Обход в ширину: подразделения менеджера, затем их дети, дети детей...
        visited защищает от повторов и испорченных (циклических) данных.
        """
        roots = await self.departments.get_by_manager_id(manager_id)

        result: list[UUID] = []
        visited: set[UUID] = set()
        queue = [d.id for d in roots]

        while queue:
            department_id = queue.pop(0)
            if department_id in visited:
                continue
            visited.add(department_id)
            result.append(department_id)

            children = await self.departments.get_by_parent_id(department_id)
            queue.extend(child.id for child in children if child.id not in visited)

        return result

    async def get_subordinate_employees(self, manager_id: UUID) -> list[Employee]:
        try:
            await self.employees.get(manager_id)
        except NotFoundError:
            raise NotFoundError('manager not found') from None

        department_ids = await self.get_managed_department_ids(manager_id)
        employees = await self.employees.get_by_department_ids(department_ids)

        self.logger.debug(
            'Подчинённые менеджера получены',
            manager_id=str(manager_id),
            departments=len(department_ids),
            employees=len(employees),
        )
        return employees
