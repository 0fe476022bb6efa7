"""
Контракты хранилищ, которые потребляют сервисы.

Отсутствие записи сигнализируется через None (для одиночных выборок),
сбои хранилища сообщаются через InfrastructureError.
"""
from typing import Protocol
from uuid import UUID

from .entities import (
    Department,
    DepartmentFilters,
    Employee,
    EmployeeFilters,
    EmployeeWithManager,
    HierarchyRow,
    ManagerRef,
)


class DepartmentRepository(Protocol):
    async def find_all(self) -> list[Department]: ...

    async def find_by_id(self, id: UUID) -> Department | None: ...

    async def find_by_parent_id(self, parent_id: UUID) -> list[Department]: ...

    async def find_by_manager_id(self, manager_id: UUID) -> list[Department]: ...

    async def find_with_filters(
        self, filters: DepartmentFilters, page: int, page_size: int
    ) -> tuple[list[Department], int]: ...

    async def find_hierarchy_subtree(self, id: UUID) -> list[HierarchyRow]: ...

    async def has_children(self, id: UUID) -> bool: ...

    async def create(self, department: Department) -> Department: ...

    async def update(self, department: Department) -> Department | None: ...

    async def delete(self, id: UUID) -> bool: ...


class EmployeeRepository(Protocol):
    async def find_all(self) -> list[Employee]: ...

    async def find_by_id(self, id: UUID) -> Employee | None: ...

    async def find_by_id_with_manager(self, id: UUID) -> EmployeeWithManager | None: ...

    async def find_by_department_ids(self, department_ids: list[UUID]) -> list[Employee]: ...

    async def find_with_filters(
        self, filters: EmployeeFilters, page: int, page_size: int
    ) -> tuple[list[Employee], int]: ...

    async def exists_by_cpf(self, cpf: str, exclude_id: UUID | None = None) -> bool: ...

    async def exists_by_rg(self, rg: str, exclude_id: UUID | None = None) -> bool: ...

    async def create(self, employee: Employee) -> Employee: ...

    async def update(self, employee: Employee) -> Employee | None: ...

    async def delete(self, id: UUID) -> bool: ...


class ManagerReader(Protocol):
    """Чтение сотрудника глазами подразделений: id, имя, подразделение."""

    async def find_by_id(self, id: UUID) -> ManagerRef | None: ...


class DepartmentLookup(Protocol):
    """Чтение подразделений глазами сотрудников."""

    async def find_by_id(self, id: UUID) -> Department | None: ...

    async def find_by_manager_id(self, manager_id: UUID) -> list[Department]: ...
