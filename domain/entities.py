from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from .ids import new_id


@dataclass
class Department:
    """Подразделение"""

    name: str
    manager_id: UUID | None
    parent_department_id: UUID | None = None
    id: UUID = field(default_factory=new_id)
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Employee:
    """Сотрудник"""

    name: str
    cpf: str
    department_id: UUID | None
    rg: str | None = None
    id: UUID = field(default_factory=new_id)
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class EmployeeWithManager:
    """Сотрудник + имя менеджера его подразделения"""

    employee: Employee
    manager_name: str


@dataclass
class ManagerRef:
    """Минимальный срез сотрудника, нужный подразделениям для проверки менеджера"""

    id: UUID
    name: str
    department_id: UUID


@dataclass
class HierarchyRow:
    """Плоская строка рекурсивного запроса по поддереву"""

    id: UUID
    name: str
    manager_id: UUID
    parent_department_id: UUID | None
    manager_name: str
    level: int
    path: list[str]
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class DepartmentWithHierarchy:
    """Подразделение с именем менеджера и вложенным поддеревом"""

    id: UUID
    name: str
    manager_id: UUID
    manager_name: str
    parent_department_id: UUID | None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    subdepartments: list[DepartmentWithHierarchy] = field(default_factory=list)

    def iter_nodes(self):
        """Обход в ширину: сам узел и все потомки."""
        queue = [self]
        while queue:
            node = queue.pop(0)
            yield node
            queue.extend(node.subdepartments)


@dataclass
class DepartmentFilters:
    name: str | None = None
    manager_name: str | None = None
    parent_department_id: UUID | None = None


@dataclass
class EmployeeFilters:
    name: str | None = None
    cpf: str | None = None
    rg: str | None = None
    department_id: UUID | None = None
