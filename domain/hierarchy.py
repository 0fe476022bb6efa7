from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .entities import DepartmentWithHierarchy, HierarchyRow


def build_hierarchy_tree(rows: list[HierarchyRow]) -> DepartmentWithHierarchy | None:
    """
    Собирает дерево из плоского результата рекурсивного запроса.

    Порядок детей совпадает с порядком строк (level, name). Корень это строка,
    чьего родителя нет в наборе. Повторно встреченный id игнорируется.
    """
    nodes: dict[UUID, DepartmentWithHierarchy] = {}
    ordered: list[tuple[HierarchyRow, DepartmentWithHierarchy]] = []

    for row in rows:
        if row.id in nodes:
            continue
        node = DepartmentWithHierarchy(
            id=row.id,
            name=row.name,
            manager_id=row.manager_id,
            manager_name=row.manager_name,
            parent_department_id=row.parent_department_id,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
        nodes[row.id] = node
        ordered.append((row, node))

    root = None
    for row, node in ordered:
        parent = nodes.get(row.parent_department_id) if row.parent_department_id else None
        if parent is not None and parent is not node:
            parent.subdepartments.append(node)
        elif root is None:
            root = node

    return root


# ========== CACHE PAYLOAD ==========

class HierarchyPayload(BaseModel):
    """Сериализованный снимок дерева: поля в camelCase, subdepartments рекурсивно."""

    id: UUID
    name: str
    manager_id: UUID
    manager_name: str
    parent_department_id: UUID | None = None
    subdepartments: list[HierarchyPayload] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_domain(self) -> DepartmentWithHierarchy:
        return DepartmentWithHierarchy(
            id=self.id,
            name=self.name,
            manager_id=self.manager_id,
            manager_name=self.manager_name,
            parent_department_id=self.parent_department_id,
            created_at=self.created_at,
            updated_at=self.updated_at,
            subdepartments=[child.to_domain() for child in self.subdepartments],
        )


HierarchyPayload.model_rebuild()


def dump_hierarchy(node: DepartmentWithHierarchy) -> str:
    return HierarchyPayload.model_validate(node).model_dump_json(by_alias=True)


def load_hierarchy(raw: str | bytes) -> DepartmentWithHierarchy:
    """Бросает pydantic.ValidationError, если снимок битый или другой формы."""
    return HierarchyPayload.model_validate_json(raw).to_domain()
