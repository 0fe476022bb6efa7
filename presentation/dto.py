from __future__ import annotations

import math
from datetime import datetime
from typing import Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

T = TypeVar('T')


def _strip_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError('field must not be blank')
    return v


# ============ Department ============

class DepartmentWriteRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    manager_id: UUID
    parent_department_id: UUID | None = Field(default=None)

    @field_validator('name')
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _strip_required(v)


class CreateDepartmentRequest(DepartmentWriteRequest):
    pass


class UpdateDepartmentRequest(DepartmentWriteRequest):
    """PUT, полная замена: отсутствующий parent_department_id делает подразделение корнем."""


class DepartmentResponse(BaseModel):
    id: UUID
    name: str
    manager_id: UUID
    parent_department_id: UUID | None
    created_at: datetime | None
    updated_at: datetime | None

    model_config = ConfigDict(from_attributes=True)


class DepartmentWithHierarchyResponse(BaseModel):
    id: UUID
    name: str
    manager_id: UUID
    manager_name: str
    parent_department_id: UUID | None
    subdepartments: list[DepartmentWithHierarchyResponse] = []
    created_at: datetime | None
    updated_at: datetime | None

    model_config = ConfigDict(from_attributes=True)


DepartmentWithHierarchyResponse.model_rebuild()


class ListDepartmentsRequest(BaseModel):
    name: str | None = None
    manager_name: str | None = None
    parent_department_id: UUID | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)


# ============ Employee ============

class EmployeeWriteRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    cpf: str = Field(..., min_length=11, max_length=14, description='11 цифр, допускается маска 000.000.000-00')
    rg: str | None = Field(default=None, max_length=20)
    department_id: UUID

    @field_validator('name', 'cpf')
    @classmethod
    def strip_value(cls, v: str) -> str:
        return _strip_required(v)


class CreateEmployeeRequest(EmployeeWriteRequest):
    pass


class UpdateEmployeeRequest(EmployeeWriteRequest):
    pass


class EmployeeResponse(BaseModel):
    id: UUID
    name: str
    cpf: str
    rg: str | None
    department_id: UUID
    created_at: datetime | None
    updated_at: datetime | None

    model_config = ConfigDict(from_attributes=True)


class EmployeeWithManagerResponse(EmployeeResponse):
    manager_name: str


class ListEmployeesRequest(BaseModel):
    name: str | None = None
    cpf: str | None = None
    rg: str | None = None
    department_id: UUID | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)


# ============ Common ============

class ErrorResponse(BaseModel):
    error: str
    message: str | None = None
    field: str | None = None


class PaginatedResponse(BaseModel, Generic[T]):
    data: list[T]
    page: int
    page_size: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, data: list[T], page: int, page_size: int, total: int) -> PaginatedResponse[T]:
        return cls(
            data=data,
            page=page,
            page_size=page_size,
            total=total,
            total_pages=math.ceil(total / page_size) if total else 0,
        )
