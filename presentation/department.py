from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from domain.entities import Department, DepartmentFilters
from services.department_service import DepartmentService

from .dependencies import get_department_service
from .dto import (
    CreateDepartmentRequest,
    DepartmentResponse,
    DepartmentWithHierarchyResponse,
    ErrorResponse,
    ListDepartmentsRequest,
    PaginatedResponse,
    UpdateDepartmentRequest,
)

# ========== ROUTER ==========
router = APIRouter(
    prefix='/api/v1/departments',
    tags=['departments'],
    responses={
        400: {'model': ErrorResponse},
        404: {'model': ErrorResponse},
        409: {'model': ErrorResponse},
        503: {'model': ErrorResponse},
    },
)


# ========== ENDPOINTS ==========

@router.get(
    '',
    response_model=list[DepartmentResponse],
    summary='Все подразделения',
)
async def get_all_departments(
    service: DepartmentService = Depends(get_department_service),
) -> list[DepartmentResponse]:
    departments = await service.get_all()
    return [DepartmentResponse.model_validate(d) for d in departments]


@router.post(
    '/list',
    response_model=PaginatedResponse[DepartmentResponse],
    summary='Подразделения с фильтрами и пагинацией',
)
async def list_departments(
    request: ListDepartmentsRequest,
    service: DepartmentService = Depends(get_department_service),
) -> PaginatedResponse[DepartmentResponse]:
    filters = DepartmentFilters(
        name=request.name,
        manager_name=request.manager_name,
        parent_department_id=request.parent_department_id,
    )
    departments, total = await service.list_paginated(filters, request.page, request.page_size)
    return PaginatedResponse[DepartmentResponse].build(
        [DepartmentResponse.model_validate(d) for d in departments],
        page=request.page,
        page_size=request.page_size,
        total=total,
    )


@router.get(
    '/{id}',
    response_model=DepartmentWithHierarchyResponse,
    summary='Подразделение с менеджером и всем поддеревом',
)
async def get_department(
    id: UUID,
    service: DepartmentService = Depends(get_department_service),
) -> DepartmentWithHierarchyResponse:
    tree = await service.get_with_hierarchy(id)
    return DepartmentWithHierarchyResponse.model_validate(tree)


@router.post(
    '',
    response_model=DepartmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary='Создание подразделения',
)
async def create_department(
    request: CreateDepartmentRequest,
    service: DepartmentService = Depends(get_department_service),
) -> DepartmentResponse:
    department = Department(
        name=request.name,
        manager_id=request.manager_id,
        parent_department_id=request.parent_department_id,
    )
    created = await service.create(department)
    return DepartmentResponse.model_validate(created)


@router.put(
    '/{id}',
    response_model=DepartmentResponse,
    summary='Полное обновление подразделения (имя, менеджер, родитель)',
)
async def update_department(
    id: UUID,
    request: UpdateDepartmentRequest,
    service: DepartmentService = Depends(get_department_service),
) -> DepartmentResponse:
    department = Department(
        id=id,
        name=request.name,
        manager_id=request.manager_id,
        parent_department_id=request.parent_department_id,
    )
    updated = await service.update(id, department)
    return DepartmentResponse.model_validate(updated)


@router.delete(
    '/{id}',
    status_code=status.HTTP_204_NO_CONTENT,
    summary='Мягкое удаление подразделения',
)
async def delete_department(
    id: UUID,
    service: DepartmentService = Depends(get_department_service),
) -> Response:
    await service.delete(id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
