from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from domain.entities import Employee, EmployeeFilters
from services.employee_service import EmployeeService

from .dependencies import get_employee_service
from .dto import (
    CreateEmployeeRequest,
    EmployeeResponse,
    EmployeeWithManagerResponse,
    ErrorResponse,
    ListEmployeesRequest,
    PaginatedResponse,
    UpdateEmployeeRequest,
)

router = APIRouter(
    prefix='/api/v1/employees',
    tags=['employees'],
    responses={
        400: {'model': ErrorResponse},
        404: {'model': ErrorResponse},
        409: {'model': ErrorResponse},
        503: {'model': ErrorResponse},
    },
)


@router.get('', response_model=list[EmployeeResponse], summary='Все сотрудники')
async def get_all_employees(
    service: EmployeeService = Depends(get_employee_service),
) -> list[EmployeeResponse]:
    employees = await service.get_all()
    return [EmployeeResponse.model_validate(e) for e in employees]


@router.post(
    '/list',
    response_model=PaginatedResponse[EmployeeResponse],
    summary='Сотрудники с фильтрами и пагинацией',
)
async def list_employees(
    request: ListEmployeesRequest,
    service: EmployeeService = Depends(get_employee_service),
) -> PaginatedResponse[EmployeeResponse]:
    filters = EmployeeFilters(
        name=request.name,
        cpf=request.cpf,
        rg=request.rg,
        department_id=request.department_id,
    )
    employees, total = await service.list_paginated(filters, request.page, request.page_size)
    return PaginatedResponse[EmployeeResponse].build(
        [EmployeeResponse.model_validate(e) for e in employees],
        page=request.page,
        page_size=request.page_size,
        total=total,
    )


@router.get(
    '/{id}',
    response_model=EmployeeWithManagerResponse,
    summary='Сотрудник с именем менеджера',
)
async def get_employee(
    id: UUID,
    service: EmployeeService = Depends(get_employee_service),
) -> EmployeeWithManagerResponse:
    result = await service.get_with_manager(id)
    return EmployeeWithManagerResponse(
        **EmployeeResponse.model_validate(result.employee).model_dump(),
        manager_name=result.manager_name,
    )


@router.post(
    '',
    response_model=EmployeeResponse,
    status_code=status.HTTP_201_CREATED,
    summary='Создание сотрудника',
)
async def create_employee(
    request: CreateEmployeeRequest,
    service: EmployeeService = Depends(get_employee_service),
) -> EmployeeResponse:
    employee = Employee(
        name=request.name,
        cpf=request.cpf,
        rg=request.rg,
        department_id=request.department_id,
    )
    created = await service.create(employee)
    return EmployeeResponse.model_validate(created)


@router.put('/{id}', response_model=EmployeeResponse, summary='Полное обновление сотрудника')
async def update_employee(
    id: UUID,
    request: UpdateEmployeeRequest,
    service: EmployeeService = Depends(get_employee_service),
) -> EmployeeResponse:
    employee = Employee(
        id=id,
        name=request.name,
        cpf=request.cpf,
        rg=request.rg,
        department_id=request.department_id,
    )
    updated = await service.update(id, employee)
    return EmployeeResponse.model_validate(updated)


@router.delete('/{id}', status_code=status.HTTP_204_NO_CONTENT, summary='Мягкое удаление сотрудника')
async def delete_employee(
    id: UUID,
    service: EmployeeService = Depends(get_employee_service),
) -> Response:
    await service.delete(id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
