from uuid import UUID

from fastapi import APIRouter, Depends

from services.manager_service import ManagerService

from .dependencies import get_manager_service
from .dto import EmployeeResponse, ErrorResponse

router = APIRouter(
    prefix='/api/v1/managers',
    tags=['managers'],
    responses={404: {'model': ErrorResponse}},
)


@router.get(
    '/{id}/employees',
    response_model=list[EmployeeResponse],
    summary='Все сотрудники в подразделениях менеджера и их поддеревьях',
)
async def get_subordinate_employees(
    id: UUID,
    service: ManagerService = Depends(get_manager_service),
) -> list[EmployeeResponse]:
    employees = await service.get_subordinate_employees(id)
    return [EmployeeResponse.model_validate(e) for e in employees]
