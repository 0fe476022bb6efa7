class DomainError(Exception):
    """Базовая ошибка предметной области."""

    code = 'domain_error'

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


class ValidationError(DomainError):
    """Некорректные входные данные (пустое имя, неверный CPF и т.п.)."""

    code = 'validation_error'


class NotFoundError(DomainError):
    """Сущность отсутствует или мягко удалена."""

    code = 'not_found'


class ConflictError(DomainError):
    """Нарушение бизнес-правила: цикл, уникальность, чужой менеджер."""

    code = 'conflict'


class CycleError(ConflictError):
    code = 'cycle_detected'


class ManagerNotInDepartmentError(ConflictError):
    code = 'manager_not_in_department'


class InfrastructureError(DomainError):
    """Сбой хранилища или кэша. Исходное исключение доступно через __cause__."""

    code = 'infrastructure_error'
