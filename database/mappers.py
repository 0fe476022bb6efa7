import database.models as orm
import domain.entities as domain


class DepartmentMapper:
    @staticmethod
    def to_domain(model: orm.Department) -> domain.Department:
        return domain.Department(
            id=model.id,
            name=model.name,
            manager_id=model.manager_id,
            parent_department_id=model.parent_department_id,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    @staticmethod
    def to_orm(entity: domain.Department) -> orm.Department:
        return orm.Department(
            id=entity.id,
            name=entity.name,
            manager_id=entity.manager_id,
            parent_department_id=entity.parent_department_id,
        )

    @staticmethod
    def apply(entity: domain.Department, model: orm.Department) -> None:
        """Полная замена изменяемых полей; id не трогаем."""
        model.name = entity.name
        model.manager_id = entity.manager_id
        model.parent_department_id = entity.parent_department_id


class EmployeeMapper:
    @staticmethod
    def to_domain(model: orm.Employee) -> domain.Employee:
        return domain.Employee(
            id=model.id,
            name=model.name,
            cpf=model.cpf,
            rg=model.rg,
            department_id=model.department_id,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    @staticmethod
    def to_orm(entity: domain.Employee) -> orm.Employee:
        return orm.Employee(
            id=entity.id,
            name=entity.name,
            cpf=entity.cpf,
            rg=entity.rg,
            department_id=entity.department_id,
        )

    @staticmethod
    def apply(entity: domain.Employee, model: orm.Employee) -> None:
        model.name = entity.name
        model.cpf = entity.cpf
        model.rg = entity.rg
        model.department_id = entity.department_id
