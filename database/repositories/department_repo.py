from uuid import UUID

import sqlalchemy as sa
from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import ARRAY, array
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from core.logger import StructuredLogger, get_logger
from domain.entities import Department, DepartmentFilters, HierarchyRow
from domain.errors import InfrastructureError

from ..mappers import DepartmentMapper
from ..models import Department as DepartmentORM
from ..models import Employee as EmployeeORM


class DepartmentRepo:
    def __init__(self, session: AsyncSession, logger: StructuredLogger | None = None):
        self.session = session
        self.logger = logger or get_logger('repositories.department')

    def _fail(self, action: str, e: SQLAlchemyError, **fields) -> InfrastructureError:
        self.logger.error(f'Ошибка БД: {action}', error=repr(e), **fields)
        return InfrastructureError(f'failed to {action}')

    async def _get_orm(self, id: UUID) -> DepartmentORM | None:
        stmt = select(DepartmentORM).where(DepartmentORM.id == id, DepartmentORM.alive())
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def find_all(self) -> list[Department]:
        try:
            stmt = select(DepartmentORM).where(DepartmentORM.alive()).order_by(DepartmentORM.name)
            result = await self.session.execute(stmt)
            return [DepartmentMapper.to_domain(d) for d in result.scalars().all()]
        except SQLAlchemyError as e:
            raise self._fail('list departments', e) from e

    async def find_by_id(self, id: UUID) -> Department | None:
        try:
            orm_department = await self._get_orm(id)
        except SQLAlchemyError as e:
            raise self._fail('get department', e, department_id=str(id)) from e

        if not orm_department:
            return None
        return DepartmentMapper.to_domain(orm_department)

    async def find_by_parent_id(self, parent_id: UUID) -> list[Department]:
        try:
            stmt = (
                select(DepartmentORM)
                .where(DepartmentORM.parent_department_id == parent_id, DepartmentORM.alive())
                .order_by(DepartmentORM.name)
            )
            result = await self.session.execute(stmt)
            return [DepartmentMapper.to_domain(d) for d in result.scalars().all()]
        except SQLAlchemyError as e:
            raise self._fail('list subdepartments', e, parent_id=str(parent_id)) from e

    async def find_by_manager_id(self, manager_id: UUID) -> list[Department]:
        try:
            stmt = (
                select(DepartmentORM)
                .where(DepartmentORM.manager_id == manager_id, DepartmentORM.alive())
                .order_by(DepartmentORM.name)
            )
            result = await self.session.execute(stmt)
            return [DepartmentMapper.to_domain(d) for d in result.scalars().all()]
        except SQLAlchemyError as e:
            raise self._fail('list departments by manager', e, manager_id=str(manager_id)) from e

    async def has_children(self, id: UUID) -> bool:
        try:
            stmt = select(DepartmentORM.id).where(
                DepartmentORM.parent_department_id == id, DepartmentORM.alive()
            ).limit(1)
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none() is not None
        except SQLAlchemyError as e:
            raise self._fail('check subdepartments', e, department_id=str(id)) from e

    async def find_with_filters(
        self,
        filters: DepartmentFilters,
        page: int,
        page_size: int,
    ) -> tuple[list[Department], int]:
        stmt = select(DepartmentORM).where(DepartmentORM.alive())

        if filters.name:
            stmt = stmt.where(DepartmentORM.name.ilike(f'%{filters.name}%'))
        if filters.parent_department_id is not None:
            stmt = stmt.where(DepartmentORM.parent_department_id == filters.parent_department_id)
        if filters.manager_name:
            manager = aliased(EmployeeORM)
            stmt = stmt.join(manager, manager.id == DepartmentORM.manager_id).where(
                manager.deleted_at.is_(None), manager.name.ilike(f'%{filters.manager_name}%')
            )

        try:
            total = await self.session.scalar(select(func.count()).select_from(stmt.subquery()))
            result = await self.session.execute(
                stmt.order_by(DepartmentORM.name, DepartmentORM.id)
                .offset((page - 1) * page_size)
                .limit(page_size)
            )
            return [DepartmentMapper.to_domain(d) for d in result.scalars().all()], total or 0
        except SQLAlchemyError as e:
            raise self._fail('filter departments', e) from e

    async def find_hierarchy_subtree(self, id: UUID) -> list[HierarchyRow]:
        """
        Всё поддерево одним рекурсивным CTE.

        Каждая строка несёт level и path (id от корня поддерева до себя);
        строка, чей id уже есть в path родителя, дальше не раскрывается.
        Порядок: level, name.
        """
        root_manager = aliased(EmployeeORM)
        base = (
            select(
                DepartmentORM.id,
                DepartmentORM.name,
                DepartmentORM.manager_id,
                DepartmentORM.parent_department_id,
                root_manager.name.label('manager_name'),
                DepartmentORM.created_at,
                DepartmentORM.updated_at,
                sa.literal(0).label('level'),
                array([sa.cast(DepartmentORM.id, sa.Text)]).label('path'),
            )
            .outerjoin(
                root_manager,
                sa.and_(root_manager.id == DepartmentORM.manager_id, root_manager.deleted_at.is_(None)),
            )
            .where(DepartmentORM.id == id, DepartmentORM.alive())
            .cte('department_tree', recursive=True)
        )

        child = aliased(DepartmentORM)
        child_manager = aliased(EmployeeORM)
        child_id_text = sa.cast(child.id, sa.Text)
        recursive = (
            select(
                child.id,
                child.name,
                child.manager_id,
                child.parent_department_id,
                child_manager.name,
                child.created_at,
                child.updated_at,
                base.c.level + 1,
                base.c.path.op('||', return_type=ARRAY(sa.Text))(child_id_text),
            )
            .select_from(child)
            .join(base, child.parent_department_id == base.c.id)
            .outerjoin(
                child_manager,
                sa.and_(child_manager.id == child.manager_id, child_manager.deleted_at.is_(None)),
            )
            .where(child.deleted_at.is_(None), sa.not_(child_id_text == sa.any_(base.c.path)))
        )

        tree = base.union_all(recursive)
        stmt = select(tree).order_by(tree.c.level, tree.c.name)

        try:
            result = await self.session.execute(stmt)
            rows = result.mappings().all()
        except SQLAlchemyError as e:
            raise self._fail('fetch department hierarchy', e, department_id=str(id)) from e

        return [
            HierarchyRow(
                id=row['id'],
                name=row['name'],
                manager_id=row['manager_id'],
                parent_department_id=row['parent_department_id'],
                manager_name=row['manager_name'] or '',
                level=row['level'],
                path=list(row['path']),
                created_at=row['created_at'],
                updated_at=row['updated_at'],
            )
            for row in rows
        ]

    async def create(self, department: Department) -> Department:
        try:
            orm_department = DepartmentMapper.to_orm(department)
            self.session.add(orm_department)
            await self.session.flush()
            await self.session.refresh(orm_department)
            self.logger.info('Подразделение сохранено', department_id=str(orm_department.id))
            return DepartmentMapper.to_domain(orm_department)
        except SQLAlchemyError as e:
            raise self._fail('create department', e, name=department.name) from e

    async def update(self, department: Department) -> Department | None:
        try:
            orm_department = await self._get_orm(department.id)
            if not orm_department:
                self.logger.warning('Подразделение не найдено при обновлении', department_id=str(department.id))
                return None

            DepartmentMapper.apply(department, orm_department)
            await self.session.flush()
            await self.session.refresh(orm_department)

            self.logger.info('Подразделение обновлено', department_id=str(orm_department.id))
            return DepartmentMapper.to_domain(orm_department)
        except SQLAlchemyError as e:
            raise self._fail('update department', e, department_id=str(department.id)) from e

    async def delete(self, id: UUID) -> bool:
        """Мягкое удаление: строка остаётся, но исчезает из всех выборок."""
        try:
            orm_department = await self._get_orm(id)
            if not orm_department:
                self.logger.warning('Подразделение не найдено при удалении', department_id=str(id))
                return False

            orm_department.deleted_at = func.now()
            await self.session.flush()
            return True
        except SQLAlchemyError as e:
            raise self._fail('delete department', e, department_id=str(id)) from e
