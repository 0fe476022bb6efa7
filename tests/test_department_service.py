"""Тесты DepartmentService: запись, проверки и инвалидация кэша деревьев."""
from uuid import UUID

import pytest

from domain.entities import Department, DepartmentFilters, Employee
from domain.errors import (
    ConflictError,
    CycleError,
    InfrastructureError,
    ManagerNotInDepartmentError,
    NotFoundError,
    ValidationError,
)
from domain.ids import new_id
from tests.conftest import make_cpf


async def warm(engine, *departments):
    for department in departments:
        await engine.get_with_hierarchy(department.id)


async def cached(cache, engine, department) -> bool:
    return await cache.exists(engine.cache_key(department.id))


def payload(department: Department, **changes) -> Department:
    """Тело полной замены: текущие значения плюс изменения."""
    fields = {
        'name': department.name,
        'manager_id': department.manager_id,
        'parent_department_id': department.parent_department_id,
    }
    fields.update(changes)
    return Department(**fields)


class TestCreate:

    @pytest.mark.asyncio
    async def test_create_root(self, department_service, dept_repo):
        created = await department_service.create(Department(name='  Engineering ', manager_id=new_id()))

        assert created.name == 'Engineering'
        assert created.parent_department_id is None
        assert created.id in dept_repo.rows

    @pytest.mark.asyncio
    async def test_create_under_parent_invalidates_parent_chain(
        self, department_service, engine, cache, chain
    ):
        a, b, c = chain
        await warm(engine, a, b, c)

        await department_service.create(Department(name='D', manager_id=new_id(), parent_department_id=b.id))

        assert not await cached(cache, engine, b)
        assert not await cached(cache, engine, a)
        assert await cached(cache, engine, c)

    @pytest.mark.asyncio
    async def test_create_then_read_includes_new_child(self, department_service, engine, chain):
        a, b, _ = chain
        await warm(engine, a)

        created = await department_service.create(
            Department(name='Backend Tools', manager_id=new_id(), parent_department_id=b.id)
        )
        root = await department_service.get_with_hierarchy(a.id)

        assert created.id in {n.id for n in root.iter_nodes()}

    @pytest.mark.asyncio
    async def test_missing_parent(self, department_service, dept_repo):
        with pytest.raises(NotFoundError) as exc:
            await department_service.create(
                Department(name='D', manager_id=new_id(), parent_department_id=new_id())
            )

        assert exc.value.field == 'parent_department_id'
        assert dept_repo.calls['create'] == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize('name', ['', '   '])
    async def test_blank_name(self, department_service, name):
        with pytest.raises(ValidationError) as exc:
            await department_service.create(Department(name=name, manager_id=new_id()))
        assert exc.value.field == 'name'

    @pytest.mark.asyncio
    async def test_nil_manager(self, department_service):
        with pytest.raises(ValidationError) as exc:
            await department_service.create(Department(name='D', manager_id=UUID(int=0)))
        assert exc.value.field == 'manager_id'


class TestUpdate:

    @pytest.mark.asyncio
    async def test_rename_invalidates_self_and_ancestors(
        self, department_service, engine, cache, chain
    ):
        a, b, c = chain
        await warm(engine, a, b, c)

        updated = await department_service.update(b.id, payload(b, name='B2'))

        assert updated.name == 'B2'
        assert not await cached(cache, engine, b)
        assert not await cached(cache, engine, a)
        assert await cached(cache, engine, c)

    @pytest.mark.asyncio
    async def test_reparent_invalidates_old_and_new_parent(
        self, department_service, engine, cache, org
    ):
        p1 = org.department('P1', 'Pia')
        p2 = org.department('P2', 'Paulo')
        x = org.department('X', 'Xena', parent=p1)
        await warm(engine, p1, p2, x)

        await department_service.update(x.id, payload(x, parent_department_id=p2.id))

        for department in (p1, p2, x):
            assert not await cached(cache, engine, department)

        old_tree = await engine.get_with_hierarchy(p1.id)
        new_tree = await engine.get_with_hierarchy(p2.id)
        assert old_tree.subdepartments == []
        assert [n.id for n in new_tree.subdepartments] == [x.id]

    @pytest.mark.asyncio
    async def test_move_to_root(self, department_service, chain):
        _, b, _ = chain

        updated = await department_service.update(b.id, payload(b, parent_department_id=None))

        assert updated.parent_department_id is None

    @pytest.mark.asyncio
    async def test_cycle_rejected_without_write(self, department_service, dept_repo, chain):
        a, _, c = chain

        with pytest.raises(CycleError):
            await department_service.update(a.id, payload(a, parent_department_id=c.id))

        assert dept_repo.calls['update'] == 0
        assert dept_repo.rows[a.id].parent_department_id is None

    @pytest.mark.asyncio
    async def test_self_parent_rejected(self, department_service, chain):
        a, _, _ = chain

        with pytest.raises(CycleError):
            await department_service.update(a.id, payload(a, parent_department_id=a.id))

    @pytest.mark.asyncio
    async def test_manager_from_other_department(
        self, department_service, dept_repo, engine, cache, org, chain
    ):
        a, b, _ = chain
        await warm(engine, a)
        outsider = org.manager_of(b)

        with pytest.raises(ManagerNotInDepartmentError) as exc:
            await department_service.update(a.id, payload(a, manager_id=outsider.id))

        assert isinstance(exc.value, ConflictError)
        assert exc.value.field == 'manager_id'
        assert dept_repo.calls['update'] == 0
        assert await cached(cache, engine, a)

    @pytest.mark.asyncio
    async def test_manager_from_same_department(self, department_service, org, chain):
        a, _, _ = chain
        deputy = org.employee('Ana', a)

        updated = await department_service.update(a.id, payload(a, manager_id=deputy.id))

        assert updated.manager_id == deputy.id

    @pytest.mark.asyncio
    async def test_unknown_manager(self, department_service, chain):
        a, _, _ = chain

        with pytest.raises(NotFoundError) as exc:
            await department_service.update(a.id, payload(a, manager_id=new_id()))
        assert exc.value.field == 'manager_id'

    @pytest.mark.asyncio
    async def test_unknown_department(self, department_service):
        with pytest.raises(NotFoundError):
            await department_service.update(new_id(), Department(name='D', manager_id=new_id()))

    @pytest.mark.asyncio
    async def test_storage_failure_leaves_cache(
        self, department_service, dept_repo, engine, cache, chain
    ):
        a, b, _ = chain
        await warm(engine, a, b)
        dept_repo.fail_on.add('update')

        with pytest.raises(InfrastructureError):
            await department_service.update(b.id, payload(b, name='B2'))

        assert await cached(cache, engine, a)
        assert await cached(cache, engine, b)


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_leaf_releases_its_manager(
        self, department_service, emp_repo, engine, cache, org, chain
    ):
        a, b, c = chain
        await warm(engine, a, b, c)
        carla = org.manager_of(c)

        await department_service.delete(c.id)

        with pytest.raises(NotFoundError):
            await department_service.get(c.id)
        assert carla.id in emp_repo.deleted
        for department in (a, b, c):
            assert not await cached(cache, engine, department)

        root = await engine.get_with_hierarchy(a.id)
        assert c.id not in {n.id for n in root.iter_nodes()}

    @pytest.mark.asyncio
    async def test_delete_department_built_through_services(
        self, department_service, employee_service, emp_repo
    ):
        department = await department_service.create(Department(name='Temp', manager_id=new_id()))
        boss = await employee_service.create(
            Employee(name='Boss', cpf=make_cpf(900000001), department_id=department.id)
        )
        await department_service.update(department.id, payload(department, manager_id=boss.id))

        await department_service.delete(department.id)

        with pytest.raises(NotFoundError):
            await department_service.get(department.id)
        with pytest.raises(NotFoundError):
            await employee_service.get(boss.id)
        assert emp_repo.calls['delete'] == 1

    @pytest.mark.asyncio
    async def test_delete_with_children_rejected(self, department_service, dept_repo, chain):
        _, b, _ = chain

        with pytest.raises(ConflictError, match='subdepartments'):
            await department_service.delete(b.id)
        assert dept_repo.calls['delete'] == 0

    @pytest.mark.asyncio
    async def test_delete_with_other_employees_rejected(
        self, department_service, dept_repo, emp_repo, org, chain
    ):
        _, _, c = chain
        org.employee('Caio', c)

        with pytest.raises(ConflictError, match='active employees'):
            await department_service.delete(c.id)
        assert dept_repo.calls['delete'] == 0
        assert emp_repo.calls['delete'] == 0

    @pytest.mark.asyncio
    async def test_delete_rejected_when_manager_runs_another_department(
        self, department_service, dept_repo, org, chain
    ):
        a, _, c = chain
        dept_repo.rows[a.id].manager_id = org.manager_of(c).id

        with pytest.raises(ConflictError, match='another department'):
            await department_service.delete(c.id)
        assert dept_repo.calls['delete'] == 0

    @pytest.mark.asyncio
    async def test_delete_without_staff(self, department_service, dept_repo, emp_repo):
        lonely = dept_repo.add(Department(name='Lonely', manager_id=new_id()))

        await department_service.delete(lonely.id)

        assert lonely.id in dept_repo.deleted
        assert emp_repo.calls['delete'] == 0

    @pytest.mark.asyncio
    async def test_delete_unknown(self, department_service):
        with pytest.raises(NotFoundError):
            await department_service.delete(new_id())


class TestRead:

    @pytest.mark.asyncio
    async def test_engineering_backend_scenario(self, department_service, engine, org):
        engineering = org.department('Engineering', 'Maria')
        backend = org.department('Backend', 'João', parent=engineering)

        root = await department_service.get_with_hierarchy(engineering.id)

        assert root.name == 'Engineering'
        assert root.manager_name == 'Maria'
        assert len(root.subdepartments) == 1
        child = root.subdepartments[0]
        assert child.id == backend.id
        assert child.manager_name == 'João'
        assert child.parent_department_id == engineering.id
        assert child.subdepartments == []

        with pytest.raises(CycleError):
            await engine.validate_no_cycle(engineering.id, backend.id)

    @pytest.mark.asyncio
    async def test_list_filters_by_name(self, department_service, org, chain):
        org.department('Backend', 'Bia')

        items, total = await department_service.list_paginated(DepartmentFilters(name='back'))

        assert total == 1
        assert items[0].name == 'Backend'

    @pytest.mark.asyncio
    async def test_list_filters_by_manager_name(self, department_service, chain):
        _, b, _ = chain

        items, total = await department_service.list_paginated(DepartmentFilters(manager_name='brun'))

        assert total == 1
        assert items[0].id == b.id

    @pytest.mark.asyncio
    async def test_list_paginates(self, department_service, chain):
        items, total = await department_service.list_paginated(DepartmentFilters(), page=2, page_size=2)

        assert total == 3
        assert [d.name for d in items] == ['C']

    @pytest.mark.asyncio
    async def test_children_and_managed(self, department_service, org, chain):
        a, b, _ = chain

        assert [d.id for d in await department_service.get_by_parent_id(a.id)] == [b.id]
        managed = await department_service.get_by_manager_id(org.manager_of(a).id)
        assert [d.id for d in managed] == [a.id]
