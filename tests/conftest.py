"""
Pytest фикстуры.

Сервисы собираются на in-memory хранилищах (tests/fakes.py) и настоящем
InMemoryCache, поэтому тестам не нужны ни PostgreSQL, ни Redis.
"""
import logging
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

from cache.memory_cache import InMemoryCache
from core.logger import StructuredLogger
from core.settings import Settings
from domain.entities import Department, Employee
from domain.ids import new_id
from main import create_app
from presentation.dependencies import get_department_service, get_employee_service, get_manager_service
from services.department_service import DepartmentService
from services.employee_service import EmployeeService
from services.hierarchy import HierarchyEngine
from services.manager_service import ManagerService
from tests.fakes import FakeDepartmentRepo, FakeEmployeeRepo, FakeManagerReader

CACHE_TTL = 300


def make_cpf(base: int) -> str:
    """CPF с корректными контрольными цифрами из 9-значной основы."""
    digits = [int(d) for d in f'{base:09d}']
    for weight_start in (10, 11):
        total = sum(d * (weight_start - i) for i, d in enumerate(digits))
        digits.append(0 if total % 11 < 2 else 11 - total % 11)
    return ''.join(map(str, digits))


# ============ БАЗОВЫЕ ФИКСТУРЫ ============

@pytest.fixture
def logger():
    return StructuredLogger(logging.getLogger('app.tests'))


@pytest.fixture
def dept_repo():
    return FakeDepartmentRepo()


@pytest.fixture
def emp_repo(dept_repo):
    return FakeEmployeeRepo(dept_repo)


@pytest.fixture
def cache():
    return InMemoryCache(maxsize=128)


@pytest.fixture
def engine(dept_repo, cache, logger):
    return HierarchyEngine(dept_repo, cache, logger, cache_ttl=CACHE_TTL)


@pytest.fixture
def department_service(dept_repo, emp_repo, engine, logger):
    return DepartmentService(
        repo=dept_repo,
        managers=FakeManagerReader(emp_repo),
        employees=emp_repo,
        hierarchy=engine,
        logger=logger,
    )


@pytest.fixture
def employee_service(emp_repo, dept_repo, engine, logger):
    return EmployeeService(repo=emp_repo, departments=dept_repo, logger=logger, hierarchy=engine)


@pytest.fixture
def manager_service(department_service, employee_service, logger):
    return ManagerService(department_service, employee_service, logger)


# ============ ОРГСТРУКТУРА ============

class Org:
    """Помощник для наполнения fake-хранилищ в обход валидации сервисов."""

    def __init__(self, dept_repo: FakeDepartmentRepo, emp_repo: FakeEmployeeRepo):
        self.dept_repo = dept_repo
        self.emp_repo = emp_repo
        self._cpf_base = 123456780

    def department(self, name: str, manager: str, parent: Department | None = None) -> Department:
        """Подразделение и его менеджер, который в нём же и состоит."""
        department = self.dept_repo.add(Department(
            name=name,
            manager_id=new_id(),
            parent_department_id=parent.id if parent else None,
        ))
        boss = self.employee(manager, department)
        department.manager_id = boss.id
        return department

    def employee(self, name: str, department: Department) -> Employee:
        return self.emp_repo.add(Employee(name=name, cpf=self._next_cpf(), department_id=department.id))

    def _next_cpf(self) -> str:
        self._cpf_base += 1
        return make_cpf(self._cpf_base)

    def manager_of(self, department: Department) -> Employee:
        return self.emp_repo.rows[self.dept_repo.rows[department.id].manager_id]

    def reparent(self, department: Department, parent_id: UUID | None) -> None:
        self.dept_repo.rows[department.id].parent_department_id = parent_id


@pytest.fixture
def org(dept_repo, emp_repo):
    return Org(dept_repo, emp_repo)


@pytest.fixture
def chain(org):
    """A <- B <- C: родитель C это B, родитель B это A."""
    a = org.department('A', 'Alice')
    b = org.department('B', 'Bruno', parent=a)
    c = org.department('C', 'Carla', parent=b)
    return a, b, c


# ============ HTTP ============

@pytest.fixture
def client(department_service, employee_service, manager_service):
    """
    TestClient поверх fake-хранилищ.

    Без `with`: lifespan не запускается, к PostgreSQL и Redis не подключаемся.
    """
    app = create_app(Settings(LOG_LEVEL='WARNING'))
    app.dependency_overrides[get_department_service] = lambda: department_service
    app.dependency_overrides[get_employee_service] = lambda: employee_service
    app.dependency_overrides[get_manager_service] = lambda: manager_service

    yield TestClient(app)

    app.dependency_overrides.clear()
