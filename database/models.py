import uuid
from typing import Optional

from sqlalchemy import ForeignKey, Index, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from domain.ids import new_id

from .base import Base, SoftDeleteMixin, TimeStampMixin


class Department(TimeStampMixin, SoftDeleteMixin, Base):
    __tablename__ = 'departments'

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Менеджер это сотрудник; FK нет, т.к. сотрудник сам ссылается на подразделение
    manager_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    # FK - на саму себя - ключ для самоссылки
    parent_department_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey('departments.id'), nullable=True, index=True
    )

    parent: Mapped[Optional['Department']] = relationship(
        back_populates='children',
        remote_side='Department.id',
    )

    children: Mapped[list['Department']] = relationship(back_populates='parent')

    employees: Mapped[list['Employee']] = relationship(back_populates='department')


class Employee(TimeStampMixin, SoftDeleteMixin, Base):
    __tablename__ = 'employees'
    __table_args__ = (
        # Уникальность только среди живых строк
        Index(
            'uq_employees_cpf_alive',
            'cpf',
            unique=True,
            postgresql_where=text('deleted_at IS NULL'),
        ),
        Index(
            'uq_employees_rg_alive',
            'rg',
            unique=True,
            postgresql_where=text('deleted_at IS NULL AND rg IS NOT NULL'),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    cpf: Mapped[str] = mapped_column(String(11), nullable=False)
    rg: Mapped[str | None] = mapped_column(String(20), nullable=True)
    department_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey('departments.id'), nullable=False, index=True
    )

    department: Mapped['Department'] = relationship(back_populates='employees')
