from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.orm import DeclarativeBase, declared_attr


class Base(DeclarativeBase):
    pass


class TimeStampMixin:
    @declared_attr
    def created_at(cls):
        return sa.Column(
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        )

    @declared_attr
    def updated_at(cls):
        return sa.Column(
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
            nullable=False,
        )


class SoftDeleteMixin:
    @declared_attr
    def deleted_at(cls):
        return sa.Column(sa.TIMESTAMP(timezone=True), nullable=True, index=True)

    @classmethod
    def alive(cls):
        """Условие WHERE для неудалённых строк."""
        return cls.deleted_at.is_(None)
