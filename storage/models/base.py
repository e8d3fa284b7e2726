"""
Base ORM Model and Mixins.

============================================================
PURPOSE
============================================================
Declarative base shared by all ORM models of the import
service, plus the creation timestamp mixin.

============================================================
COMPONENTS
============================================================
- Base: declarative base with a constraint naming convention
- CreatedAtMixin: server-side creation timestamp

============================================================
"""

from datetime import datetime

from sqlalchemy import DateTime, MetaData, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """
    Declarative base for all ORM models.

    All datetimes are stored timezone-aware (UTC).
    """

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }


class CreatedAtMixin:
    """
    Adds a created_at column filled by the database.

    Usage:
        class Trade(Base, CreatedAtMixin):
            __tablename__ = "trades"
            ...
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        comment="Record creation timestamp (UTC)"
    )
