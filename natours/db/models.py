"""
Base SQLAlchemy configuration for document entities.

All entities served through ``SQLAlchemyModel`` should inherit from ``Base``
and ``DocumentMixin``. Column names are the document keys clients see, so the
mixin maps its Python attributes onto ``createdAt``, ``updatedAt`` and ``__v``.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, MetaData
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Define a consistent naming convention for constraints
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base for all entities."""

    metadata = metadata


class DocumentMixin:
    """Primary key, timestamps and version key shared by document entities."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        "createdAt", DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        "updatedAt",
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )
    version: Mapped[int] = mapped_column("__v", Integer, default=0, nullable=False)


__all__ = ["Base", "DocumentMixin", "metadata", "utcnow"]
