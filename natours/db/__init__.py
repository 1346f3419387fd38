"""
Persistence layer: document model contracts and their backends.
"""

from natours.db.base import (
    SUPPORTED_OPERATORS,
    Document,
    DocumentModel,
    DocumentQuery,
    PopulatePath,
    Projection,
    parse_populate,
    parse_projection,
    parse_sort,
    split_operators,
    validate_document,
)
from natours.db.engine import create_all, init_db, shutdown_db
from natours.db.manager import get_db, setup_db
from natours.db.memory import InMemoryModel, InMemoryQuery, Relation
from natours.db.models import Base, DocumentMixin
from natours.db.sql import SQLAlchemyModel, SQLAlchemyQuery

__all__ = [
    # Contracts
    "Document",
    "DocumentModel",
    "DocumentQuery",
    "SUPPORTED_OPERATORS",
    "Projection",
    "PopulatePath",
    "parse_sort",
    "parse_projection",
    "parse_populate",
    "split_operators",
    "validate_document",
    # Backends
    "InMemoryModel",
    "InMemoryQuery",
    "Relation",
    "SQLAlchemyModel",
    "SQLAlchemyQuery",
    "Base",
    "DocumentMixin",
    # Lifecycle
    "init_db",
    "shutdown_db",
    "create_all",
    "setup_db",
    "get_db",
]
