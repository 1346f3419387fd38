"""
SQLAlchemy implementation of the document model contract.

``SQLAlchemyModel`` wraps a declarative entity so the resource handlers can
serve it like any other document collection. Rows are serialized to dicts
keyed by column name, criteria become ``WHERE`` clauses and sort tokens
become ``ORDER BY``. Every operation opens its own ``AsyncSession``.

Example:
    ```python
    class Tour(Base, DocumentMixin):
        __tablename__ = "tours"
        name: Mapped[str] = mapped_column(String(40), unique=True)
        price: Mapped[int]

    tours = SQLAlchemyModel(Tour, schema=TourSchema)
    docs = await tours.find({"price": {"$lt": "500"}}).sort("-price").execute()
    ```
"""

import logging
import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type

from pydantic import BaseModel
from sqlalchemy import Column, and_, func, inspect, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

import natours.db.engine as db_engine
from natours.db.base import (
    Document,
    PopulatePath,
    Projection,
    parse_populate,
    parse_projection,
    parse_sort,
    split_operators,
    validate_document,
)
from natours.errors.exceptions import (
    CastError,
    DBError,
    DuplicateFieldError,
    ExecutionError,
    ValidationError,
)

_MISSING = object()
SYSTEM_FIELDS = frozenset({"createdAt", "updatedAt", "__v"})
_SQLITE_UNIQUE = re.compile(r"UNIQUE constraint failed: \w+\.(\w+)")
_POSTGRES_UNIQUE = re.compile(r"Key \((\w+)\)=\((.*?)\) already exists")
_TRUE = ("true", "1", "yes")
_FALSE = ("false", "0", "no")


def _out_of_range(error: OverflowError) -> ExecutionError:
    # SQLite binds integers as signed 64-bit values
    return ExecutionError(
        "Query value is out of range for the database",
        details={"error": str(error)},
    )


def _coerce(column: Column, path: str, value: Any) -> Any:
    """
    Cast a raw criterion or body value to the column's Python type.

    Raises:
        CastError: If the value cannot represent the column type
    """
    if value is None:
        return None
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value
    if isinstance(value, python_type) and not (
        python_type is int and isinstance(value, bool)
    ):
        return value

    try:
        if python_type is bool:
            lowered = str(value).strip().lower()
            if lowered in _TRUE:
                return True
            if lowered in _FALSE:
                return False
            raise ValueError(value)
        if python_type is int:
            number = float(value)
            if not number.is_integer():
                raise ValueError(value)
            return int(number)
        if python_type is float:
            return float(value)
        if python_type is Decimal:
            return Decimal(str(value))
        if python_type is datetime:
            parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
            if parsed.tzinfo is None and getattr(column.type, "timezone", False):
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed
        if python_type is date:
            return date.fromisoformat(str(value).strip())
        if python_type is str:
            return str(value)
    except (TypeError, ValueError, InvalidOperation):
        raise CastError(path, value) from None
    return value


@dataclass(frozen=True)
class SQLAlchemyQuery:
    """Generative query over a ``SQLAlchemyModel``; every call returns a copy."""

    model: "SQLAlchemyModel"
    criteria: Tuple[Mapping[str, Any], ...] = ()
    by_id: Any = _MISSING
    sort_spec: Optional[str] = None
    projection: Optional[Projection] = None
    skip_count: int = 0
    limit_count: Optional[int] = None
    populate_paths: Tuple[PopulatePath, ...] = field(default_factory=tuple)

    def filter(self, criteria: Optional[Mapping[str, Any]]) -> "SQLAlchemyQuery":
        if not criteria:
            return self
        return replace(self, criteria=self.criteria + (dict(criteria),))

    def sort(self, spec: str) -> "SQLAlchemyQuery":
        return replace(self, sort_spec=spec)

    def select(self, spec: str) -> "SQLAlchemyQuery":
        return replace(self, projection=parse_projection(spec))

    def skip(self, count: int) -> "SQLAlchemyQuery":
        return replace(self, skip_count=max(int(count), 0))

    def limit(self, count: int) -> "SQLAlchemyQuery":
        return replace(self, limit_count=int(count) if count else None)

    def populate(self, spec: Any) -> "SQLAlchemyQuery":
        paths = tuple(parse_populate(spec))
        for populate in paths:
            self.model._relationship(populate.path)
        return replace(self, populate_paths=self.populate_paths + paths)

    def _conditions(self) -> List[Any]:
        conditions = []
        for criteria in self.criteria:
            for path, condition in criteria.items():
                conditions.extend(self.model._field_conditions(path, condition))
        if self.by_id is not _MISSING:
            conditions.append(self.model._primary_key == self.model._coerce_id(self.by_id))
        return conditions

    def _ordering(self) -> List[Any]:
        ordering = []
        for path, descending in parse_sort(self.sort_spec):
            attribute = self.model._attribute(path)
            if attribute is None:
                self.model.logger.debug(f"Ignoring unknown sort field '{path}'")
                continue
            ordering.append(
                attribute.desc().nulls_last() if descending else attribute.asc().nulls_first()
            )
        return ordering

    def statement(self):
        """Build the ``SELECT`` this query runs."""
        stmt = select(self.model.entity).where(*self._conditions())
        for populate in self.populate_paths:
            stmt = stmt.options(selectinload(self.model._relationship(populate.path)))
        if self.by_id is not _MISSING:
            return stmt
        ordering = self._ordering()
        if ordering:
            stmt = stmt.order_by(*ordering)
        if self.skip_count:
            stmt = stmt.offset(self.skip_count)
        if self.limit_count is not None:
            stmt = stmt.limit(self.limit_count)
        return stmt

    async def execute(self) -> Any:
        stmt = self.statement()
        async with self.model.session() as session:
            try:
                result = await session.execute(stmt)
                rows = result.scalars().all()
                documents = [self._render(row) for row in rows]
            except OverflowError as e:
                raise _out_of_range(e) from None
            except SQLAlchemyError as e:
                self.model.logger.error(f"Error in execute: {e}")
                raise DBError(message=str(e), details={"error": str(e)})

        self.model.logger.debug(f"Fetched {len(documents)} {self.model.name} rows")
        if self.by_id is not _MISSING:
            return documents[0] if documents else None
        return documents

    async def count(self) -> int:
        stmt = (
            select(func.count())
            .select_from(self.model.entity)
            .where(*self._conditions())
        )
        async with self.model.session() as session:
            try:
                return (await session.execute(stmt)).scalar_one()
            except OverflowError as e:
                raise _out_of_range(e) from None
            except SQLAlchemyError as e:
                self.model.logger.error(f"Error in count: {e}")
                raise DBError(message=str(e), details={"error": str(e)})

    def _render(self, row: Any) -> Document:
        document = self.model.to_document(row)
        for populate in self.populate_paths:
            document[populate.path] = self.model._render_related(row, populate)
        if self.projection is not None:
            document = self.projection.apply(document)
        return document


class SQLAlchemyModel:
    """
    Document model backed by a SQLAlchemy declarative entity.

    Attributes:
        entity: Declarative class
        name: Model name, defaults to the entity class name
        schema: Optional pydantic model validating create and update bodies
        logger: Logger named after the model
    """

    def __init__(
        self,
        entity: Type[Any],
        *,
        name: Optional[str] = None,
        schema: Optional[Type[BaseModel]] = None,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    ) -> None:
        self.entity = entity
        self.name = name or entity.__name__
        self.schema = schema
        self._session_factory = session_factory
        self.logger = logging.getLogger(f"{__name__}.{self.name}")

        mapper = inspect(entity)
        # Document key (column name) -> (attribute key, column)
        self._columns: Dict[str, Tuple[str, Column]] = {}
        for prop in mapper.column_attrs:
            column = prop.columns[0]
            self._columns[column.name] = (prop.key, column)
        self._relationships = {rel.key: rel for rel in mapper.relationships}

        primary_keys = mapper.primary_key
        if len(primary_keys) != 1:
            raise ValueError(f"{entity.__name__} must have a single primary key column")
        self._primary_column = primary_keys[0]
        self._primary_key = self._attribute(self._primary_column.name)
        self._system_fields = frozenset(
            {self._primary_column.name} | (SYSTEM_FIELDS & set(self._columns))
        )
        self._related: Dict[str, "SQLAlchemyModel"] = {}

    def __repr__(self) -> str:
        return f"SQLAlchemyModel(entity={self.entity.__name__}, name={self.name!r})"

    def session(self) -> AsyncSession:
        factory = self._session_factory or db_engine.SessionLocal
        if factory is None:
            raise DBError(message="Database not initialized")
        return factory()

    def find(self, criteria: Optional[Mapping[str, Any]] = None) -> SQLAlchemyQuery:
        return SQLAlchemyQuery(self).filter(criteria)

    def find_by_id(self, id: Any) -> SQLAlchemyQuery:
        self._coerce_id(id)
        return SQLAlchemyQuery(self, by_id=id)

    def _attribute(self, path: str) -> Any:
        entry = self._columns.get(path)
        if entry is None:
            return None
        return getattr(self.entity, entry[0])

    def _relationship(self, path: str) -> Any:
        if path not in self._relationships:
            raise ExecutionError(
                f"Cannot populate path '{path}' of {self.name}",
                details={"path": path},
            )
        return getattr(self.entity, path)

    def _coerce_id(self, id: Any) -> Any:
        return _coerce(self._primary_column, "id", id)

    def _field_conditions(self, path: str, condition: Any) -> List[Any]:
        attribute = self._attribute(path)
        if attribute is None:
            self.logger.debug(f"Ignoring unknown filter field '{path}'")
            return []

        column = self._columns[path][1]
        conditions = []
        for operator, operand in split_operators(path, condition):
            if operator in ("$in", "$nin"):
                options = operand if isinstance(operand, list) else [operand]
                values = [_coerce(column, path, option) for option in options]
                if operator == "$in":
                    conditions.append(attribute.in_(values))
                else:
                    conditions.append(or_(attribute.not_in(values), attribute.is_(None)))
                continue

            value = _coerce(column, path, operand)
            if operator == "$eq":
                conditions.append(attribute.is_(None) if value is None else attribute == value)
            elif operator == "$ne":
                if value is None:
                    conditions.append(attribute.is_not(None))
                else:
                    conditions.append(or_(attribute != value, attribute.is_(None)))
            elif operator == "$gt":
                conditions.append(attribute > value)
            elif operator == "$gte":
                conditions.append(attribute >= value)
            elif operator == "$lt":
                conditions.append(attribute < value)
            else:
                conditions.append(attribute <= value)
        return [and_(*conditions)] if len(conditions) > 1 else conditions

    def to_document(self, row: Any) -> Document:
        """Serialize a row to a dict keyed by column name."""
        return {key: getattr(row, attr) for key, (attr, _) in self._columns.items()}

    def _related_model(self, path: str) -> "SQLAlchemyModel":
        if path not in self._related:
            self._related[path] = SQLAlchemyModel(
                self._relationships[path].mapper.class_,
                session_factory=self._session_factory,
            )
        return self._related[path]

    def _render_related(self, row: Any, populate: PopulatePath) -> Any:
        related = getattr(row, populate.path)
        if related is None:
            return None

        target = self._related_model(populate.path)
        projection = parse_projection(populate.select)

        def render(item: Any) -> Document:
            document = target.to_document(item)
            return projection.apply(document) if projection is not None else document

        if isinstance(related, (list, tuple, set)):
            return [render(item) for item in related]
        return render(related)

    def _user_fields(self, document: Mapping[str, Any]) -> Dict[str, Any]:
        return {key: value for key, value in document.items() if key not in self._system_fields}

    def _to_values(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Map document keys to attribute keys, casting each value."""
        values = {}
        for key, value in data.items():
            entry = self._columns.get(key)
            if entry is None or key in self._system_fields:
                self.logger.debug(f"Dropping unknown field '{key}' for {self.name}")
                continue
            attr, column = entry
            try:
                values[attr] = _coerce(column, key, value)
            except CastError as e:
                raise ValidationError(
                    message=f"Invalid input data. {e.message}",
                    fields=[{"field": key, "message": e.message, "code": e.code}],
                    details={"model": self.name},
                )
        return values

    def _integrity_error(self, error: IntegrityError, data: Mapping[str, Any]) -> Exception:
        """Translate a constraint violation into a client error."""
        message = str(error.orig)
        match = _POSTGRES_UNIQUE.search(message)
        if match:
            return DuplicateFieldError(match.group(2), details={"field": match.group(1)})
        match = _SQLITE_UNIQUE.search(message)
        if match:
            return DuplicateFieldError(
                data.get(match.group(1)), details={"field": match.group(1)}
            )
        if "unique" in message.lower() or "duplicate" in message.lower():
            return DuplicateFieldError(details={"error": message})
        return ValidationError(
            message=f"Invalid input data. {message}",
            details={"model": self.name, "error": message},
        )

    async def _persist(
        self,
        session: AsyncSession,
        action: Any,
        operation: str,
        data: Mapping[str, Any],
    ) -> None:
        """Run a flush or commit, rolling back and translating failures."""
        try:
            await action()
        except IntegrityError as e:
            await session.rollback()
            self.logger.error(f"Integrity error in {operation}: {e.orig}")
            raise self._integrity_error(e, data)
        except SQLAlchemyError as e:
            await session.rollback()
            self.logger.error(f"Error in {operation}: {e}")
            raise DBError(message=str(e), details={"error": str(e)})

    async def _get(self, session: AsyncSession, key: Any, operation: str) -> Any:
        try:
            return await session.get(self.entity, key)
        except OverflowError as e:
            raise _out_of_range(e) from None
        except SQLAlchemyError as e:
            self.logger.error(f"Error in {operation}: {e}")
            raise DBError(message=str(e), details={"error": str(e)})

    async def create(self, body: Mapping[str, Any]) -> Document:
        data = validate_document(self.schema, self._user_fields(body), self.name)
        values = self._to_values(data)

        async with self.session() as session:
            instance = self.entity(**values)
            session.add(instance)
            await self._persist(session, session.flush, "create", data)
            document = self.to_document(instance)
            await self._persist(session, session.commit, "create", data)

        self.logger.debug(f"Created {self.name} id={document[self._primary_column.name]}")
        return document

    async def find_by_id_and_update(
        self,
        id: Any,
        body: Mapping[str, Any],
        *,
        return_updated: bool = True,
        run_validators: bool = True,
    ) -> Optional[Document]:
        key = self._coerce_id(id)
        async with self.session() as session:
            instance = await self._get(session, key, "update")
            if instance is None:
                return None

            before = self.to_document(instance)
            changes = self._user_fields(body)
            if run_validators and self.schema is not None:
                validated = validate_document(
                    self.schema, {**self._user_fields(before), **changes}, self.name
                )
                changes = {k: validated[k] for k in changes if k in validated}

            for attr, value in self._to_values(changes).items():
                setattr(instance, attr, value)
            await self._persist(session, session.flush, "update", changes)
            after = self.to_document(instance)
            await self._persist(session, session.commit, "update", changes)

        self.logger.debug(f"Updated {self.name} id={id}")
        return after if return_updated else before

    async def find_by_id_and_delete(self, id: Any) -> Optional[Document]:
        key = self._coerce_id(id)
        async with self.session() as session:
            instance = await self._get(session, key, "delete")
            if instance is None:
                return None

            document = self.to_document(instance)
            await session.delete(instance)
            await self._persist(session, session.commit, "delete", document)

        self.logger.debug(f"Deleted {self.name} id={id}")
        return document
