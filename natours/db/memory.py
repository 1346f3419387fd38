"""
In-memory document store.

A dictionary-backed implementation of the ``DocumentModel`` contract with
document-database semantics: generated ``_id`` values, a ``__v`` version key,
a ``createdAt`` timestamp, comparison operators, dotted paths, array
membership and populate of related models. It suits tests, demos and small
fixtures loaded at startup.

Limitations:
- Data lives in process memory and is lost on restart
- Only the operators listed in ``natours.db.base.SUPPORTED_OPERATORS``
"""

import copy
import logging
import secrets
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Type

from pydantic import BaseModel

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
from natours.errors.exceptions import CastError, DuplicateFieldError, ExecutionError

logger = logging.getLogger(__name__)

ID_FIELD = "_id"
VERSION_FIELD = "__v"
CREATED_FIELD = "createdAt"
SYSTEM_FIELDS = frozenset({ID_FIELD, VERSION_FIELD, CREATED_FIELD})

_MISSING = object()


def _new_id() -> str:
    return secrets.token_hex(12)


def _get_path(document: Mapping[str, Any], path: str) -> Any:
    value: Any = document
    for part in path.split("."):
        if isinstance(value, Mapping):
            value = value.get(part)
        elif isinstance(value, list):
            value = [item.get(part) for item in value if isinstance(item, Mapping)]
        else:
            return None
    return value


def _parse_datetime(raw: str, sample: datetime) -> datetime:
    parsed = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    if sample.tzinfo is not None and parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    elif sample.tzinfo is None and parsed.tzinfo is not None:
        parsed = parsed.replace(tzinfo=None)
    return parsed


def _cast(path: str, operand: Any, sample: Any) -> Any:
    """Cast a string criterion to the type of the stored value."""
    if isinstance(sample, list):
        sample = next((item for item in sample if item is not None), None)
    if not isinstance(operand, str) or sample is None or isinstance(sample, str):
        return operand

    try:
        if isinstance(sample, bool):
            lowered = operand.strip().lower()
            if lowered not in ("true", "false", "1", "0"):
                raise ValueError(operand)
            return lowered in ("true", "1")
        if isinstance(sample, int):
            number = float(operand)
            return int(number) if number.is_integer() else number
        if isinstance(sample, float):
            return float(operand)
        if isinstance(sample, datetime):
            return _parse_datetime(operand, sample)
    except ValueError:
        raise CastError(path, operand)
    return operand


def _equals(value: Any, operand: Any) -> bool:
    if isinstance(value, list) and not isinstance(operand, list):
        return operand in value
    return value == operand


def _compare(path: str, operator: str, value: Any, operand: Any) -> bool:
    if value is None:
        return False
    candidates = value if isinstance(value, list) else [value]
    try:
        if operator == "$gt":
            return any(item > operand for item in candidates)
        if operator == "$gte":
            return any(item >= operand for item in candidates)
        if operator == "$lt":
            return any(item < operand for item in candidates)
        return any(item <= operand for item in candidates)
    except TypeError:
        raise CastError(path, operand)


def _match_field(document: Document, path: str, condition: Any) -> bool:
    value = _get_path(document, path)
    for operator, operand in split_operators(path, condition):
        if operator in ("$in", "$nin"):
            options = operand if isinstance(operand, list) else [operand]
            hit = any(_equals(value, _cast(path, option, value)) for option in options)
            if hit != (operator == "$in"):
                return False
        elif operator in ("$eq", "$ne"):
            hit = _equals(value, _cast(path, operand, value))
            if hit != (operator == "$eq"):
                return False
        elif not _compare(path, operator, value, _cast(path, operand, value)):
            return False
    return True


def _sort_documents(documents: List[Document], spec: Optional[str]) -> List[Document]:
    ordered = list(documents)
    for path, descending in reversed(parse_sort(spec)):

        def key(document: Document, path: str = path) -> Tuple[int, Any]:
            value = _get_path(document, path)
            return (0, 0) if value is None else (1, value)

        try:
            ordered.sort(key=key, reverse=descending)
        except TypeError:
            raise ExecutionError(
                f"Cannot sort on '{path}': values have mixed types",
                details={"field": path},
            )
    return ordered


@dataclass(frozen=True)
class Relation:
    """
    Link used by ``populate``.

    Without ``foreign_field`` the local path stores an id (or list of ids) of
    ``model`` documents. With ``foreign_field`` the path is virtual: every
    ``model`` document whose ``foreign_field`` equals the local ``_id`` is
    embedded.
    """

    model: "InMemoryModel"
    foreign_field: Optional[str] = None


@dataclass(frozen=True)
class InMemoryQuery:
    """Generative query over an ``InMemoryModel``; every call returns a copy."""

    model: "InMemoryModel"
    criteria: Tuple[Mapping[str, Any], ...] = ()
    by_id: Any = _MISSING
    sort_spec: Optional[str] = None
    projection: Optional[Projection] = None
    skip_count: int = 0
    limit_count: Optional[int] = None
    populate_paths: Tuple[PopulatePath, ...] = field(default_factory=tuple)

    def filter(self, criteria: Optional[Mapping[str, Any]]) -> "InMemoryQuery":
        if not criteria:
            return self
        return replace(self, criteria=self.criteria + (copy.deepcopy(dict(criteria)),))

    def sort(self, spec: str) -> "InMemoryQuery":
        return replace(self, sort_spec=spec)

    def select(self, spec: str) -> "InMemoryQuery":
        return replace(self, projection=parse_projection(spec))

    def skip(self, count: int) -> "InMemoryQuery":
        return replace(self, skip_count=max(int(count), 0))

    def limit(self, count: int) -> "InMemoryQuery":
        return replace(self, limit_count=int(count) if count else None)

    def populate(self, spec: Any) -> "InMemoryQuery":
        return replace(
            self, populate_paths=self.populate_paths + tuple(parse_populate(spec))
        )

    def _matches(self, document: Document) -> bool:
        return all(
            _match_field(document, path, condition)
            for criteria in self.criteria
            for path, condition in criteria.items()
        )

    def _matching(self) -> List[Document]:
        return [doc for doc in self.model._documents.values() if self._matches(doc)]

    async def execute(self) -> Any:
        if self.by_id is not _MISSING:
            document = self.model._documents.get(str(self.by_id))
            if document is None or not self._matches(document):
                return None
            return self._render(document)

        documents = _sort_documents(self._matching(), self.sort_spec)
        end = None if self.limit_count is None else self.skip_count + self.limit_count
        return [self._render(doc) for doc in documents[self.skip_count : end]]

    async def count(self) -> int:
        return len(self._matching())

    def _render(self, document: Document) -> Document:
        rendered = copy.deepcopy(document)
        for populate in self.populate_paths:
            rendered[populate.path] = self.model._populate(rendered, populate)
        if self.projection is not None:
            rendered = self.projection.apply(rendered)
        return rendered


class InMemoryModel:
    """
    Dictionary-backed document model.

    Attributes:
        name: Model name, used to key response envelopes
        schema: Optional pydantic model validating create and update bodies
        relations: Populate targets keyed by path
        unique: Field names whose values must be unique

    Example:
        ```python
        tours = InMemoryModel("Tour", schema=TourSchema, unique=("name",))
        await tours.create({"name": "The Forest Hiker", "price": 397})
        docs = await tours.find({"price": {"$lt": "500"}}).sort("-price").execute()
        ```
    """

    def __init__(
        self,
        name: str,
        *,
        schema: Optional[Type[BaseModel]] = None,
        relations: Optional[Mapping[str, Relation]] = None,
        unique: Sequence[str] = (),
        documents: Optional[Iterable[Mapping[str, Any]]] = None,
    ):
        self.name = name
        self.schema = schema
        self.relations: Dict[str, Relation] = dict(relations or {})
        self.unique = tuple(unique)
        self._documents: Dict[str, Document] = {}
        for document in documents or ():
            self._insert(dict(document))

    def __repr__(self) -> str:
        return f"InMemoryModel(name={self.name!r}, documents={len(self._documents)})"

    def relate(self, path: str, relation: Relation) -> None:
        """Register a populate target after construction (for cyclic links)."""
        self.relations[path] = relation

    def find(self, criteria: Optional[Mapping[str, Any]] = None) -> InMemoryQuery:
        return InMemoryQuery(self).filter(criteria)

    def find_by_id(self, id: Any) -> InMemoryQuery:
        return InMemoryQuery(self, by_id=id)

    def _check_unique(self, document: Document, exclude_id: Optional[str] = None) -> None:
        for name in self.unique:
            value = document.get(name)
            if value is None:
                continue
            for other_id, other in self._documents.items():
                if other_id != exclude_id and other.get(name) == value:
                    raise DuplicateFieldError(value, details={"field": name})

    def _insert(self, data: Dict[str, Any]) -> Document:
        document = {ID_FIELD: str(data.pop(ID_FIELD, None) or _new_id())}
        document.update(data)
        document[VERSION_FIELD] = 0
        document.setdefault(CREATED_FIELD, datetime.now(timezone.utc))
        self._check_unique(document)
        self._documents[document[ID_FIELD]] = document
        return document

    async def create(self, body: Mapping[str, Any]) -> Document:
        data = {key: value for key, value in body.items() if key not in SYSTEM_FIELDS}
        data = validate_document(self.schema, data, self.name)
        document = self._insert(data)
        logger.debug(f"Created {self.name} id={document[ID_FIELD]}")
        return copy.deepcopy(document)

    async def find_by_id_and_update(
        self,
        id: Any,
        body: Mapping[str, Any],
        *,
        return_updated: bool = True,
        run_validators: bool = True,
    ) -> Optional[Document]:
        document = self._documents.get(str(id))
        if document is None:
            return None

        changes = {key: value for key, value in body.items() if key not in SYSTEM_FIELDS}
        if run_validators and self.schema is not None:
            current = {k: v for k, v in document.items() if k not in SYSTEM_FIELDS}
            validated = validate_document(self.schema, {**current, **changes}, self.name)
            changes = {key: validated[key] for key in changes if key in validated}

        self._check_unique({**document, **changes}, exclude_id=document[ID_FIELD])
        before = copy.deepcopy(document)
        document.update(changes)
        logger.debug(f"Updated {self.name} id={id}")
        return copy.deepcopy(document) if return_updated else before

    async def find_by_id_and_delete(self, id: Any) -> Optional[Document]:
        document = self._documents.pop(str(id), None)
        if document is not None:
            logger.debug(f"Deleted {self.name} id={id}")
        return document

    def _populate(self, document: Document, populate: PopulatePath) -> Any:
        relation = self.relations.get(populate.path)
        if relation is None:
            raise ExecutionError(
                f"Cannot populate path '{populate.path}' of {self.name}",
                details={"path": populate.path},
            )

        target = relation.model
        query = InMemoryQuery(target, projection=parse_projection(populate.select))
        if relation.foreign_field:
            return [
                query._render(other)
                for other in target._documents.values()
                if other.get(relation.foreign_field) == document.get(ID_FIELD)
            ]

        local = document.get(populate.path)
        if isinstance(local, list):
            return [
                query._render(target._documents[str(ref)])
                for ref in local
                if str(ref) in target._documents
            ]
        if local is None:
            return None
        referenced = target._documents.get(str(local))
        return query._render(referenced) if referenced is not None else None
