"""
Persistence capability contracts.

The resource handlers only talk to a model through ``DocumentModel`` and to
queries through ``DocumentQuery``. Both in-memory and SQLAlchemy backends
implement these protocols. Shared parsing of sort, projection and populate
specs lives here so every backend reads them the same way.
"""

from typing import (
    Any,
    Dict,
    Iterable,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Protocol,
    Tuple,
    Type,
    runtime_checkable,
)

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from natours.errors.exceptions import ExecutionError, ValidationError

Document = Dict[str, Any]

SUPPORTED_OPERATORS = frozenset(
    {"$eq", "$ne", "$gt", "$gte", "$lt", "$lte", "$in", "$nin"}
)


@runtime_checkable
class DocumentQuery(Protocol):
    """A request for documents matching some criteria."""

    def filter(self, criteria: Mapping[str, Any]) -> "DocumentQuery":
        ...

    def sort(self, spec: str) -> "DocumentQuery":
        ...

    def select(self, spec: str) -> "DocumentQuery":
        ...

    def skip(self, count: int) -> "DocumentQuery":
        ...

    def limit(self, count: int) -> "DocumentQuery":
        ...

    def populate(self, spec: Any) -> "DocumentQuery":
        ...

    async def execute(self) -> Any:
        ...

    async def count(self) -> int:
        ...


@runtime_checkable
class DocumentModel(Protocol):
    """A collection of documents with id-addressed operations."""

    name: str

    def find(self, criteria: Optional[Mapping[str, Any]] = None) -> DocumentQuery:
        ...

    def find_by_id(self, id: Any) -> DocumentQuery:
        ...

    async def create(self, body: Mapping[str, Any]) -> Document:
        ...

    async def find_by_id_and_update(
        self,
        id: Any,
        body: Mapping[str, Any],
        *,
        return_updated: bool = True,
        run_validators: bool = True,
    ) -> Optional[Document]:
        ...

    async def find_by_id_and_delete(self, id: Any) -> Optional[Document]:
        ...


def parse_sort(spec: Optional[str]) -> List[Tuple[str, bool]]:
    """
    Parse a space separated sort spec.

    Returns:
        ``(field, descending)`` pairs in order

    Examples:
        >>> parse_sort("-price name")
        [('price', True), ('name', False)]
    """
    fields = []
    for token in (spec or "").replace(",", " ").split():
        descending = token.startswith("-")
        field = token.lstrip("+-")
        if field:
            fields.append((field, descending))
    return fields


class Projection(NamedTuple):
    """Fields to keep (``include=True``) or to drop (``include=False``)."""

    include: bool
    fields: Tuple[str, ...]

    def apply(self, document: Document) -> Document:
        if self.include:
            return {key: document[key] for key in self.fields if key in document}
        return {key: value for key, value in document.items() if key not in self.fields}


def parse_projection(spec: Optional[str]) -> Optional[Projection]:
    """
    Parse a space separated projection spec.

    Raises:
        ExecutionError: If the spec mixes included and excluded fields
    """
    tokens = (spec or "").replace(",", " ").split()
    if not tokens:
        return None

    excluded = [token[1:] for token in tokens if token.startswith("-")]
    included = [token.lstrip("+") for token in tokens if not token.startswith("-")]
    if excluded and included:
        raise ExecutionError(
            "Projection cannot have a mix of inclusion and exclusion",
            details={"fields": tokens},
        )
    if excluded:
        return Projection(include=False, fields=tuple(excluded))
    return Projection(include=True, fields=tuple(included))


class PopulatePath(NamedTuple):
    path: str
    select: Optional[str] = None


def parse_populate(spec: Any) -> List[PopulatePath]:
    """
    Normalize a populate instruction.

    Accepts a path string (space or comma separated for several paths), a
    ``{"path": ..., "select": ...}`` mapping, or a list of either.
    """
    if not spec:
        return []
    if isinstance(spec, str):
        return [PopulatePath(path) for path in spec.replace(",", " ").split()]
    if isinstance(spec, Mapping):
        if "path" not in spec:
            raise ExecutionError("Populate options require a path")
        return [PopulatePath(spec["path"], spec.get("select"))]
    if isinstance(spec, Iterable):
        paths: List[PopulatePath] = []
        for item in spec:
            paths.extend(parse_populate(item))
        return paths
    raise ExecutionError(f"Unsupported populate option: {spec!r}")


def split_operators(field: str, condition: Any) -> List[Tuple[str, Any]]:
    """
    Break a field condition into ``(operator, operand)`` pairs.

    A plain value is ``$eq``, a list is ``$in`` and a mapping of operators is
    returned as is.

    Raises:
        ExecutionError: If an operator outside the supported set is used
    """
    if isinstance(condition, Mapping):
        pairs = []
        for operator, operand in condition.items():
            if operator not in SUPPORTED_OPERATORS:
                raise ExecutionError(
                    f"Unsupported operator '{operator}' on field '{field}'",
                    details={"field": field, "operator": operator},
                )
            pairs.append((operator, operand))
        return pairs
    if isinstance(condition, list):
        return [("$in", condition)]
    return [("$eq", condition)]


def validate_document(
    schema: Optional[Type[BaseModel]],
    data: Mapping[str, Any],
    model_name: str,
) -> Dict[str, Any]:
    """
    Validate a document body against an optional pydantic schema.

    Returns:
        The validated fields with schema defaults filled in, or the data
        unchanged when no schema is configured

    Raises:
        ValidationError: With one entry per failing field
    """
    if schema is None:
        return dict(data)
    try:
        validated = schema.model_validate(dict(data))
    except PydanticValidationError as exc:
        fields = [
            {
                "field": ".".join(str(part) for part in error.get("loc", ())),
                "message": error.get("msg", "Invalid value"),
                "code": "VALIDATION_ERROR",
            }
            for error in exc.errors()
        ]
        messages = ". ".join(f"{item['field']}: {item['message']}" for item in fields)
        raise ValidationError(
            message=f"Invalid input data. {messages}",
            fields=fields,
            details={"model": model_name},
        ) from exc
    return validated.model_dump()

