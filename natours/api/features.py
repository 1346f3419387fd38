"""
Query feature pipeline for list endpoints.

``QueryFeatures`` turns a request's parameter map into four transformations
of a document query: filter, sort, field selection and pagination. The
stages always run in that order. Each stage returns a new ``QueryFeatures``
so no state is shared between the steps of one pipeline run.

Example:
    ```python
    features = QueryFeatures(Tour.find(), {"price": {"gte": "100"}, "sort": "-price"})
    docs = await features.apply().query.execute()
    ```
"""

import copy
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

from natours.api.params import as_csv, to_positive_int

RESERVED_PARAMS = frozenset({"page", "sort", "limit", "fields"})
COMPARISON_OPERATORS = frozenset({"gte", "gt", "lte", "lt"})
OPERATOR_PREFIX = "$"

DEFAULT_SORT = "-createdAt"
DEFAULT_HIDDEN_FIELDS = ("__v",)
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


class StageOrderError(RuntimeError):
    """Raised when a pipeline stage is invoked after a later stage ran."""


def _rewrite_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {
            (OPERATOR_PREFIX + key if key in COMPARISON_OPERATORS else key): _rewrite_value(
                inner
            )
            for key, inner in value.items()
        }
    if isinstance(value, list):
        return [_rewrite_value(item) for item in value]
    return value


def rewrite_operators(criteria: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Prefix comparison operator keys found inside parameter values.

    Top-level keys are field names and are left alone; every mapping key
    below them that is one of ``gte``, ``gt``, ``lte`` or ``lt`` becomes
    ``$gte`` and so on, at any depth. String values are never inspected.

    Examples:
        >>> rewrite_operators({"price": {"gte": "100"}})
        {'price': {'$gte': '100'}}
    """
    return {field: _rewrite_value(value) for field, value in criteria.items()}


def _split_fields(value: str) -> str:
    return " ".join(token.strip() for token in value.split(",") if token.strip())


class QueryFeatures:
    """
    Immutable builder applying the list pipeline to a document query.

    Attributes:
        query: Current query handle
        params: Raw request parameters (never mutated)
        criteria: Criteria emitted by the filter stage, None before it ran
        page: Page number resolved by the paginate stage
        limit: Page size resolved by the paginate stage
        skip: Number of documents skipped by the paginate stage
    """

    def __init__(
        self,
        query: Any,
        params: Optional[Mapping[str, Any]] = None,
        *,
        default_sort: str = DEFAULT_SORT,
        hidden_fields: Sequence[str] = DEFAULT_HIDDEN_FIELDS,
        default_page: int = DEFAULT_PAGE,
        default_limit: int = DEFAULT_LIMIT,
    ):
        self.query = query
        self.params: Mapping[str, Any] = dict(params or {})
        self.default_sort = default_sort
        self.hidden_fields = tuple(hidden_fields)
        self.default_page = default_page
        self.default_limit = default_limit

        self.criteria: Optional[Dict[str, Any]] = None
        self.page: Optional[int] = None
        self.limit: Optional[int] = None
        self.skip: Optional[int] = None
        self._stage = -1
        self._source = query

    def _advance(
        self, stage: str, transform: Callable[[Any], Any], **state: Any
    ) -> "QueryFeatures":
        index = STAGE_NAMES.index(stage)
        if index < self._stage:
            raise StageOrderError(
                f"Stage '{stage}' cannot run after '{STAGE_NAMES[self._stage]}'; "
                f"stages run in the order {', '.join(STAGE_NAMES)}"
            )
        # Re-running the current stage starts again from that stage's input
        source = self._source if index == self._stage else self.query
        advanced = copy.copy(self)
        advanced._source = source
        advanced.query = transform(source)
        advanced._stage = index
        for name, value in state.items():
            setattr(advanced, name, value)
        return advanced

    def filter(self) -> "QueryFeatures":
        """Apply every non-reserved parameter as a field criterion."""
        criteria = {
            key: copy.deepcopy(value)
            for key, value in self.params.items()
            if key not in RESERVED_PARAMS
        }
        criteria = rewrite_operators(criteria)
        return self._advance(
            "filter", lambda query: query.filter(criteria), criteria=criteria
        )

    def sort(self) -> "QueryFeatures":
        """Sort by the comma separated ``sort`` parameter, or the default sort."""
        requested = as_csv(self.params.get("sort"))
        sort_by = _split_fields(requested) if requested else ""
        if not sort_by:
            sort_by = _split_fields(self.default_sort.replace(" ", ","))
        return self._advance("sort", lambda query: query.sort(sort_by))

    def select_fields(self) -> "QueryFeatures":
        """Project the ``fields`` parameter, or hide the internal fields."""
        requested = as_csv(self.params.get("fields"))
        fields = _split_fields(requested) if requested else ""
        if not fields:
            fields = " ".join(f"-{name}" for name in self.hidden_fields)
        return self._advance(
            "select_fields", lambda query: query.select(fields) if fields else query
        )

    def paginate(self) -> "QueryFeatures":
        """Skip to the requested page and cap the page size."""
        page = to_positive_int(self.params.get("page"), self.default_page)
        limit = to_positive_int(self.params.get("limit"), self.default_limit)
        skip = (page - 1) * limit
        return self._advance(
            "paginate",
            lambda query: query.skip(skip).limit(limit),
            page=page,
            limit=limit,
            skip=skip,
        )

    def apply(self) -> "QueryFeatures":
        """Run every stage in order and return the final state."""
        features = self
        for stage in STAGES:
            features = stage(features)
        return features

    def __repr__(self) -> str:
        stage = STAGE_NAMES[self._stage] if self._stage >= 0 else None
        return f"QueryFeatures(params={dict(self.params)!r}, stage={stage!r})"


STAGES: Tuple[Callable[[QueryFeatures], QueryFeatures], ...] = (
    QueryFeatures.filter,
    QueryFeatures.sort,
    QueryFeatures.select_fields,
    QueryFeatures.paginate,
)
STAGE_NAMES = tuple(stage.__name__ for stage in STAGES)
