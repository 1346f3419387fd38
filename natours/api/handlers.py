"""
Generic resource handlers.

``ResourceHandlers`` binds one document model to the five operations every
resource exposes: list, read, create, update and delete. Each handler takes
typed input, performs exactly one model operation and returns a
``ResourceResponse``. Failures are raised as ``AppError`` subclasses and
left to the centralized exception handlers.

Example:
    ```python
    handlers = ResourceHandlers(tours, populate="reviews")
    envelope = await handlers.get_all({"price": {"lt": "500"}})
    ```

The module-level ``get_all``, ``get_one``, ``create_one``, ``update_one`` and
``delete_one`` functions produce a single handler bound to a model, for call
sites that only need one of them.
"""

import logging
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence

from natours.api.features import (
    DEFAULT_HIDDEN_FIELDS,
    DEFAULT_LIMIT,
    DEFAULT_SORT,
    QueryFeatures,
)
from natours.db.base import DocumentModel
from natours.errors.exceptions import NotFoundError
from natours.logging import Logger
from natours.schemas.response import ResourceResponse

Handler = Callable[..., Awaitable[ResourceResponse]]


class ResourceHandlers:
    """
    The five CRUD handlers of one model.

    Attributes:
        model: Document model capability
        populate: Populate instruction applied by ``get_one``
        key: Envelope key, the lowercased model name
        strict_pagination: Whether requesting a page past the last document
            raises ``NotFoundError``
    """

    def __init__(
        self,
        model: DocumentModel,
        *,
        populate: Any = None,
        default_sort: str = DEFAULT_SORT,
        hidden_fields: Sequence[str] = DEFAULT_HIDDEN_FIELDS,
        default_limit: int = DEFAULT_LIMIT,
        strict_pagination: bool = False,
        logger: Optional[Logger] = None,
    ):
        self.model = model
        self.populate = populate
        self.default_sort = default_sort
        self.hidden_fields = tuple(hidden_fields)
        self.default_limit = default_limit
        self.strict_pagination = strict_pagination
        self.key = model.name.lower()
        self.logger = logger or logging.getLogger(f"{__name__}.{self.key}")

    def __repr__(self) -> str:
        return f"ResourceHandlers(model={self.model.name!r})"

    def features(
        self,
        params: Optional[Mapping[str, Any]] = None,
        base_filter: Optional[Mapping[str, Any]] = None,
    ) -> QueryFeatures:
        """Build the list pipeline over ``model.find(base_filter)``."""
        return QueryFeatures(
            self.model.find(base_filter or None),
            params,
            default_sort=self.default_sort,
            hidden_fields=self.hidden_fields,
            default_limit=self.default_limit,
        )

    async def get_all(
        self,
        params: Optional[Mapping[str, Any]] = None,
        base_filter: Optional[Mapping[str, Any]] = None,
    ) -> ResourceResponse:
        """
        List documents through the filter, sort, select and paginate stages.

        Args:
            params: Parsed request parameters
            base_filter: Criteria scoping the list, e.g. a parent id on a
                nested route

        Raises:
            NotFoundError: With strict pagination, when ``page`` points past
                the last matching document
        """
        params = params or {}
        features = self.features(params, base_filter).apply()

        if self.strict_pagination and "page" in params and features.skip:
            total = await self.features(params, base_filter).filter().query.count()
            if features.skip >= total:
                raise NotFoundError("This page does not exist")

        documents = await features.query.execute()
        self.logger.debug(
            f"Listed {len(documents)} {self.key} documents "
            f"(page={features.page}, limit={features.limit})"
        )
        return ResourceResponse(results=len(documents), data={self.key: documents})

    async def get_one(self, id: Any) -> ResourceResponse:
        """
        Fetch one document by id, populating configured paths.

        Raises:
            NotFoundError: If no document has this id
        """
        query = self.model.find_by_id(id)
        if self.populate:
            query = query.populate(self.populate)
        document = await query.execute()
        if document is None:
            raise NotFoundError(resource_type=self.model.name, resource_id=id)
        return ResourceResponse(data={self.key: document})

    async def create_one(self, body: Mapping[str, Any]) -> ResourceResponse:
        document = await self.model.create(body)
        self.logger.debug(f"Created {self.key}")
        return ResourceResponse(
            message=f"{self.model.name} created", data={self.key: document}
        )

    async def update_one(self, id: Any, body: Mapping[str, Any]) -> ResourceResponse:
        """
        Apply a partial update and return the updated document.

        Raises:
            NotFoundError: If no document has this id
        """
        document = await self.model.find_by_id_and_update(
            id, body, return_updated=True, run_validators=True
        )
        if document is None:
            raise NotFoundError(resource_type=self.model.name, resource_id=id)
        self.logger.debug(f"Updated {self.key} id={id}")
        return ResourceResponse(
            message=f"{self.model.name} updated", data={self.key: document}
        )

    async def delete_one(self, id: Any) -> ResourceResponse:
        """
        Delete a document by id.

        The returned envelope carries no data; the router sends it as an empty
        204 response.

        Raises:
            NotFoundError: If no document has this id, including one deleted
                by an earlier request
        """
        document = await self.model.find_by_id_and_delete(id)
        if document is None:
            raise NotFoundError(resource_type=self.model.name, resource_id=id)
        self.logger.debug(f"Deleted {self.key} id={id}")
        return ResourceResponse(data=None)


def get_all(model: DocumentModel, **options: Any) -> Handler:
    """Return the list handler of ``model``."""
    return ResourceHandlers(model, **options).get_all


def get_one(model: DocumentModel, populate: Any = None, **options: Any) -> Handler:
    """Return the read handler of ``model``, populating ``populate`` paths."""
    return ResourceHandlers(model, populate=populate, **options).get_one


def create_one(model: DocumentModel, **options: Any) -> Handler:
    return ResourceHandlers(model, **options).create_one


def update_one(model: DocumentModel, **options: Any) -> Handler:
    return ResourceHandlers(model, **options).update_one


def delete_one(model: DocumentModel, **options: Any) -> Handler:
    return ResourceHandlers(model, **options).delete_one
