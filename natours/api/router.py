"""
HTTP wiring for resource handlers.

``create_resource_router`` mounts the five handlers of a model on an
``APIRouter``:

    GET    ""        list       200
    GET    <alias>   list       200 (pre-filled parameters)
    POST   ""        create     201
    GET    /{id}     read       200
    PATCH  /{id}     update     200
    DELETE /{id}     delete     204, empty body

Example:
    ```python
    app.include_router(
        create_resource_router(
            tours,
            aliases={"/top-5-cheap": {"limit": "5", "sort": "-ratingsAverage,price"}},
        ),
        prefix="/api/v1/tours",
    )
    ```
"""

from typing import Any, Callable, Dict, List, Mapping, Optional

from fastapi import APIRouter, Body, Depends, Request, Response
from fastapi.responses import JSONResponse

from natours.api.handlers import ResourceHandlers
from natours.api.params import parse_query_params
from natours.config.base import BaseAppSettings
from natours.config.settings import get_settings
from natours.db.base import DocumentModel
from natours.schemas.response import ResourceResponse


def _no_filter() -> Dict[str, Any]:
    return {}


def _no_defaults() -> Dict[str, Any]:
    return {}


def _json(envelope: ResourceResponse, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=envelope.to_content())


def handlers_from_settings(
    model: DocumentModel,
    settings: Optional[BaseAppSettings] = None,
    populate: Any = None,
) -> ResourceHandlers:
    """Build handlers whose list defaults come from application settings."""
    settings = settings or get_settings()
    return ResourceHandlers(
        model,
        populate=populate,
        default_sort=settings.DEFAULT_SORT,
        hidden_fields=settings.HIDDEN_FIELDS,
        default_limit=settings.DEFAULT_PAGE_SIZE,
        strict_pagination=settings.STRICT_PAGINATION,
    )


def create_resource_router(
    model: DocumentModel,
    *,
    handlers: Optional[ResourceHandlers] = None,
    settings: Optional[BaseAppSettings] = None,
    populate: Any = None,
    aliases: Optional[Mapping[str, Mapping[str, Any]]] = None,
    base_filter: Optional[Callable[..., Mapping[str, Any]]] = None,
    body_defaults: Optional[Callable[..., Mapping[str, Any]]] = None,
    tags: Optional[List[str]] = None,
    prefix: str = "",
) -> APIRouter:
    """
    Create a router exposing the CRUD handlers of ``model``.

    Args:
        model: Document model capability
        handlers: Prebuilt handlers; built from ``settings`` when omitted
        settings: Settings providing list defaults
        populate: Populate instruction for the read handler
        aliases: Extra list routes, path -> parameters that override the
            client's query string
        base_filter: Dependency returning criteria that scope list queries
        body_defaults: Dependency returning values for create bodies that
            the client omitted
        tags: OpenAPI tags, defaults to the model name
        prefix: Router prefix

    Returns:
        APIRouter with the resource routes
    """
    if handlers is None:
        handlers = handlers_from_settings(model, settings, populate)
    scope = base_filter or _no_filter
    defaults = body_defaults or _no_defaults
    key = handlers.key

    router = APIRouter(prefix=prefix, tags=tags or [model.name])

    async def list_documents(
        request: Request, criteria: Mapping[str, Any] = Depends(scope)
    ) -> JSONResponse:
        params = parse_query_params(request.query_params.multi_items())
        return _json(await handlers.get_all(params, criteria))

    router.add_api_route(
        "",
        list_documents,
        methods=["GET"],
        name=f"list_{key}",
        summary=f"List {model.name} documents",
    )

    def alias_endpoint(preset: Mapping[str, Any]) -> Callable[..., Any]:
        async def list_alias(
            request: Request, criteria: Mapping[str, Any] = Depends(scope)
        ) -> JSONResponse:
            params = parse_query_params(request.query_params.multi_items())
            params.update(preset)
            return _json(await handlers.get_all(params, criteria))

        return list_alias

    # Registered before /{id} so alias paths are not read as ids
    for path, preset in (aliases or {}).items():
        router.add_api_route(
            path,
            alias_endpoint(dict(preset)),
            methods=["GET"],
            name=f"list_{key}_{path.strip('/').replace('-', '_')}",
            summary=f"List {model.name} documents ({path.strip('/')})",
        )

    async def create_document(
        body: Dict[str, Any] = Body(...),
        prefilled: Mapping[str, Any] = Depends(defaults),
    ) -> JSONResponse:
        data = {**prefilled, **body}
        return _json(await handlers.create_one(data), status_code=201)

    router.add_api_route(
        "",
        create_document,
        methods=["POST"],
        status_code=201,
        name=f"create_{key}",
        summary=f"Create a {model.name}",
    )

    async def read_document(id: str) -> JSONResponse:
        return _json(await handlers.get_one(id))

    router.add_api_route(
        "/{id}",
        read_document,
        methods=["GET"],
        name=f"get_{key}",
        summary=f"Get a {model.name} by id",
    )

    async def update_document(id: str, body: Dict[str, Any] = Body(...)) -> JSONResponse:
        return _json(await handlers.update_one(id, body))

    router.add_api_route(
        "/{id}",
        update_document,
        methods=["PATCH"],
        name=f"update_{key}",
        summary=f"Update a {model.name}",
    )

    async def delete_document(id: str) -> Response:
        await handlers.delete_one(id)
        return Response(status_code=204)

    router.add_api_route(
        "/{id}",
        delete_document,
        methods=["DELETE"],
        status_code=204,
        response_class=Response,
        name=f"delete_{key}",
        summary=f"Delete a {model.name}",
    )

    return router
