"""
Centralized exception handlers.

Resource handlers and persistence adapters only raise; this module is the
one place where a failure becomes a response body. Bodies come in two modes:

- development (``debug=True``): message, error list, ``details`` and ``stack``
- production: message and error list only; unexpected failures and
  non-operational errors are reported as "Something went very wrong"
"""

import logging
import traceback
from functools import partial
from http import HTTPStatus
from typing import Any, Dict, Iterable, List, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from natours.errors.exceptions import AppError
from natours.logging import Logger
from natours.schemas import ErrorInfo, ErrorResponse

GENERIC_ERROR_MESSAGE = "Something went very wrong"

# Leading location parts FastAPI adds to request validation errors
_REQUEST_LOCATIONS = frozenset({"body", "query", "path", "header", "cookie"})


def build_error_response(
    status_code: int,
    message: str,
    code: str = "ERROR",
    errors: Optional[List[ErrorInfo]] = None,
    details: Optional[Dict[str, Any]] = None,
    stack: Optional[str] = None,
) -> ErrorResponse:
    """Build an ``ErrorResponse``; the envelope status follows the HTTP status class."""
    return ErrorResponse(
        status="fail" if 400 <= status_code < 500 else "error",
        message=message,
        errors=errors or [ErrorInfo(code=code, message=message)],
        details=details,
        stack=stack,
    )


def _render(status_code: int, response: ErrorResponse) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(response, exclude_none=True),
    )


def _stack(exc: BaseException) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def field_errors(exc: AppError) -> List[ErrorInfo]:
    """One ``ErrorInfo`` per failing field, or the error itself when it has none."""
    fields = getattr(exc, "fields", None) or []
    if not fields:
        return [ErrorInfo(code=exc.code, message=exc.message)]
    return [
        ErrorInfo(
            code=item.get("code", exc.code),
            message=item.get("message", exc.message),
            field=item.get("field", ""),
        )
        for item in fields
    ]


def request_validation_errors(errors: Iterable[Dict[str, Any]]) -> List[ErrorInfo]:
    """
    Convert FastAPI validation errors, dropping the request location prefix.

    Examples:
        ``{"loc": ("body", "price"), "msg": "..."}`` reports field ``price``.
    """
    converted = []
    for error in errors:
        loc = list(error.get("loc", ()))
        if loc and loc[0] in _REQUEST_LOCATIONS:
            loc = loc[1:]
        converted.append(
            ErrorInfo(
                code="VALIDATION_ERROR",
                message=error.get("msg", "Validation error"),
                field=".".join(str(part) for part in loc),
            )
        )
    return converted


async def app_error_handler(
    request: Request,
    exc: AppError,
    logger: Optional[Logger] = None,
    debug: bool = False,
) -> JSONResponse:
    """
    Render an ``AppError``.

    Operational errors expose their message. Non-operational ones are logged
    and, outside debug mode, replaced by the generic message.
    """
    if not exc.is_operational:
        log = logger or logging.getLogger(__name__)
        log.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
        if not debug:
            return _render(
                exc.status_code,
                build_error_response(exc.status_code, GENERIC_ERROR_MESSAGE, exc.code),
            )

    response = build_error_response(
        exc.status_code,
        exc.message,
        exc.code,
        errors=field_errors(exc),
        details=exc.details if debug else None,
        stack=_stack(exc) if debug else None,
    )
    return _render(exc.status_code, response)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render FastAPI's request validation failures as a 422 ``fail`` body."""
    response = build_error_response(
        HTTPStatus.UNPROCESSABLE_ENTITY,
        "Request validation error",
        "VALIDATION_ERROR",
        errors=request_validation_errors(exc.errors()),
    )
    return _render(HTTPStatus.UNPROCESSABLE_ENTITY, response)


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
    logger: Optional[Logger] = None,
    debug: bool = False,
) -> JSONResponse:
    """Log an unexpected exception with its traceback and answer 500."""
    log = logger or logging.getLogger(__name__)
    stack = _stack(exc)
    log.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}\n{stack}")

    response = build_error_response(
        HTTPStatus.INTERNAL_SERVER_ERROR,
        str(exc) if debug else GENERIC_ERROR_MESSAGE,
        "INTERNAL_ERROR",
        stack=stack if debug else None,
    )
    return _render(HTTPStatus.INTERNAL_SERVER_ERROR, response)


def register_exception_handlers(
    app: FastAPI, logger: Optional[Logger] = None, debug: bool = False
) -> None:
    """
    Register the handlers on ``app``.

    The ``AppError`` handler covers every subclass. ``Exception`` catches the
    rest.
    """
    app.exception_handler(AppError)(partial(app_error_handler, logger=logger, debug=debug))
    app.exception_handler(RequestValidationError)(validation_exception_handler)
    app.exception_handler(Exception)(
        partial(unhandled_exception_handler, logger=logger, debug=debug)
    )
