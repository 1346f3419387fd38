"""
Request logging middleware for FastAPI applications.

Logs one line per request in the form ``METHOD path status duration ms`` and
optionally reports the duration in a response header.
"""

import time
from typing import List, Optional

from fastapi import FastAPI, Request, Response
from pydantic import BaseModel, Field
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from natours.logging import Logger, ensure_logger

LOG_LEVELS = ("debug", "info", "warning")


class RequestLoggingConfig(BaseModel):
    """Configuration for request logging middleware."""

    header_name: Optional[str] = Field(
        default=None,
        description="Header reporting the response time, or None to skip it",
    )
    exclude_paths: List[str] = Field(
        default_factory=list, description="Path prefixes that are not logged"
    )
    log_level: str = Field(default="info", description="Level of the request lines")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware logging the method, path, status and duration of each request.
    """

    def __init__(
        self,
        app: ASGIApp,
        header_name: Optional[str] = None,
        exclude_paths: Optional[List[str]] = None,
        log_level: str = "info",
        logger: Optional[Logger] = None,
    ):
        """
        Initialize the request logging middleware.

        Args:
            app: The ASGI application
            header_name: Header for the response time, None to disable
            exclude_paths: Path prefixes to skip
            log_level: One of debug, info or warning; anything else logs at info
            logger: Logger receiving the request lines
        """
        super().__init__(app)
        self.header_name = header_name
        self.exclude_paths = exclude_paths or []
        self.log_level = log_level.lower() if log_level.lower() in LOG_LEVELS else "info"
        self.logger = ensure_logger(logger, __name__)

    def should_process(self, request: Request) -> bool:
        path = request.url.path
        return not any(path.startswith(prefix) for prefix in self.exclude_paths)

    def log_request(self, method: str, path: str, status_code: int, time_ms: float) -> None:
        getattr(self.logger, self.log_level)(
            f"{method} {path} {status_code} {time_ms:.3f} ms",
            extra={
                "method": method,
                "path": path,
                "status_code": status_code,
                "duration_ms": round(time_ms, 3),
            },
        )

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not self.should_process(request):
            return await call_next(request)

        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        if self.header_name:
            response.headers[self.header_name] = f"{elapsed_ms:.2f}ms"
        self.log_request(request.method, request.url.path, response.status_code, elapsed_ms)
        return response


def configure_request_logging(
    app: FastAPI,
    config: Optional[RequestLoggingConfig] = None,
    logger: Optional[Logger] = None,
    **kwargs,
) -> None:
    """
    Add request logging middleware to a FastAPI application.

    Args:
        app: The FastAPI application instance
        config: A RequestLoggingConfig instance with settings
        logger: Logger receiving the request lines
        **kwargs: Additional settings to override config values

    Example:
        ```python
        configure_request_logging(app, header_name="X-Response-Time")
        ```
    """
    if config is None:
        config = RequestLoggingConfig()

    params = config.model_dump()
    params.update({k: v for k, v in kwargs.items() if v is not None})
    app.add_middleware(RequestLoggingMiddleware, logger=logger, **params)
