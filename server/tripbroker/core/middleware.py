"""HTTP middleware for request correlation, access logging and request metrics."""

import logging
import time
import uuid
from typing import Callable, Optional

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match
from starlette.types import ASGIApp

from .config import Settings, settings
from .observability import metrics_collector

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
MAX_LOGGED_BODY = 1000


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Correlates every log line of a request with one request id.

    The id comes from the X-Request-ID header when the caller sends one and
    is generated otherwise. It is bound to the structlog context for the
    duration of the request and echoed back in the response.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def route_template(request: Request) -> str:
    """
    Path pattern of the matched route, e.g. /v1/booking/get.

    Falls back to the raw path for unmatched requests so 404 probes are
    still counted.
    """
    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", request.url.path)
    return request.url.path


class AccessLogMiddleware(BaseHTTPMiddleware):
    """
    Logs each request once on completion and records request metrics.

    Server errors are logged at error level, client errors at warning.
    Probe and scrape paths are neither logged nor measured.
    """

    def __init__(
        self,
        app: ASGIApp,
        log_request_body: bool = False,
        skip_paths: Optional[frozenset[str]] = None,
    ):
        super().__init__(app)
        self.log_request_body = log_request_body
        self.skip_paths = skip_paths or frozenset({"/health", "/ready", "/metrics", "/favicon.ico"})

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.skip_paths:
            return await call_next(request)

        fields = {
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else "unknown",
        }
        if self.log_request_body and request.method == "POST":
            body = await request.body()
            if body:
                fields["request_body"] = body[:MAX_LOGGED_BODY].decode("utf-8", errors="replace")

        started = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - started

        metrics_collector.record_request(request.method, route_template(request), response.status_code, duration)

        fields["status_code"] = response.status_code
        fields["duration_ms"] = round(duration * 1000, 2)

        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(level, f"{request.method} {request.url.path} -> {response.status_code}", extra=fields)

        return response


def setup_middleware(app, enable_access_log: bool = True, config: Settings = settings) -> None:
    """
    Install request middleware on the application.

    Args:
        app: FastAPI application instance
        enable_access_log: Whether to log and measure each request
        config: Settings; request bodies are logged only in debug mode
    """
    # Last added runs first, so the request id is bound before access logging
    if enable_access_log:
        app.add_middleware(AccessLogMiddleware, log_request_body=config.debug)

    app.add_middleware(RequestIDMiddleware)
