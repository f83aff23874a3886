"""
Custom middleware for the application.
"""

import time
import uuid
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match

from opsportal.core.context import clear_request_context, set_request_context
from opsportal.core.metrics import (
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
)

logger = structlog.get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add request context.

    Sets:
    - Request ID (for log correlation)
    - Trace ID (for distributed tracing)
    - Request timing
    - Context variables for structured logging
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        request_id = str(uuid.uuid4())
        trace_id = request.headers.get("X-Trace-ID", str(uuid.uuid4()))

        request.state.request_id = request_id
        request.state.trace_id = trace_id
        request.state.tenant_id = None
        request.state.user_id = None

        set_request_context(request_id=request_id, trace_id=trace_id)

        start_time = time.perf_counter()

        logger.info(
            "request_started",
            method=request.method,
            path=request.url.path,
            client_host=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)

            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Trace-ID"] = trace_id
            response.headers["X-Process-Time"] = str(duration_ms)

            logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=duration_ms,
                user_id=request.state.user_id,
                tenant_id=request.state.tenant_id,
            )

            return response

        except Exception as e:
            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)

            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                duration_ms=duration_ms,
                error=str(e),
                exc_info=True,
            )
            raise

        finally:
            clear_request_context()


class TenantHostMiddleware(BaseHTTPMiddleware):
    """
    Capture the host the caller addressed.

    Behind a proxy the original host arrives in ``X-Forwarded-Host`` (first
    entry wins). Resolution itself happens in the ``get_current_tenant``
    dependency.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        forwarded = request.headers.get("x-forwarded-host", "")
        host = forwarded.split(",")[0].strip() or request.headers.get("host", "")
        request.state.tenant_host = host

        response = await call_next(request)
        if host:
            response.headers["X-Tenant-Host"] = host
        return response


def route_template(request: Request) -> str:
    """
    Path template of the route matching the request.

    Raw paths would put ids into metric labels.
    """
    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", request.url.path)
    return "unmatched"


async def track_http_metrics(request: Request, call_next: Callable) -> Response:
    """
    Middleware to track HTTP metrics.

    Records:
    - Request count by endpoint and status
    - Request duration histogram
    - Requests in progress gauge
    """
    endpoint = route_template(request)
    method = request.method

    http_requests_in_progress.labels(method=method, endpoint=endpoint).inc()
    start_time = time.perf_counter()
    status_code = 500

    try:
        response = await call_next(request)
        status_code = response.status_code
        return response

    finally:
        http_request_duration_seconds.labels(
            method=method,
            endpoint=endpoint,
        ).observe(time.perf_counter() - start_time)
        http_requests_total.labels(
            method=method,
            endpoint=endpoint,
            status_code=status_code,
        ).inc()
        http_requests_in_progress.labels(method=method, endpoint=endpoint).dec()
