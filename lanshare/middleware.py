"""
Middleware for lanshare
"""

import logging
import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


def get_client_ip(request: Request) -> str:
    """Return the peer address of the request"""
    if request.client and request.client.host:
        return request.client.host
    return "-"


def access_level(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class AccessLogMiddleware(BaseHTTPMiddleware):
    """One log line per request: method, path, status, duration and client"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.log(
                access_level(status_code),
                f"ACCESS {request.method} {request.url.path} {status_code} "
                f"{elapsed_ms:.2f}ms {get_client_ip(request)}",
            )


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """Turn unexpected exceptions into a plain-text 500"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {e}")
            return PlainTextResponse("Internal server error", status_code=500)


def setup_middleware(app: FastAPI):
    """Setup all middleware for the application"""

    # Added first, so it runs inside the access log
    app.add_middleware(ExceptionHandlerMiddleware)
    app.add_middleware(AccessLogMiddleware)

    logger.info("Middleware setup complete")
