from __future__ import annotations

import asyncio
import logging
import time
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from tubelite.core.i18n import get_message, resolve_locale
from tubelite.core.response import error, reset_request_id, set_request_id
from tubelite.i18n.codes import ErrorCode

logger = logging.getLogger("tubelite.middleware")

# Routes that still answer while backend credentials are missing.
CONFIG_EXEMPT_PREFIXES = ("/api/v1/health", "/api/videos", "/docs", "/openapi.json")
# Streaming uploads are bounded by the storage client; legacy routes bound
# their own store calls and fall back to sample data.
TIMEOUT_EXEMPT_PREFIXES = ("/api/v1/videos/publish", "/api/v1/upload/asset", "/api/videos")


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        header_request_id = request.headers.get("X-Request-Id")
        trace_id = header_request_id.strip() if header_request_id else uuid4().hex
        request.state.trace_id = trace_id
        token = set_request_id(trace_id)
        try:
            response = await call_next(request)
        finally:
            reset_request_id(token)
        response.headers["X-Request-Id"] = trace_id
        return response


class LocaleMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.locale = resolve_locale(request.headers.get("Accept-Language"))
        return await call_next(request)


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = int((time.perf_counter() - start_time) * 1000)
        trace_id = getattr(request.state, "trace_id", "")
        logger.info(
            "request %s %s status=%s duration_ms=%s trace_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            trace_id,
        )
        return response


class RequestTimeoutMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, timeout_seconds: float) -> None:  # type: ignore[no-untyped-def]
        super().__init__(app)
        self._timeout = timeout_seconds

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if self._timeout <= 0 or request.url.path.startswith(TIMEOUT_EXEMPT_PREFIXES):
            return await call_next(request)
        try:
            return await asyncio.wait_for(call_next(request), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "request timed out %s %s after %ss",
                request.method,
                request.url.path,
                self._timeout,
            )
            locale = getattr(request.state, "locale", "en")
            code = ErrorCode.REQUEST_TIMEOUT
            return error(code.value, get_message(code, locale), status_code=code.http_status)


class ConfigurationGuardMiddleware(BaseHTTPMiddleware):
    """Blocks data routes with a retryable 503 while configuration is incomplete."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        context = getattr(request.app.state, "context", None)
        missing = context.config_errors if context is not None else []
        if not missing or request.url.path.startswith(CONFIG_EXEMPT_PREFIXES):
            return await call_next(request)
        locale = getattr(request.state, "locale", "en")
        code = ErrorCode.CONFIGURATION_ERROR
        return error(
            code.value,
            get_message(code, locale, missing=", ".join(missing)),
            data={"missing": missing, "retryable": True},
            status_code=code.http_status,
        )
