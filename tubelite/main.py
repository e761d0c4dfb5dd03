from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from tubelite.api.legacy import router as legacy_router
from tubelite.api.v1.router import api_router
from tubelite.config import settings as default_settings
from tubelite.core.context import AppContext
from tubelite.core.exceptions import BusinessError, ConfigurationError
from tubelite.core.i18n import get_message
from tubelite.core.middleware import (
    ConfigurationGuardMiddleware,
    LocaleMiddleware,
    LoggingMiddleware,
    RequestIDMiddleware,
    RequestTimeoutMiddleware,
)
from tubelite.core.response import error
from tubelite.i18n.codes import ErrorCode

logger = logging.getLogger("tubelite")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    context = context or AppContext(default_settings)
    settings = context.settings
    _configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await context.startup()
        try:
            yield
        finally:
            await context.shutdown()

    app = FastAPI(title="TubeLite API", version="0.1.0", lifespan=lifespan)
    app.state.context = context
    app.include_router(api_router)
    if settings.LEGACY_API_ENABLED:
        app.include_router(legacy_router)

    # last added runs first
    app.add_middleware(ConfigurationGuardMiddleware)
    app.add_middleware(RequestTimeoutMiddleware, timeout_seconds=settings.REQUEST_TIMEOUT_SECONDS)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(LocaleMiddleware)
    app.add_middleware(LoggingMiddleware)

    @app.exception_handler(BusinessError)
    async def business_error_handler(request: Request, exc: BusinessError) -> JSONResponse:
        locale = getattr(request.state, "locale", "en")
        message = get_message(exc.code, locale, **exc.kwargs)
        return error(exc.code.value, message, status_code=exc.code.http_status)

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        locale = getattr(request.state, "locale", "en")
        code = ErrorCode.CONFIGURATION_ERROR
        return error(
            code.value,
            get_message(code, locale, missing=", ".join(exc.missing)),
            data={"missing": exc.missing, "retryable": True},
            status_code=code.http_status,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        locale = getattr(request.state, "locale", "en")
        code = ErrorCode.INVALID_PARAMETER
        fields = [".".join(str(part) for part in item.get("loc", ())) for item in exc.errors()]
        return error(
            code.value,
            get_message(code, locale, detail=", ".join(fields)),
            data={"errors": fields},
            status_code=code.http_status,
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        trace_id = getattr(request.state, "trace_id", None) or uuid4().hex
        logger.error(
            "unhandled error %s %s trace_id=%s",
            request.method,
            request.url.path,
            trace_id,
            exc_info=exc,
        )
        locale = getattr(request.state, "locale", "en")
        code = ErrorCode.INTERNAL_ERROR
        response = error(
            code.value,
            get_message(code, locale),
            data={"traceId": trace_id, "reload": True},
            status_code=code.http_status,
            trace_id=trace_id,
        )
        response.headers["X-Request-Id"] = trace_id
        return response

    return app


app = create_app()
