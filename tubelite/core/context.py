from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from fastapi import FastAPI
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from tubelite.config import Settings
from tubelite.core.exceptions import ConfigurationError

if TYPE_CHECKING:
    from tubelite.services.storage.base import StorageService

logger = logging.getLogger("tubelite.context")

_DATABASE_KEYS = {"DATABASE_URL"}
_REDIS_KEYS = {"REDIS_URL"}
_STORAGE_KEYS = {"MINIO_ENDPOINT", "MINIO_ACCESS_KEY", "MINIO_SECRET_KEY", "MINIO_BUCKET"}


class AppContext:
    """Process-wide resources owned by one application instance.

    Created once by ``create_app``, started by the lifespan handler and torn
    down on shutdown. Request handlers reach it through ``get_context``;
    nothing else holds these clients globally. Resources passed to the
    constructor are used as-is and their settings are not required.
    """

    def __init__(
        self,
        settings: Settings,
        engine: Optional[AsyncEngine] = None,
        redis: Optional[Redis] = None,
        storage: Optional["StorageService"] = None,
    ) -> None:
        self.settings = settings
        self.engine = engine
        self.redis = redis
        self.storage = storage
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self.config_errors: list[str] = []
        self._owns_engine = engine is None
        self._owns_redis = redis is None

    def _collect_config_errors(self) -> list[str]:
        provided: set[str] = set()
        if self.engine is not None:
            provided |= _DATABASE_KEYS
        if self.redis is not None:
            provided |= _REDIS_KEYS
        if self.storage is not None:
            provided |= _STORAGE_KEYS
        return [key for key in self.settings.missing_settings() if key not in provided]

    async def startup(self) -> None:
        from tubelite.db import build_engine
        from tubelite.core.redis import build_redis_client
        from tubelite.services.storage.factory import get_storage_service

        self.config_errors = self._collect_config_errors()
        if self.config_errors:
            logger.error("configuration incomplete, missing: %s", ", ".join(self.config_errors))

        if self.engine is None and self.settings.DATABASE_URL:
            self.engine = build_engine(self.settings.DATABASE_URL)
        if self.engine is not None:
            self.session_factory = async_sessionmaker(self.engine, expire_on_commit=False)
            if self.settings.DB_AUTO_CREATE:
                await self.create_schema()

        if self.redis is None and self.settings.REDIS_URL:
            self.redis = build_redis_client(self.settings.REDIS_URL)

        if self.storage is None and not set(self.config_errors) & _STORAGE_KEYS:
            try:
                self.storage = get_storage_service(self.settings)
            except RuntimeError as exc:
                logger.error("storage init failed: %s", exc)
                self.config_errors.append("STORAGE_PROVIDER")

    async def create_schema(self) -> None:
        from tubelite.models.base import Base
        import tubelite.models  # noqa: F401

        if self.engine is None:
            raise ConfigurationError(["DATABASE_URL"])
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def shutdown(self) -> None:
        if self.redis is not None and self._owns_redis:
            await self.redis.aclose()
        if self.engine is not None and self._owns_engine:
            await self.engine.dispose()
        logger.info("application context closed")

    def require_session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self.session_factory is None:
            raise ConfigurationError(["DATABASE_URL"])
        return self.session_factory

    def require_redis(self) -> Redis:
        if self.redis is None:
            raise ConfigurationError(["REDIS_URL"])
        return self.redis

    def require_storage(self) -> "StorageService":
        if self.storage is None:
            raise ConfigurationError(sorted(_STORAGE_KEYS))
        return self.storage


def get_context(app: FastAPI) -> AppContext:
    context: Optional[AppContext] = getattr(app.state, "context", None)
    if context is None:
        raise ConfigurationError(["APP_CONTEXT"])
    return context
