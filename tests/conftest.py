from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Any, AsyncIterator, BinaryIO, Iterator, Optional

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from tubelite.config import Settings
from tubelite.core.context import AppContext
from tubelite.db import build_engine
from tubelite.main import create_app
from tubelite.models.base import Base
from tubelite.models.user_profile import UserProfile
from tubelite.models.video import Video
from tubelite.services.storage.base import ProgressCallback, ProgressTracker, StorageService

SYNC_SECRET = "sync-secret"
MEMORY_DB = "sqlite+aiosqlite:///:memory:"


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "DATABASE_URL": MEMORY_DB,
        "DB_AUTO_CREATE": True,
        "REDIS_URL": "redis://fake:6379/0",
        "JWT_SECRET": "test-jwt-secret",
        "AUTH_SYNC_SECRET": SYNC_SECRET,
        "MINIO_ENDPOINT": "minio.test:9000",
        "MINIO_ACCESS_KEY": "access",
        "MINIO_SECRET_KEY": "secret",
        "MINIO_BUCKET": "videos",
        "UPLOAD_MAX_SIZE_BYTES": 1024 * 1024,
        "LOG_LEVEL": "WARNING",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class _FakePubSub:
    def __init__(self, redis: "_FakeRedis") -> None:
        self._redis = redis
        self._queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self.channels: set[str] = set()
        self.closed = False

    async def subscribe(self, *channels: str) -> None:
        for channel in channels:
            self.channels.add(channel)
            self._redis.subscribers[channel].append(self)

    async def unsubscribe(self, *channels: str) -> None:
        for channel in channels or tuple(self.channels):
            self.channels.discard(channel)
            if self in self._redis.subscribers[channel]:
                self._redis.subscribers[channel].remove(self)

    async def get_message(
        self, ignore_subscribe_messages: bool = False, timeout: float = 0.0
    ) -> Optional[dict[str, Any]]:
        try:
            return await asyncio.wait_for(self._queue.get(), timeout=timeout or 0.001)
        except asyncio.TimeoutError:
            return None

    async def aclose(self) -> None:
        self.closed = True

    def deliver(self, channel: str, data: str) -> None:
        self._queue.put_nowait({"type": "message", "channel": channel, "data": data})


class _FakeRedis:
    """In-process stand-in for the subset of redis.asyncio the app uses."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.expiry: dict[str, Optional[int]] = {}
        self.published: list[tuple[str, str]] = []
        self.subscribers: dict[str, list[_FakePubSub]] = defaultdict(list)
        self.closed = False

    async def set(
        self, name: str, value: str, ex: Optional[int] = None, nx: bool = False
    ) -> Optional[bool]:
        if nx and name in self.store:
            return None
        self.store[name] = value
        self.expiry[name] = ex
        return True

    async def get(self, name: str) -> Optional[str]:
        return self.store.get(name)

    async def exists(self, *names: str) -> int:
        return sum(1 for name in names if name in self.store)

    async def delete(self, *names: str) -> int:
        removed = 0
        for name in names:
            if self.store.pop(name, None) is not None:
                removed += 1
            self.expiry.pop(name, None)
        return removed

    async def publish(self, channel: str, message: str) -> int:
        self.published.append((channel, message))
        listeners = list(self.subscribers[channel])
        for pubsub in listeners:
            pubsub.deliver(channel, message)
        return len(listeners)

    def pubsub(self) -> _FakePubSub:
        return _FakePubSub(self)

    async def aclose(self) -> None:
        self.closed = True


class _FakeStorage(StorageService):
    def __init__(self, fail_suffixes: tuple[str, ...] = ()) -> None:
        self.objects: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.fail_suffixes = fail_suffixes

    @property
    def provider(self) -> str:
        return "fake"

    def upload_file(
        self,
        object_name: str,
        data: BinaryIO,
        length: int,
        content_type: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        if object_name.endswith(self.fail_suffixes):
            raise OSError("connection reset by storage")
        tracker = ProgressTracker(length, on_progress)
        chunks = []
        while True:
            chunk = data.read(max(1, length // 4 or 1))
            if not chunk:
                break
            chunks.append(chunk)
            tracker.advance(len(chunk))
        tracker.finish()
        self.objects[object_name] = b"".join(chunks)
        return self.public_url(object_name)

    def presign_put_object(self, object_name: str, expires_in: int) -> str:
        return f"https://storage.test/upload/{object_name}?expires={expires_in}"

    def public_url(self, object_name: str) -> str:
        return f"https://storage.test/videos/{object_name}"

    def delete_file(self, object_name: str) -> None:
        self.objects.pop(object_name, None)
        self.deleted.append(object_name)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def fake_redis() -> _FakeRedis:
    return _FakeRedis()


@pytest.fixture
def fake_storage() -> _FakeStorage:
    return _FakeStorage()


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    engine = build_engine(MEMORY_DB)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


async def add_profile(
    db: AsyncSession, uid: str, display_name: Optional[str] = None, subscribers: int = 0
) -> UserProfile:
    profile = UserProfile(uid=uid, display_name=display_name or uid, subscribers=subscribers)
    db.add(profile)
    await db.commit()
    return profile


async def add_video(db: AsyncSession, **fields: Any) -> Video:
    values: dict[str, Any] = {
        "title": "Untitled",
        "description": "",
        "visibility": "public",
        "video_url": "https://cdn.test/v.mp4",
        "thumbnail_url": "https://cdn.test/t.jpg",
        "uploader_id": "creator",
        "uploader_name": "Creator",
        "duration": "10:00",
        "views": 0,
        "likes": 0,
        "dislikes": 0,
        "comments": 0,
    }
    values.update(fields)
    video = Video(**values)
    db.add(video)
    await db.commit()
    return video


@pytest.fixture
def app_context(
    settings: Settings, fake_redis: _FakeRedis, fake_storage: _FakeStorage
) -> AppContext:
    return AppContext(settings, redis=fake_redis, storage=fake_storage)


@pytest.fixture
def client(app_context: AppContext) -> Iterator[TestClient]:
    app = create_app(app_context)
    with TestClient(app) as test_client:
        yield test_client


def sign_in(
    client: TestClient, uid: str, display_name: Optional[str] = None
) -> dict[str, str]:
    response = client.post(
        "/api/v1/auth/sync",
        json={"uid": uid, "displayName": display_name or uid.title(), "email": f"{uid}@test"},
        headers={"X-Auth-Sync-Secret": SYNC_SECRET},
    )
    assert response.status_code == 200, response.text
    token = response.json()["data"]["accessToken"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_profile():  # type: ignore[no-untyped-def]
    return add_profile


@pytest.fixture
def make_video():  # type: ignore[no-untyped-def]
    return add_video


@pytest.fixture
def auth_headers():  # type: ignore[no-untyped-def]
    return sign_in


@pytest.fixture
def settings_factory():  # type: ignore[no-untyped-def]
    return make_settings


@pytest.fixture
def storage_factory():  # type: ignore[no-untyped-def]
    return _FakeStorage
