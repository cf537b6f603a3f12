"""Shared fixtures for the storefront tests."""

from pathlib import Path
from typing import Any, Optional

import pytest

from storefront.core.settings import EtsySettings, StorageBackend
from storefront.storage.base import TokenStore
from storefront.storage.cookie import CookieTokenStore
from storefront.storage.file import FileTokenStore
from storefront.storage.redis_store import RedisTokenStore

NOW = 1_750_000_000_000


class FakeClock:
    """Epoch-millisecond clock the tests move by hand."""

    def __init__(self, now: int = NOW) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeRedis:
    """In-memory stand-in for the handful of Redis commands the store uses."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def setex(self, key: str, ttl: int, value: str) -> bool:
        self.data[key] = value
        self.ttls[key] = ttl
        return True

    def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    def ping(self) -> bool:
        return True


@pytest.fixture
def settings(tmp_path: Path) -> EtsySettings:
    """Settings for testing."""
    return EtsySettings(
        _env_file=None,
        etsy_api_key="test_api_key",
        etsy_shop_id="12345",
        site_url="http://localhost:8000",
        environment="development",
        token_storage=StorageBackend.FILE,
        token_dir=str(tmp_path),
        jwt_secret="test_secret_key",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture(params=["file", "cookie", "redis"])
def store(request: Any, tmp_path: Path, clock: FakeClock, fake_redis: FakeRedis) -> TokenStore:
    """One token store per backend; every contract test runs against all three."""
    if request.param == "file":
        return FileTokenStore(tmp_path, clock=clock)
    if request.param == "cookie":
        return CookieTokenStore({}, secret="test_secret_key", secure=False, clock=clock)
    return RedisTokenStore(fake_redis, key_prefix="test", clock=clock)
