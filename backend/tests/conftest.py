import sys
import time
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from jose import jwt

backend_dir = Path(__file__).resolve().parents[1]
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from wellquest.core.config import settings
from wellquest.main import create_app
from wellquest.services.providers import DataSourceError, DataSourceType
from wellquest.services.quest_configs import load_quest_config
from wellquest.services.quest_data import QuestDataService
from wellquest.services.quest_engine import QuestEngine
from wellquest.services.runtime import QuestRuntime
from wellquest.services.ui_configs import load_ui_config


class _MemoryRedis:
    def __init__(self):
        self._data: dict[str, tuple[str, float | None]] = {}
        self._hashes: dict[str, dict[str, str]] = {}

    def ping(self):
        return True

    def _now(self) -> float:
        return time.time()

    def _get_entry(self, key: str):
        v = self._data.get(key)
        if not v:
            return None
        value, exp = v
        if exp is not None and exp <= self._now():
            self._data.pop(key, None)
            return None
        return value, exp

    def get(self, key: str):
        entry = self._get_entry(key)
        return entry[0] if entry else None

    def set(self, key: str, value: str, ex: int | None = None):
        exp = (self._now() + int(ex)) if ex else None
        self._data[key] = (value, exp)
        return True

    def delete(self, key: str):
        self._data.pop(key, None)
        self._hashes.pop(key, None)
        return 1

    def hset(self, key: str, field: str | None = None, value: str | None = None, mapping: dict | None = None):
        h = self._hashes.setdefault(key, {})
        added = 0
        items = dict(mapping or {})
        if field is not None:
            items[field] = value
        for k, v in items.items():
            if k not in h:
                added += 1
            h[str(k)] = str(v)
        return added

    def hget(self, key: str, field: str):
        return self._hashes.get(key, {}).get(field)

    def hgetall(self, key: str):
        return dict(self._hashes.get(key, {}))

    def flushall(self):
        self._data.clear()
        self._hashes.clear()


class _BrokenRedis:
    def __getattr__(self, name):
        def _fail(*args, **kwargs):
            raise ConnectionError("redis down")

        return _fail


class StaticProvider:
    """In-memory provider; set ``error`` to make the next fetches fail."""

    source_type = DataSourceType.mock_csv

    def __init__(self, rows=None, url: str = "memory://rows"):
        self.rows = list(rows or [])
        self.url = url
        self.error: str | None = None
        self.calls = 0

    def fetch_rows(self):
        self.calls += 1
        if self.error:
            raise DataSourceError(self.error)
        return [dict(r) for r in self.rows]


def make_row(email, done: int = 0, *, name="Test User", points=None, total: int = 14) -> dict:
    row = {
        settings.csv_email_column: email,
        settings.csv_name_column: name,
        settings.csv_social_points_column: points,
    }
    for i in range(1, total + 1):
        row[f"{i}. task"] = 1 if i <= done else None
    return row


_mem_redis = _MemoryRedis()

import wellquest.core.redis_client as redis_client_module

redis_client_module.get_redis = lambda: _mem_redis

import wellquest.services.preferences as preferences_module

preferences_module.get_redis = lambda: _mem_redis

import wellquest.routers.health as health_router_module

health_router_module.get_redis = lambda: _mem_redis


@pytest.fixture(autouse=True)
def _clean_redis():
    _mem_redis.flushall()
    yield
    _mem_redis.flushall()


@pytest.fixture()
def broken_redis(monkeypatch):
    broken = _BrokenRedis()
    monkeypatch.setattr(preferences_module, "get_redis", lambda: broken)
    return broken


@pytest.fixture(scope="session")
def quest_config():
    return load_quest_config("default")


@pytest.fixture(scope="session")
def positions():
    result = load_ui_config("default")
    assert result.is_valid, result.errors
    return result.config.positions


@pytest.fixture()
def engine(quest_config, positions):
    return QuestEngine(quest_config, positions)


@pytest.fixture()
def provider():
    return StaticProvider(
        [
            make_row("viewer@leobit.com", 9, name="Viewer"),
            make_row("alice@leobit.com", 14, name="Alice", points=2),
            make_row("bob@leobit.com", 3, name="Bob"),
            make_row("idle@leobit.com", 0, name="Idle"),
            make_row("not-an-email", 4, name="Broken"),
        ]
    )


@pytest.fixture()
def runtime(provider):
    service = QuestDataService(provider, polling_interval_seconds=3600)
    rt = QuestRuntime(data_service=service)
    service.refresh()
    return rt


@pytest.fixture()
def client(runtime):
    app = create_app(runtime=runtime)
    return TestClient(app)


def make_token(sub: str, **claims) -> str:
    payload = {"sub": sub, "exp": int(time.time()) + 3600, **claims}
    if settings.jwt_audience:
        payload["aud"] = settings.jwt_audience
    if settings.jwt_issuer:
        payload["iss"] = settings.jwt_issuer
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


@pytest.fixture()
def auth_headers():
    token = make_token("viewer", email="viewer@leobit.com", name="Viewer")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def dev_mode(monkeypatch):
    monkeypatch.setattr(settings, "dev_mode", True)
    return settings


@pytest.fixture()
def admin_headers(monkeypatch):
    monkeypatch.setattr(settings, "admin_subs", "ops, lead")
    return {"Authorization": f"Bearer {make_token('ops')}"}
