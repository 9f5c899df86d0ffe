"""
TaskHub Test Suite — Shared fixtures and configuration.

Run:  pytest tests/ -v
"""

from __future__ import annotations

import fnmatch
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

from taskhub.db.base import engine_registry
from taskhub.db.session import init_db
from taskhub.db.store import DataStore, Filter, SqlDataStore
from taskhub.engine.cache import RedisCache, TieredCache
from taskhub.engine.errors import DataStoreError


# ---------------------------------------------------------------------------
# Environment setup — avoid touching real Redis / Postgres in unit tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_globals():
    """Reset global singletons between tests."""
    import taskhub.engine.config as cfg_mod
    from taskhub.engine.logging import shutdown_logging

    cfg_mod._config = None
    yield
    cfg_mod._config = None
    shutdown_logging()


class FakeRedisClient:
    """In-memory stand-in for the subset of redis.Redis the cache uses."""

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.expiry: Dict[str, Optional[int]] = {}
        self.closed = False

    def ping(self) -> bool:
        return True

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        self.data[key] = value
        self.expiry[key] = ex
        return True

    def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.expiry.pop(key, None)
        return removed

    def scan_iter(self, match: str = "*", count: int = 100):
        return iter([k for k in list(self.data) if fnmatch.fnmatchcase(k, match)])

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_redis_client():
    return FakeRedisClient()


@pytest.fixture
def durable_cache(fake_redis_client):
    """A RedisCache wired to the in-memory fake client."""
    cache = RedisCache(redis_url="redis://localhost:6379/0", prefix="test:dashboard_cache:")
    cache._client = fake_redis_client
    cache._available = True
    return cache


class FakeClock:
    """Manually advanced time source for TTL tests."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


# ---------------------------------------------------------------------------
# Database fixtures — SQLite file databases through the real SqlDataStore
# ---------------------------------------------------------------------------

@pytest.fixture
def session_factory(tmp_path):
    name = f"test-{uuid.uuid4().hex[:8]}"
    factory = init_db(f"sqlite:///{tmp_path / 'taskhub.db'}", create_tables=True, name=name)
    yield factory
    engine_registry.dispose(name)


@pytest.fixture
def sql_store(session_factory):
    return SqlDataStore(session_factory)


class CountingStore(DataStore):
    """
    DataStore wrapper that records every call and can be told to fail
    on selected tables.
    """

    def __init__(self, inner: DataStore):
        self.inner = inner
        self.calls: List[Tuple[str, str, Tuple[Any, ...]]] = []
        self.fail_on: set = set()

    def _record(self, op: str, table: str, filters: Sequence[Any] = ()) -> None:
        self.calls.append((op, table, tuple(filters)))
        if table in self.fail_on:
            raise DataStoreError(f"Data store {op} on {table} failed", table=table, operation=op)

    def count(self, op: str, table: str, filtered: Optional[bool] = None) -> int:
        return sum(
            1 for o, t, f in self.calls
            if o == op and t == table and (filtered is None or bool(f) == filtered)
        )

    def reset(self) -> None:
        self.calls.clear()

    async def select(self, table, columns=("*",), filters=(), order=()):
        self._record("select", table, filters)
        return await self.inner.select(table, columns, filters, order)

    async def insert(self, table, rows):
        self._record("insert", table)
        return await self.inner.insert(table, rows)

    async def update(self, table, patch, filters):
        self._record("update", table, filters)
        return await self.inner.update(table, patch, filters)

    async def delete(self, table, filters):
        self._record("delete", table, filters)
        return await self.inner.delete(table, filters)


@pytest.fixture
def store(sql_store):
    return CountingStore(sql_store)


@pytest.fixture
def dashboard(store, clock):
    from taskhub.services.dashboard import DashboardDataManager

    return DashboardDataManager(store, TieredCache(clock=clock))


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------

class Seeder:
    """Inserts rows directly through the store, bypassing the services."""

    def __init__(self, store: DataStore):
        self._store = store

    async def member(self, email: str, full_name: Optional[str] = None, **fields: Any) -> Dict[str, Any]:
        (row,) = await self._store.insert(
            "members", [{"email": email, "full_name": full_name, **fields}]
        )
        return row

    async def project(self, title: str, lead_id: Optional[str] = None,
                      members: Sequence[str] = (), **fields: Any) -> Dict[str, Any]:
        (row,) = await self._store.insert("projects", [{"title": title, "lead_id": lead_id, **fields}])
        if members:
            await self._store.insert(
                "project_members", [{"project_id": row["id"], "member_id": m} for m in members]
            )
        return row

    async def task(self, title: str, project_id: Optional[str], created_by: Optional[str] = None,
                   assignees: Sequence[str] = (), **fields: Any) -> Dict[str, Any]:
        (row,) = await self._store.insert(
            "tasks", [{"title": title, "project_id": project_id, "created_by": created_by, **fields}]
        )
        if assignees:
            await self._store.insert(
                "task_assign", [{"task_id": row["id"], "member_id": m} for m in assignees]
            )
        return row

    async def project_progress(self, project_id: str) -> int:
        rows = await self._store.select("projects", ("progress",), [Filter.eq("id", project_id)])
        return rows[0]["progress"]


@pytest.fixture
def seed(sql_store):
    return Seeder(sql_store)


@pytest.fixture
def config_file(tmp_path):
    """Write a taskhub.yaml pointing at a SQLite file with Redis disabled."""
    db_path = tmp_path / "cli.db"
    path = tmp_path / "taskhub.yaml"
    path.write_text(
        "app:\n"
        "  name: TaskHubTest\n"
        "  environment: dev\n"
        "database:\n"
        f"  url: sqlite:///{db_path}\n"
        "redis:\n"
        "  enabled: false\n"
        "logging:\n"
        "  level: WARNING\n"
        f"  directory: {tmp_path / 'logs'}\n"
        "  structured: false\n",
        encoding="utf-8",
    )
    return path
