"""
tests.conftest

Shared fixtures: a throwaway SQLite document store per test and the wired services.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import datetime, timedelta
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine

from shelter_core.db.documents import DocumentStore
from shelter_core.db.errors import StoreUnavailable
from shelter_core.db.init_db import init_db
from shelter_core.db.session import create_engine, create_sessionmaker
from shelter_core.services.container import Services, build_services
from shelter_core.settings import Settings


class TickingClock:
    """Deterministic clock: every call is one second after the previous one."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 9, 0, 0)

    def __call__(self) -> datetime:
        self.now = self.now + timedelta(seconds=1)
        return self.now


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path}/shelter-test.db",
        pbkdf2_iterations=1000,
        repair_backoff_seconds=0,
        jwt_secret="test-secret-with-at-least-32-bytes!!",
    )


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest_asyncio.fixture
async def engine(settings: Settings) -> AsyncIterator[AsyncEngine]:
    engine = create_engine(settings)
    await init_db(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def store(engine: AsyncEngine) -> DocumentStore:
    return DocumentStore(create_sessionmaker(engine))


@pytest_asyncio.fixture
async def services(store: DocumentStore, settings: Settings, clock: TickingClock) -> AsyncIterator[Services]:
    services = build_services(store, settings, clock=clock)
    try:
        yield services
    finally:
        await services.repairer.drain()


class UnavailableStore(DocumentStore):
    """Store whose backend is unreachable: every call fails with `StoreUnavailable`."""

    def __init__(self) -> None:
        super().__init__(session_factory=None)  # type: ignore[arg-type]
        self.calls: list[str] = []

    def _down(self, op: str, collection: str) -> StoreUnavailable:
        self.calls.append(op)
        return StoreUnavailable(f"{op} on {collection!r} failed: store unavailable", collection=collection)

    async def add(self, collection, data, *, now):
        raise self._down("add", collection)

    async def get(self, collection, doc_id):
        raise self._down("get", collection)

    async def scan(self, collection, *, newest_first=True):
        raise self._down("scan", collection)

    async def find_equal(self, collection, field, value):
        raise self._down("find_equal", collection)

    async def update(self, collection, doc_id, patch, *, now):
        raise self._down("update", collection)

    async def put(self, collection, doc_id, data, *, now, merge=True):
        raise self._down("put", collection)

    async def delete(self, collection, doc_id):
        raise self._down("delete", collection)

    async def ping(self):
        raise self._down("ping", "*")


@pytest.fixture
def unavailable_store() -> UnavailableStore:
    return UnavailableStore()


class PartialOutageStore(DocumentStore):
    """Real store on which selected operations fail with `StoreUnavailable`.

    `failing` holds `(operation, collection)` pairs; a collection of `"*"` matches all.
    """

    def __init__(self, inner: DocumentStore, failing: set[tuple[str, str]]) -> None:
        super().__init__(inner._session_factory)
        self.failing = failing

    def _check(self, op: str, collection: str) -> None:
        if (op, collection) in self.failing or (op, "*") in self.failing:
            raise StoreUnavailable(f"{op} on {collection!r} failed: store unavailable", collection=collection)

    async def scan(self, collection, *, newest_first=True):
        self._check("scan", collection)
        return await super().scan(collection, newest_first=newest_first)

    async def find_equal(self, collection, field, value):
        self._check("find_equal", collection)
        return await super().find_equal(collection, field, value)

    async def put(self, collection, doc_id, data, *, now, merge=True):
        self._check("put", collection)
        return await super().put(collection, doc_id, data, now=now, merge=merge)


@pytest.fixture
def partial_outage(store: DocumentStore):
    def _make(*failing: tuple[str, str]) -> PartialOutageStore:
        return PartialOutageStore(store, set(failing))

    return _make
