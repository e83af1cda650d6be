"""Pytest configuration and fixtures for Memorial Console tests."""

import copy
import importlib
import io
from collections import Counter, defaultdict
from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio
from beanie import init_beanie
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient
from openpyxl import Workbook

from memorial.config.schema import ExchangeConfig, MemorialConfig, SecretsConfig
from memorial.config.settings import Settings
from memorial.database import get_document_models, get_document_store
from memorial.services.exchange import ImportPipeline

# The package re-exports the `settings` proxy, which shadows the submodule attribute
settings_module = importlib.import_module("memorial.config.settings")


class InMemoryDocumentStore:
    """DocumentStore keeping collections in dicts, with call counting.

    ``fail(method, collection)`` makes that call raise, to exercise the
    pipeline's error isolation.
    """

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)
        self.calls: Counter = Counter()
        self._failures: dict[tuple[str, str], Exception] = {}

    def fail(self, method: str, collection: str, error: Exception | None = None) -> None:
        self._failures[(method, collection)] = error or RuntimeError("store unavailable")

    def _call(self, method: str, collection: str) -> None:
        self.calls[(method, collection)] += 1
        error = self._failures.get((method, collection))
        if error is not None:
            raise error

    def seed(self, collection: str, *records: dict[str, Any]) -> None:
        for record in records:
            self.collections[collection][record["id"]] = copy.deepcopy(record)

    def records(self, collection: str) -> list[dict[str, Any]]:
        return list(self.collections[collection].values())

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        self._call("get", collection)
        record = self.collections[collection].get(doc_id)
        return copy.deepcopy(record) if record is not None else None

    async def find(
        self, collection: str, filters: dict[str, Any], limit: int | None = None
    ) -> list[dict[str, Any]]:
        self._call("find", collection)
        matches = [
            copy.deepcopy(record)
            for record in self.collections[collection].values()
            if all(record.get(key) == value for key, value in filters.items())
        ]
        return matches[:limit] if limit else matches

    async def list_all(self, collection: str) -> list[dict[str, Any]]:
        return await self.find(collection, {})

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self._call("set", collection)
        record = copy.deepcopy(data)
        record.setdefault("id", doc_id)
        self.collections[collection][doc_id] = record

    async def update(self, collection: str, doc_id: str, changes: dict[str, Any]) -> bool:
        self._call("update", collection)
        record = self.collections[collection].get(doc_id)
        if record is None:
            return False
        record.update(copy.deepcopy(changes))
        return True

    async def delete(self, collection: str, doc_id: str) -> bool:
        self._call("delete", collection)
        return self.collections[collection].pop(doc_id, None) is not None


def make_settings(**exchange: Any) -> Settings:
    """Settings built from defaults, never from files or the environment."""
    config = MemorialConfig(exchange=ExchangeConfig(**exchange))
    return Settings(config=config, secrets=SecretsConfig())


@pytest.fixture(autouse=True)
def test_settings(monkeypatch) -> Settings:
    """Install default settings for every test."""
    current = make_settings()
    monkeypatch.setattr(settings_module, "_settings", current)
    return current


@pytest.fixture
def use_settings(monkeypatch) -> Callable[..., Settings]:
    """Install settings with the given exchange overrides."""

    def _use(**exchange: Any) -> Settings:
        current = make_settings(**exchange)
        monkeypatch.setattr(settings_module, "_settings", current)
        return current

    return _use


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def pipeline(store) -> ImportPipeline:
    return ImportPipeline(store)


@pytest.fixture
def make_xlsx() -> Callable[..., bytes]:
    """Build XLSX bytes from ``{sheet name: (headers, rows)}``."""

    def _make(sheets: dict[str, tuple[list[str], list[list[Any]]]]) -> bytes:
        wb = Workbook()
        wb.remove(wb.active)
        for name, (headers, rows) in sheets.items():
            ws = wb.create_sheet(title=name)
            ws.append(headers)
            for row in rows:
                ws.append(row)
        buf = io.BytesIO()
        wb.save(buf)
        return buf.getvalue()

    return _make


@pytest_asyncio.fixture
async def init_test_db():
    """Initialize Beanie against a fresh in-memory database."""
    db = AsyncMongoMockClient()["memorial_test"]
    await init_beanie(database=db, document_models=get_document_models())
    yield db


@pytest_asyncio.fixture
async def client(store, init_test_db) -> AsyncGenerator[AsyncClient, None]:
    """Async API client with the document store replaced by the in-memory one."""
    from memorial.main import app

    app.dependency_overrides[get_document_store] = lambda: store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
