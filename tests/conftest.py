"""
Pytest configuration and fixtures.

The Gemini SDK client is replaced by an in-memory fake so no test touches
the network.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from file_search_proxy.api.routes import get_history, get_service  # noqa: E402
from file_search_proxy.core.config import Settings, get_settings  # noqa: E402
from file_search_proxy.main import app  # noqa: E402
from file_search_proxy.services.file_search_service import FileSearchService  # noqa: E402
from file_search_proxy.services.query_history import QueryHistory  # noqa: E402


def make_operation(name: str, done: bool = False, error: Optional[dict] = None, metadata=None, response=None):
    return SimpleNamespace(name=name, done=done, error=error, metadata=metadata, response=response)


class FakeDocuments:
    def __init__(self):
        self.by_store: Dict[str, List[Any]] = {}
        self.deleted: List[str] = []
        self.error: Optional[Exception] = None

    def list(self, parent: str):
        if self.error:
            raise self.error
        return iter(self.by_store.get(parent, []))

    def get(self, name: str):
        if self.error:
            raise self.error
        for docs in self.by_store.values():
            for doc in docs:
                if doc.name == name:
                    return doc
        raise not_found(name)

    def delete(self, name: str, config=None):
        if self.error:
            raise self.error
        self.deleted.append(name)


class FakeStores:
    def __init__(self):
        self.stores: Dict[str, Any] = {}
        self.documents = FakeDocuments()
        self.deleted: List[tuple] = []
        self.uploads: List[dict] = []
        self.upload_error: Optional[Exception] = None
        self.error: Optional[Exception] = None
        self._counter = 0

    def add(self, name: str, display_name: Optional[str]):
        store = SimpleNamespace(
            name=name,
            display_name=display_name,
            create_time=datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
            update_time=None,
        )
        self.stores[name] = store
        return store

    def create(self, config: dict):
        if self.error:
            raise self.error
        self._counter += 1
        return self.add(f"fileSearchStores/store-{self._counter}", config["display_name"])

    def list(self):
        if self.error:
            raise self.error
        return iter(list(self.stores.values()))

    def get(self, name: str):
        if self.error:
            raise self.error
        if name not in self.stores:
            raise not_found(name)
        return self.stores[name]

    def delete(self, name: str, config=None):
        if name not in self.stores:
            raise not_found(name)
        self.deleted.append((name, config))
        del self.stores[name]

    def upload_to_file_search_store(self, file: str, file_search_store_name: str, config=None):
        path = Path(file)
        self.uploads.append(
            {
                "file": file,
                "existed": path.exists(),
                "content": path.read_bytes() if path.exists() else None,
                "store": file_search_store_name,
                "config": config,
            }
        )
        if self.upload_error:
            raise self.upload_error
        return make_operation(f"{file_search_store_name}/upload/operations/op-{len(self.uploads)}")


class FakeOperations:
    def __init__(self):
        self.scripts: Dict[str, List[Any]] = {}
        self.calls: List[str] = []

    def script(self, name: str, *operations):
        self.scripts[name] = list(operations)

    def get(self, operation):
        self.calls.append(operation.name)
        script = self.scripts.get(operation.name)
        if not script:
            raise not_found(operation.name)
        return script.pop(0) if len(script) > 1 else script[0]


class FakeModels:
    def __init__(self):
        self.calls: List[dict] = []
        self.response: Any = SimpleNamespace(text="The answer.", candidates=[])
        self.error: Optional[Exception] = None

    def generate_content(self, model: str, contents: Any, config: Any):
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.error:
            raise self.error
        return self.response


class FakeGenaiClient:
    def __init__(self):
        self.file_search_stores = FakeStores()
        self.operations = FakeOperations()
        self.models = FakeModels()


def api_error(code: int, message: str, status: str = ""):
    from google.genai import errors

    body = {"error": {"code": code, "message": message, "status": status}}
    if code >= 500:
        return errors.ServerError(code, body)
    return errors.ClientError(code, body)


def not_found(name: str):
    return api_error(404, f"{name} not found", "NOT_FOUND")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        gemini_api_key="test-key",
        poll_interval_seconds=0.01,
        poll_timeout_seconds=5.0,
    )


@pytest.fixture
def fake_client() -> FakeGenaiClient:
    return FakeGenaiClient()


@pytest.fixture
def service(fake_client: FakeGenaiClient, settings: Settings) -> FileSearchService:
    return FileSearchService(fake_client, settings)


@pytest.fixture
def history() -> QueryHistory:
    return QueryHistory()


@pytest.fixture
def api(service: FileSearchService, settings: Settings, history: QueryHistory):
    app.dependency_overrides[get_service] = lambda: service
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_history] = lambda: history
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def sample_pdf_content() -> bytes:
    """Minimal PDF bytes for upload tests."""
    return b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n<< /Root 1 0 R >>\n%%EOF"
