"""
Pytest configuration and fixtures for Harbor API tests.
"""

from __future__ import annotations

import os

# Set test environment variables before importing config
os.environ["STORAGE_BACKEND"] = "memory"
os.environ.setdefault("ENVIRONMENT", "test")

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from harbor.kernel.errors import FetchError  # noqa: E402
from harbor.kernel.events import ChangeHub  # noqa: E402
from harbor.kernel.importer import TemplateFetcher  # noqa: E402
from harbor.kernel.service import SpecService  # noqa: E402
from harbor.kernel.storage import MemoryStorage  # noqa: E402
from harbor_api.main import app  # noqa: E402

TEMPLATES = {
    "https://templates.test/reports.json": {
        "type": "group",
        "group": {
            "id": "reports",
            "name": "Reports",
            "items": [{"id": "signups", "name": "Signups", "queries": [{"sql": "SELECT 1"}]}],
        },
    },
    "https://templates.test/orders.json": {
        "type": "item",
        "groupId": "reports",
        "item": {"id": "orders", "name": "Orders", "queries": [{"sql": "SELECT * FROM orders"}]},
    },
    "https://templates.test/plain-item.json": {
        "id": "audit",
        "name": "Audit",
        "queries": [{"sql": "SELECT * FROM audit_log"}],
    },
    "https://templates.test/full.json": {
        "groups": [{"id": "only", "name": "Only", "items": []}],
    },
    "https://templates.test/junk.json": {"hello": "world"},
}


class StubFetcher(TemplateFetcher):
    """Serves TEMPLATES; anything else is a 404."""

    async def fetch(self, url):
        if url not in TEMPLATES:
            raise FetchError(url, "Not Found", status=404)
        return TEMPLATES[url]


@pytest.fixture
def service() -> SpecService:
    return SpecService(MemoryStorage(), ChangeHub())


@pytest_asyncio.fixture
async def async_client(service):
    """Async HTTP client against the ASGI app."""
    app.state.service = service
    app.state.fetcher = StubFetcher()
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
