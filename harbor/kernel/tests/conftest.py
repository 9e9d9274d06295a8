"""
Harbor kernel test configuration.

Kernel tests use MemoryStorage and function-scoped fixtures.
PostgresStorage tests that need DATABASE_URL are skipped automatically when not set.
"""

from __future__ import annotations

import copy

import pytest

from harbor.kernel.events import ChangeHub
from harbor.kernel.service import SpecService
from harbor.kernel.storage import MemoryStorage
from harbor.kernel.types import SidebarSpec

SAMPLE_SPEC = {
    "groups": [
        {
            "id": "admin",
            "name": "Admin",
            "items": [
                {
                    "id": "users",
                    "name": "Users",
                    "icon": "users",
                    "queries": [
                        {
                            "sql": "SELECT id, email FROM users",
                            "results": "table",
                            "rowActions": [
                                {"label": "Open", "itemId": "user-detail", "params": {"id": ":row.id"}},
                            ],
                        }
                    ],
                    "primaryAction": {"label": "New user", "itemId": "user-new"},
                    "children": [
                        {
                            "id": "user-detail",
                            "name": "User",
                            "queries": [{"sql": "SELECT * FROM users WHERE id = ':id'"}],
                        },
                        {
                            "id": "user-new",
                            "name": "New user",
                            "queries": [
                                {
                                    "sql": "INSERT INTO users (email) VALUES (':email')",
                                    "results": None,
                                    "parameters": [{"name": "email", "label": "Email", "type": "text", "required": True}],
                                    "returnToParent": True,
                                }
                            ],
                        },
                    ],
                }
            ],
        },
        {
            "id": "reports",
            "name": "Reports",
            "items": [
                {"id": "signups", "name": "Signups", "queries": [{"sql": "SELECT 1"}]},
            ],
        },
        {
            "id": "tables",
            "name": "Tables",
            "itemsQuery": "SELECT schemaname AS schema, tablename AS name FROM pg_tables",
            "itemTemplate": {
                "id": ":schema.:name",
                "name": ":name",
                "queries": [{"sql": 'SELECT * FROM ":schema".":name"'}],
            },
        },
        {
            "id": "scripts",
            "name": "Scripts",
            "itemsFromState": "tabs",
            "userCreatable": True,
            "itemTemplate": {"id": ":id", "name": "Untitled", "queries": [{"sql": ""}]},
        },
    ]
}


def sample_spec_dict() -> dict:
    return copy.deepcopy(SAMPLE_SPEC)


@pytest.fixture
def spec_dict() -> dict:
    return sample_spec_dict()


@pytest.fixture
def spec() -> SidebarSpec:
    return SidebarSpec.from_dict(sample_spec_dict())


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def hub() -> ChangeHub:
    return ChangeHub()


@pytest.fixture
def service(storage, hub) -> SpecService:
    return SpecService(storage, hub)
