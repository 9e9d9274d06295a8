"""
Tests for PostgresStorage adapter.

Requires a running Postgres instance with the sidebar_specs table.
"""

import os
import uuid

import asyncpg
import pytest

from harbor.kernel.postgres_storage import PostgresStorage
from harbor.kernel.service import SpecService
from harbor.kernel.types import Group


@pytest.fixture
async def db_pool():
    """Create a connection pool for tests."""
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        pytest.skip("DATABASE_URL not set")

    pool = await asyncpg.create_pool(database_url)
    yield pool
    await pool.close()


@pytest.fixture
async def storage(db_pool):
    """Create a PostgresStorage instance."""
    return PostgresStorage(db_pool)


class TestPostgresStorage:
    """Test PostgresStorage CRUD operations."""

    @pytest.mark.asyncio
    async def test_put_and_get(self, storage):
        project_id = str(uuid.uuid4())
        document = '{"groups": []}'

        await storage.put(project_id, document)
        assert await storage.get(project_id) == document
        assert await storage.exists(project_id)

        await storage.delete(project_id)

    @pytest.mark.asyncio
    async def test_get_nonexistent(self, storage):
        project_id = str(uuid.uuid4())
        assert await storage.get(project_id) is None
        assert not await storage.exists(project_id)

    @pytest.mark.asyncio
    async def test_update_existing(self, storage):
        project_id = str(uuid.uuid4())

        await storage.put(project_id, "v1")
        await storage.put(project_id, "v2")
        assert await storage.get(project_id) == "v2"

        await storage.delete(project_id)

    @pytest.mark.asyncio
    async def test_delete(self, storage):
        project_id = str(uuid.uuid4())
        await storage.put(project_id, "{}")
        await storage.delete(project_id)
        assert await storage.get(project_id) is None


class TestPostgresWithService:
    """SpecService backed by Postgres."""

    @pytest.mark.asyncio
    async def test_add_group_round_trip(self, storage):
        project_id = str(uuid.uuid4())
        service = SpecService(storage)

        await service.add_group(project_id, Group(id="admin", name="Admin"))
        spec = await service.get_specification(project_id)

        assert spec.get_group("admin") is not None
        assert await service.has_stored_specification(project_id)

        await storage.delete(project_id)


def test_storage_does_not_own_the_pool():
    """The pool belongs to harbor_api.db; the adapter never closes it."""
    assert not hasattr(PostgresStorage, "close")
