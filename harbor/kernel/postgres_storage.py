"""
PostgresStorage adapter for the Harbor kernel.

Implements the SpecStorage protocol using Postgres as the backend.
Documents live in the sidebar_specs table (see alembic/versions).
"""

from __future__ import annotations

import asyncpg

from harbor.kernel.storage import SpecStorage


class PostgresStorage(SpecStorage):
    """
    Postgres-based storage for sidebar documents.

    One row per project: sidebar_specs(project_id, document, updated_at).
    The document column is TEXT so the JSON is stored byte-for-byte as written.
    """

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def get(self, project_id: str) -> str | None:
        """Fetch the document for a project. Returns None if not found."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT document FROM sidebar_specs WHERE project_id = $1",
                project_id,
            )
            return row["document"] if row else None

    async def put(self, project_id: str, document: str) -> None:
        """Insert or replace the document in a single statement."""
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO sidebar_specs (project_id, document, updated_at)
                VALUES ($1, $2, now())
                ON CONFLICT (project_id)
                DO UPDATE SET document = EXCLUDED.document, updated_at = now()
                """,
                project_id,
                document,
            )

    async def exists(self, project_id: str) -> bool:
        async with self.pool.acquire() as conn:
            found = await conn.fetchval(
                "SELECT EXISTS(SELECT 1 FROM sidebar_specs WHERE project_id = $1)",
                project_id,
            )
            return bool(found)

    async def delete(self, project_id: str) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                "DELETE FROM sidebar_specs WHERE project_id = $1",
                project_id,
            )
