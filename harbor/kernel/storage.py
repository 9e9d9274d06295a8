"""
Harbor Kernel: Document Storage

Raw storage for a project's sidebar document (JSON text), keyed by project id.
Parsing, validation, and change notification live in SpecService; adapters
only move bytes.

Implementations:
  MemoryStorage    tests
  FileStorage      admin.json inside each project directory
  PostgresStorage  sidebar_specs table (harbor.kernel.postgres_storage)
"""

from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path

# ---------------------------------------------------------------------------
# Storage protocol
# ---------------------------------------------------------------------------


class SpecStorage:
    """
    Abstract storage interface.
    Implement with Postgres or the filesystem for production, in-memory for tests.
    """

    async def get(self, project_id: str) -> str | None:
        """Fetch the stored document. Returns None if the project has none."""
        raise NotImplementedError

    async def put(self, project_id: str, document: str) -> None:
        """Replace the stored document atomically."""
        raise NotImplementedError

    async def exists(self, project_id: str) -> bool:
        return await self.get(project_id) is not None

    async def delete(self, project_id: str) -> None:
        """Remove the stored document, reverting the project to the default spec."""
        raise NotImplementedError


class MemoryStorage(SpecStorage):
    """In-memory storage for testing."""

    def __init__(self) -> None:
        self.documents: dict[str, str] = {}

    async def get(self, project_id: str) -> str | None:
        return self.documents.get(project_id)

    async def put(self, project_id: str, document: str) -> None:
        self.documents[project_id] = document

    async def delete(self, project_id: str) -> None:
        self.documents.pop(project_id, None)


# ---------------------------------------------------------------------------
# Filesystem
# ---------------------------------------------------------------------------

ADMIN_FILE = "admin.json"
SUPABASE_DIR = "supabase"


class FileStorage(SpecStorage):
    """
    Stores admin.json inside <root>/<project_id>/.

    Reads supabase/admin.json first, then admin.json at the project root.
    Writes to supabase/admin.json when the project has a supabase/ directory,
    otherwise to the root. Writes go through a temp file + rename, so a
    reader never sees a half-written document.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def project_dir(self, project_id: str) -> Path:
        if not project_id or "/" in project_id or "\\" in project_id or project_id in (".", ".."):
            raise ValueError(f"Invalid project id: {project_id!r}")
        return self.root / project_id

    def find_path(self, project_id: str) -> Path | None:
        base = self.project_dir(project_id)
        for candidate in (base / SUPABASE_DIR / ADMIN_FILE, base / ADMIN_FILE):
            if candidate.is_file():
                return candidate
        return None

    def write_path(self, project_id: str) -> Path:
        base = self.project_dir(project_id)
        if (base / SUPABASE_DIR).is_dir():
            return base / SUPABASE_DIR / ADMIN_FILE
        return base / ADMIN_FILE

    async def get(self, project_id: str) -> str | None:
        path = self.find_path(project_id)
        if path is None:
            return None
        return await asyncio.to_thread(path.read_text, encoding="utf-8")

    async def put(self, project_id: str, document: str) -> None:
        await asyncio.to_thread(self._write, self.write_path(project_id), document)

    async def exists(self, project_id: str) -> bool:
        return self.find_path(project_id) is not None

    async def delete(self, project_id: str) -> None:
        path = self.find_path(project_id)
        if path is not None:
            await asyncio.to_thread(path.unlink)

    @staticmethod
    def _write(path: Path, document: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".admin-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(document)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
