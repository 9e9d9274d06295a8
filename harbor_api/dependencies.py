"""
Wiring between the FastAPI app and the kernel.

The lifespan builds one SpecService (with its ChangeHub) and one
TemplateFetcher and stores them on app.state; routes pull them out through
the dependencies below.
"""

from __future__ import annotations

import re

from fastapi import HTTPException, Request, WebSocket, status

from harbor.kernel.errors import (
    ClassificationError,
    FetchError,
    HarborError,
    InvalidSpecification,
    PersistenceError,
    ReplaceNotConfirmed,
    StrategyConflict,
    UnknownGroup,
)
from harbor.kernel.importer import TemplateFetcher
from harbor.kernel.service import SpecService
from harbor.kernel.storage import FileStorage, MemoryStorage, SpecStorage

PROJECT_ID_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}$")


def build_storage(backend: str, projects_dir: str, pool=None) -> SpecStorage:
    """Storage adapter for the configured backend. Postgres needs the pool."""
    if backend == "memory":
        return MemoryStorage()
    if backend == "file":
        return FileStorage(projects_dir)
    if backend == "postgres":
        from harbor.kernel.postgres_storage import PostgresStorage

        if pool is None:
            raise RuntimeError("Postgres storage requires an initialized pool")
        return PostgresStorage(pool)
    raise RuntimeError(f"Unknown storage backend: {backend}")


def get_service(request: Request) -> SpecService:
    return request.app.state.service


def get_fetcher(request: Request) -> TemplateFetcher:
    return request.app.state.fetcher


def ws_service(websocket: WebSocket) -> SpecService:
    return websocket.app.state.service


def valid_project_id(project_id: str) -> str:
    if not PROJECT_ID_RE.match(project_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid project id.")
    return project_id


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

_STATUS_CODES: list[tuple[type[HarborError], int]] = [
    (FetchError, status.HTTP_502_BAD_GATEWAY),
    (ClassificationError, 422),
    (InvalidSpecification, 422),
    (UnknownGroup, status.HTTP_404_NOT_FOUND),
    (StrategyConflict, status.HTTP_409_CONFLICT),
    (ReplaceNotConfirmed, status.HTTP_409_CONFLICT),
    (PersistenceError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def http_error(e: HarborError) -> HTTPException:
    """Map a kernel error to the HTTP error the client sees."""
    for error_type, code in _STATUS_CODES:
        if isinstance(e, error_type):
            return HTTPException(status_code=code, detail=str(e))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
