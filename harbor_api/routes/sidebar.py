"""Sidebar routes: read, replace, add group, add item, import from URL."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from harbor.kernel.errors import HarborError
from harbor.kernel.importer import TemplateFetcher, fetch_template
from harbor.kernel.service import SpecService
from harbor.kernel.types import Group, Item, SidebarSpec
from harbor_api.config import settings
from harbor_api.dependencies import get_fetcher, get_service, http_error, valid_project_id
from harbor_api.models.sidebar import (
    AddGroupRequest,
    AddItemRequest,
    ImportRequest,
    ImportResponse,
    SaveSpecRequest,
    SpecResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/projects/{project_id}/sidebar", tags=["sidebar"])


@router.get("", status_code=200)
async def get_sidebar(
    project_id: str = Depends(valid_project_id),
    service: SpecService = Depends(get_service),
) -> SpecResponse:
    """The stored spec, or the default spec when the project has none."""
    try:
        spec = await service.get_specification(project_id)
        has_stored = await service.has_stored_specification(project_id)
    except HarborError as e:
        raise http_error(e) from e
    return SpecResponse(spec=spec.to_dict(), has_stored=has_stored)


@router.put("", status_code=200)
async def save_sidebar(
    req: SaveSpecRequest,
    project_id: str = Depends(valid_project_id),
    service: SpecService = Depends(get_service),
) -> SpecResponse:
    """Replace the whole spec. The document is validated before it is written."""
    try:
        spec = SidebarSpec.from_dict(req.spec)
        await service.write_specification(project_id, spec)
    except HarborError as e:
        raise http_error(e) from e
    return SpecResponse(spec=spec.to_dict(), has_stored=True)


@router.post("/groups", status_code=201)
async def add_group(
    req: AddGroupRequest,
    project_id: str = Depends(valid_project_id),
    service: SpecService = Depends(get_service),
) -> SpecResponse:
    """Append a group, or replace the group with the same id in place."""
    try:
        spec = await service.add_group(project_id, Group.from_dict(req.group))
    except HarborError as e:
        raise http_error(e) from e
    return SpecResponse(spec=spec.to_dict(), has_stored=True)


@router.post("/groups/{group_id}/items", status_code=201)
async def add_item(
    group_id: str,
    req: AddItemRequest,
    project_id: str = Depends(valid_project_id),
    service: SpecService = Depends(get_service),
) -> SpecResponse:
    """Append an item to a manual group."""
    try:
        spec = await service.add_item_to_group(project_id, group_id, Item.from_dict(req.item))
    except HarborError as e:
        raise http_error(e) from e
    return SpecResponse(spec=spec.to_dict(), has_stored=True)


@router.post("/import", status_code=200)
async def import_template(
    req: ImportRequest,
    project_id: str = Depends(valid_project_id),
    service: SpecService = Depends(get_service),
    fetcher: TemplateFetcher = Depends(get_fetcher),
) -> ImportResponse:
    """
    Fetch, classify, merge, write.

    Item templates land in req.group_id, else the envelope's groupId, else
    DEFAULT_IMPORT_GROUP. A full-spec template replaces everything and is
    refused (409) unless confirm_replace is set.
    """
    try:
        payload = await fetch_template(req.url, fetcher)
        spec = await service.apply_template(
            project_id,
            payload,
            group_id=req.group_id,
            fallback_group_id=settings.DEFAULT_IMPORT_GROUP,
            confirm_replace=req.confirm_replace,
        )
    except HarborError as e:
        logger.info("sidebar: import of %s into project=%s failed: %s", req.url, project_id, e)
        raise http_error(e) from e
    return ImportResponse(type=payload.type, spec=spec.to_dict())
