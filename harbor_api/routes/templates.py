"""Template preview: classify a URL without touching any project."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from harbor.kernel.classifier import describe
from harbor.kernel.errors import HarborError
from harbor.kernel.importer import TemplateFetcher, fetch_template
from harbor.kernel.merger import is_destructive
from harbor_api.dependencies import get_fetcher, http_error
from harbor_api.models.sidebar import PreviewRequest, PreviewResponse

router = APIRouter(prefix="/api/templates", tags=["templates"])


@router.post("/preview", status_code=200)
async def preview_template(
    req: PreviewRequest,
    fetcher: TemplateFetcher = Depends(get_fetcher),
) -> PreviewResponse:
    try:
        payload = await fetch_template(req.url, fetcher)
    except HarborError as e:
        raise http_error(e) from e
    return PreviewResponse(
        type=payload.type,
        group_id=payload.group_id,
        summary=describe(payload),
        destructive=is_destructive(payload),
    )
