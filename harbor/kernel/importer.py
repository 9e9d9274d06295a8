"""
Harbor Kernel: Template Importer

Fetch a template document by URL, classify it, preview it, then commit it
through SpecService.

An ImportSession models one import dialog:
  - at most one fetch in flight; a new load() cancels the previous one
  - a fetch that resolves after being superseded, or after close(), is
    discarded instead of overwriting newer state
  - full-spec templates only commit with confirm_replace=True
  - load_link() starts a session from a harbor://import deep link
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from harbor.kernel.classifier import classify, describe
from harbor.kernel.deeplink import parse_deep_link
from harbor.kernel.errors import FetchError, HarborError
from harbor.kernel.merger import DEFAULT_TARGET_GROUP, is_destructive
from harbor.kernel.service import SpecService
from harbor.kernel.types import SidebarSpec, TemplatePayload

logger = logging.getLogger(__name__)


class TemplateFetcher:
    """GETs a JSON document over HTTP(S)."""

    def __init__(self, timeout: float = 10.0) -> None:
        self.timeout = timeout

    async def fetch(self, url: str) -> Any:
        """
        Download and decode a template document.

        Raises:
            FetchError: empty URL, network failure, non-2xx status, or a body
                that is not JSON
        """
        if not url.strip():
            raise FetchError(url, "Please enter a URL")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            raise FetchError(url, str(e) or type(e).__name__) from e

        if not response.is_success:
            raise FetchError(url, response.reason_phrase, status=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise FetchError(url, f"malformed JSON: {e}") from e


async def fetch_template(url: str, fetcher: TemplateFetcher) -> TemplatePayload:
    """Fetch + classify. ClassificationError propagates unchanged."""
    document = await fetcher.fetch(url)
    payload = classify(document)
    logger.info("importer: %s classified as %s", url, payload.type)
    return payload


class ImportSession:
    """State of one import dialog."""

    def __init__(
        self,
        service: SpecService,
        fetcher: TemplateFetcher | None = None,
        *,
        project_id: str | None = None,
        group_id: str = DEFAULT_TARGET_GROUP,
    ) -> None:
        self._service = service
        self._fetcher = fetcher or TemplateFetcher()
        self._task: asyncio.Task[TemplatePayload] | None = None
        self._generation = 0

        self.project_id = project_id
        self.group_id = group_id
        self.template: TemplatePayload | None = None
        self.error: str | None = None
        self.imported = False
        self.closed = False

    @property
    def loading(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def preview(self) -> str | None:
        return describe(self.template) if self.template is not None else None

    @property
    def destructive(self) -> bool:
        return self.template is not None and is_destructive(self.template)

    def _is_stale(self, generation: int) -> bool:
        return self.closed or generation != self._generation

    async def load(self, url: str) -> TemplatePayload | None:
        """
        Fetch and classify a template, superseding any fetch in flight.

        Returns the payload, or None when this request was superseded or the
        session closed before it finished. Fetch and classification errors
        are recorded on the session and re-raised.
        """
        if self.closed:
            raise HarborError("Import session is closed")

        if self._task is not None and not self._task.done():
            self._task.cancel()

        self._generation += 1
        generation = self._generation
        self.template = None
        self.error = None
        self.imported = False

        task = asyncio.ensure_future(fetch_template(url, self._fetcher))
        self._task = task
        try:
            payload = await task
        except asyncio.CancelledError:
            if task.cancelled() and self._is_stale(generation):
                logger.info("importer: fetch of %s superseded", url)
                return None
            raise
        except HarborError as e:
            if self._is_stale(generation):
                logger.warning("importer: discarding stale failure for %s: %s", url, e)
                return None
            self.error = str(e)
            raise

        if self._is_stale(generation):
            logger.warning("importer: discarding stale result for %s", url)
            return None

        self.template = payload
        if payload.group_id:
            self.group_id = payload.group_id
        return payload

    async def load_link(self, link: str) -> TemplatePayload | None:
        """
        Start the session from a harbor://import deep link. A groupId in the
        link is an explicit target and wins over the template's envelope.
        """
        deep_link = parse_deep_link(link)
        if deep_link is None:
            raise HarborError(f"Not an import link: {link}")

        payload = await self.load(deep_link.template_url)
        if payload is not None and deep_link.group_id:
            self.group_id = deep_link.group_id
        return payload

    async def commit(
        self,
        *,
        project_id: str | None = None,
        group_id: str | None = None,
        confirm_replace: bool = False,
    ) -> SidebarSpec:
        """
        Write the loaded template into the target project.

        Raises:
            HarborError: nothing loaded, or the session is closed
            ReplaceNotConfirmed / MergeError / PersistenceError: from SpecService
        """
        if self.closed:
            raise HarborError("Import session is closed")
        if self.template is None:
            raise HarborError("No template loaded")
        target = project_id or self.project_id
        if not target:
            raise HarborError("No target project selected")

        try:
            spec = await self._service.apply_template(
                target,
                self.template,
                group_id=group_id or self.group_id,
                confirm_replace=confirm_replace,
            )
        except HarborError as e:
            if not self.closed:
                self.error = str(e)
            raise

        if not self.closed:
            self.imported = True
        return spec

    def close(self) -> None:
        """Abandon the dialog; any in-flight fetch is cancelled and ignored."""
        self.closed = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
