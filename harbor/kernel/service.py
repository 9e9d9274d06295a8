"""
Harbor Kernel: Spec Service

Sits between the pure functions (classifier, merger) and the outside world
(document storage, change hub). This is the storage collaborator API:

  get_specification         stored spec, or the default when none exists
  has_stored_specification
  write_specification       validate → serialize → put → publish
  add_item_to_group         read → merge item → write
  add_group                 read → merge group → write
  apply_template            read → merge any classified template → write

Read-merge-write runs under a per-project asyncio lock, so from a caller's
point of view a save is one atomic replace. The change signal is published
after the lock is released; handlers run in the background and a write never
waits for them.
"""

from __future__ import annotations

import asyncio
import json
import logging
import weakref

from harbor.kernel.defaults import default_spec
from harbor.kernel.errors import InvalidSpecification, PersistenceError, ReplaceNotConfirmed
from harbor.kernel.events import ChangeHub
from harbor.kernel.merger import DEFAULT_TARGET_GROUP, insert_item, is_destructive, merge, upsert_group
from harbor.kernel.storage import SpecStorage
from harbor.kernel.types import Group, Item, SidebarSpec, TemplatePayload

logger = logging.getLogger(__name__)


def serialize(spec: SidebarSpec) -> str:
    """Pretty JSON, the same layout admin.json has on disk."""
    return json.dumps(spec.to_dict(), indent=2, ensure_ascii=False)


def parse(document: str, project_id: str) -> SidebarSpec:
    try:
        data = json.loads(document)
    except json.JSONDecodeError as e:
        raise InvalidSpecification(f"Failed to parse admin.json for project {project_id}: {e}") from e
    return SidebarSpec.from_dict(data)


class SpecService:
    """
    Reads and writes a project's sidebar spec.
    Coordinates storage + merger + change hub.
    """

    def __init__(self, storage: SpecStorage, hub: ChangeHub | None = None):
        self._storage = storage
        self.hub = hub or ChangeHub()
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _get_lock(self, project_id: str) -> asyncio.Lock:
        """
        Per-project lock for read-merge-write serialization. Entries are
        weak: a lock nobody holds or waits on is dropped.
        """
        lock = self._locks.get(project_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[project_id] = lock
        return lock

    # -- read --

    async def get_specification(self, project_id: str) -> SidebarSpec:
        try:
            document = await self._storage.get(project_id)
        except Exception as e:
            raise PersistenceError(f"Failed to read spec for project {project_id}: {e}") from e

        if document is None:
            return default_spec()
        return parse(document, project_id)

    async def has_stored_specification(self, project_id: str) -> bool:
        try:
            return await self._storage.exists(project_id)
        except Exception as e:
            raise PersistenceError(f"Failed to check spec for project {project_id}: {e}") from e

    # -- write --

    async def _put(self, project_id: str, spec: SidebarSpec) -> None:
        document = serialize(spec)
        try:
            await self._storage.put(project_id, document)
        except Exception:
            # Retry once
            try:
                await self._storage.put(project_id, document)
            except Exception as e:
                raise PersistenceError(f"Failed to write spec for project {project_id}: {e}") from e
        logger.info("spec_service: wrote spec for project=%s (%d groups)", project_id, len(spec.groups))

    async def write_specification(self, project_id: str, spec: SidebarSpec) -> None:
        async with self._get_lock(project_id):
            await self._put(project_id, spec)
        self.hub.publish(project_id)

    async def add_item_to_group(self, project_id: str, group_id: str, item: Item) -> SidebarSpec:
        """
        Append an item to a manual group. If nothing is stored yet the item
        is added to the default spec, which is then written.
        """
        async with self._get_lock(project_id):
            current = await self.get_specification(project_id)
            updated = insert_item(current, group_id, item)
            await self._put(project_id, updated)
        self.hub.publish(project_id)
        return updated

    async def add_group(self, project_id: str, group: Group) -> SidebarSpec:
        """Append a group, replacing an existing group with the same id in place."""
        async with self._get_lock(project_id):
            current = await self.get_specification(project_id)
            updated = upsert_group(current, group)
            await self._put(project_id, updated)
        self.hub.publish(project_id)
        return updated

    async def apply_template(
        self,
        project_id: str,
        payload: TemplatePayload,
        *,
        group_id: str | None = None,
        fallback_group_id: str = DEFAULT_TARGET_GROUP,
        confirm_replace: bool = False,
    ) -> SidebarSpec:
        """
        Merge a classified template into the stored spec and write it.

        Raises:
            ReplaceNotConfirmed: a full-spec payload without confirm_replace
            MergeError / InvalidSpecification: nothing is written
            PersistenceError: the write failed, the stored spec is unchanged
        """
        if is_destructive(payload) and not confirm_replace:
            raise ReplaceNotConfirmed(project_id)

        async with self._get_lock(project_id):
            current = await self.get_specification(project_id)
            updated = merge(current, payload, group_id, fallback_group_id)
            await self._put(project_id, updated)
        logger.info("spec_service: imported %s template into project=%s", payload.type, project_id)
        self.hub.publish(project_id)
        return updated

    async def reset(self, project_id: str) -> None:
        """Delete the stored document; the project falls back to the default spec."""
        async with self._get_lock(project_id):
            try:
                await self._storage.delete(project_id)
            except Exception as e:
                raise PersistenceError(f"Failed to delete spec for project {project_id}: {e}") from e
        self.hub.publish(project_id)
