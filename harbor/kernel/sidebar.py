"""
Harbor Kernel: Sidebar View

The long-lived consumer of one project's specification. Holds the cached
spec, expands dynamic groups, and owns the open tabs (browsing contexts),
each with its own NavigationStack.

Lifecycle:
  start()   subscribe to admin_config_changed for the project, then load
  reload()  re-read spec + has_stored, re-expand query-driven groups,
            reconcile every tab's navigation stack against the new catalog
  close()   unsubscribe; the view is inert afterwards

Query-driven groups run through a QueryRunner. A failing group query is
recorded in group_errors and logged, and the group keeps its last expansion
and its open tabs. The rest of the sidebar still loads.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from harbor.kernel.errors import HarborError, InvalidSpecification, UnknownGroup
from harbor.kernel.events import ConfigChanged, Subscription
from harbor.kernel.navigation import ItemCatalog, NavigationStack
from harbor.kernel.resolver import ConcreteItem, expand_item, expand_rows
from harbor.kernel.service import SpecService
from harbor.kernel.types import Item, QueryDriven, SidebarSpec, StateDerived

logger = logging.getLogger(__name__)


class QueryRunner:
    """
    Executes an opaque query string against a project's database.
    Implement for the real query engine; tests use a stub.
    """

    async def run(self, project_id: str, sql: str) -> list[dict[str, Any]]:
        raise NotImplementedError


@dataclass
class Tab:
    """An open browsing context."""

    id: str
    group_id: str
    item: Item
    navigation: NavigationStack
    params: dict[str, str] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.item.name


class SidebarView:
    def __init__(
        self,
        project_id: str,
        service: SpecService,
        runner: QueryRunner | None = None,
    ) -> None:
        self.project_id = project_id
        self._service = service
        self._runner = runner
        self._subscription: Subscription | None = None
        self._reload_lock = asyncio.Lock()

        self.spec: SidebarSpec | None = None
        self.has_stored = False
        self.error: str | None = None
        self.expanded: dict[str, list[ConcreteItem]] = {}
        self.group_errors: dict[str, str] = {}
        self.tabs: list[Tab] = []
        self.active_tab_id: str | None = None
        self.closed = False

    # -- lifecycle --

    async def start(self) -> None:
        if self._subscription is None:
            self._subscription = self._service.hub.subscribe(self.project_id, self._on_change)
        await self.reload()

    async def _on_change(self, signal: ConfigChanged) -> None:
        logger.info("sidebar: %s for project=%s, reloading", signal.event, signal.project_id)
        await self.reload()

    def close(self) -> None:
        self.closed = True
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    # -- loading --

    async def reload(self) -> None:
        """
        Reload the spec. On failure the previous spec stays cached and the
        error is exposed on `error`. A group whose query fails keeps its
        previous expansion and its tabs.
        """
        if self.closed:
            return
        async with self._reload_lock:
            try:
                spec, has_stored = await asyncio.gather(
                    self._service.get_specification(self.project_id),
                    self._service.has_stored_specification(self.project_id),
                )
            except HarborError as e:
                if not self.closed:
                    self.error = str(e)
                logger.warning("sidebar: failed to load spec for project=%s: %s", self.project_id, e)
                return
            if self.closed:
                return

            expanded: dict[str, list[ConcreteItem]] = {}
            group_errors: dict[str, str] = {}
            for group in spec.groups:
                if not isinstance(group.strategy, QueryDriven):
                    continue
                try:
                    expanded[group.id] = await self._expand(group.strategy)
                except Exception as e:
                    group_errors[group.id] = str(e)
                    if group.id in self.expanded:
                        expanded[group.id] = self.expanded[group.id]
                    logger.warning("sidebar: failed to expand group %s for project=%s: %s", group.id, self.project_id, e)

            # Closed while queries were in flight.
            if self.closed:
                return

            self.spec = spec
            self.has_stored = has_stored
            self.expanded = expanded
            self.group_errors = group_errors
            self.error = None
            self._reconcile_tabs()

    async def _expand(self, strategy: QueryDriven) -> list[ConcreteItem]:
        if self._runner is None:
            return []
        rows = await self._runner.run(self.project_id, strategy.source.value)
        return expand_rows(strategy.item_template, rows)

    async def refresh_group(self, group_id: str) -> list[ConcreteItem]:
        """Re-run one query-driven group without reloading the spec."""
        group = self._require_spec().get_group(group_id)
        if group is None:
            raise UnknownGroup(group_id)
        if not isinstance(group.strategy, QueryDriven):
            return []
        try:
            items = await self._expand(group.strategy)
        except Exception as e:
            self.group_errors[group_id] = str(e)
            logger.warning("sidebar: failed to expand group %s for project=%s: %s", group_id, self.project_id, e)
            raise
        self.group_errors.pop(group_id, None)
        self.expanded[group_id] = items
        return items

    def _require_spec(self) -> SidebarSpec:
        if self.spec is None:
            raise HarborError(f"Sidebar for project {self.project_id} is not loaded")
        return self.spec

    # -- items --

    def items_for(self, group_id: str) -> list[Item]:
        """Visible items of a group, in display order."""
        group = self._require_spec().get_group(group_id)
        if group is None:
            raise UnknownGroup(group_id)

        if isinstance(group.strategy, QueryDriven):
            items = [c.item for c in self.expanded.get(group_id, [])]
        elif isinstance(group.strategy, StateDerived):
            items = [t.item for t in self.tabs if t.group_id == group_id]
        else:
            items = group.items
        return [i for i in items if i.visible]

    def catalog(self) -> ItemCatalog:
        return ItemCatalog(
            self._require_spec(),
            expanded={gid: [c.item for c in items] for gid, items in self.expanded.items()},
            extra=[t.item for t in self.tabs],
        )

    def _params_for(self, group_id: str, item_id: str) -> dict[str, str]:
        for concrete in self.expanded.get(group_id, []):
            if concrete.item.id == item_id:
                return dict(concrete.params)
        return {}

    # -- tabs --

    def get_tab(self, tab_id: str) -> Tab | None:
        for tab in self.tabs:
            if tab.id == tab_id:
                return tab
        return None

    @property
    def active_tab(self) -> Tab | None:
        return self.get_tab(self.active_tab_id) if self.active_tab_id else None

    def open_item(self, group_id: str, item_id: str) -> Tab:
        """
        Open an item in a tab, or focus the tab that already shows it.
        The entry frame carries the item's row params for expanded items.
        """
        for tab in self.tabs:
            if tab.group_id == group_id and tab.item.id == item_id:
                self.active_tab_id = tab.id
                return tab

        item = next((i for i in self.items_for(group_id) if i.id == item_id), None)
        if item is None:
            raise HarborError(f"Item '{item_id}' not found in group '{group_id}'")

        params = self._params_for(group_id, item_id)
        tab = Tab(
            id=str(uuid.uuid4()),
            group_id=group_id,
            item=item,
            navigation=NavigationStack(item.id, params),
            params=params,
        )
        self.tabs.append(tab)
        self.active_tab_id = tab.id
        tab.navigation.catalog = self.catalog()
        return tab

    def create_item(self, group_id: str) -> Tab:
        """
        Mint a new item from a user-creatable group's template. `:id` in the
        template resolves to the new tab's id.
        """
        group = self._require_spec().get_group(group_id)
        if group is None:
            raise UnknownGroup(group_id)
        template = group.item_template
        if not group.user_creatable or template is None:
            raise InvalidSpecification(f"Group '{group_id}' does not allow creating items")

        tab_id = str(uuid.uuid4())
        params = {"id": tab_id}
        item = expand_item(template, params)
        tab = Tab(
            id=tab_id,
            group_id=group_id,
            item=item,
            navigation=NavigationStack(item.id, params),
            params=params,
        )
        self.tabs.append(tab)
        self.active_tab_id = tab.id
        tab.navigation.catalog = self.catalog()
        logger.info("sidebar: created item %s in group %s", item.id, group_id)
        return tab

    def close_tab(self, tab_id: str) -> None:
        tab = self.get_tab(tab_id)
        if tab is None:
            return
        index = self.tabs.index(tab)
        self.tabs.remove(tab)
        if self.active_tab_id == tab_id:
            neighbour = self.tabs[min(index, len(self.tabs) - 1)] if self.tabs else None
            self.active_tab_id = neighbour.id if neighbour else None

    def _reconcile_tabs(self) -> None:
        """
        Drop tabs whose entry item vanished from a spec-backed group; truncate
        the rest to the frames that still exist. Tabs of a group whose query
        just failed are left as they are.
        """
        survivors: list[Tab] = []
        for tab in self.tabs:
            group = self.spec.get_group(tab.group_id) if self.spec else None
            if group is None:
                logger.info("sidebar: closing tab %s, group %s is gone", tab.id, tab.group_id)
                continue
            if tab.group_id in self.group_errors:
                survivors.append(tab)
                continue
            if not isinstance(group.strategy, StateDerived):
                current = next((i for i in self.items_for(tab.group_id) if i.id == tab.item.id), None)
                if current is None:
                    logger.info("sidebar: closing tab %s, item %s is gone", tab.id, tab.item.id)
                    continue
                tab.item = current
            survivors.append(tab)

        self.tabs = survivors
        if self.active_tab_id and self.get_tab(self.active_tab_id) is None:
            self.active_tab_id = self.tabs[0].id if self.tabs else None

        catalog = self.catalog()
        for tab in self.tabs:
            if tab.group_id in self.group_errors:
                continue
            tab.navigation.reload(catalog)

    # -- persistence --

    async def save(self, spec: SidebarSpec) -> None:
        """Write a spec; the change signal triggers the reload."""
        await self._service.write_specification(self.project_id, spec)
