"""
Harbor Kernel: Navigation State Machine

Each browsing context (tab) owns one NavigationStack: a LIFO history of
ViewState frames that starts at the tab's entry item.

Transitions:
  push    primary action or row action; target id and params resolved
          against {current params, row, action params}
  pop     returnToParent or explicit back; no-op at the entry frame
  reload  after the spec changes, keep the deepest prefix of frames whose
          items still exist, falling back to the entry frame

Stacks are plain objects with no UI or IO dependency; they are rebuilt from
scratch when the application reloads.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from harbor.kernel.errors import UnknownItemError, UnresolvedParameterError
from harbor.kernel.resolver import bind_action_params, navigation_bindings, resolve_tokens, row_bindings
from harbor.kernel.types import Item, PrimaryAction, Query, RowAction, SidebarSpec, ViewState

logger = logging.getLogger(__name__)


class ItemCatalog:
    """
    Every item id addressable in a spec: manual items and their children,
    item templates and their children, plus concrete items expanded from
    query-driven groups and items minted at runtime (tabs).
    """

    def __init__(
        self,
        spec: SidebarSpec,
        expanded: Mapping[str, Iterable[Item]] | None = None,
        extra: Iterable[Item] = (),
    ) -> None:
        self._items: dict[str, Item] = {}
        for group in spec.groups:
            for item in group.items:
                self._add(item)
            if group.item_template is not None:
                self._add(group.item_template)
        for items in (expanded or {}).values():
            for item in items:
                self._add(item)
        for item in extra:
            self._add(item)

    def _add(self, item: Item) -> None:
        for node in item.walk():
            self._items.setdefault(node.id, node)

    def get(self, item_id: str) -> Item | None:
        return self._items.get(item_id)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)


class NavigationStack:
    """Per-tab view-state history."""

    def __init__(
        self,
        entry_item_id: str,
        params: dict[str, str] | None = None,
        catalog: ItemCatalog | None = None,
    ) -> None:
        self._frames: list[ViewState] = [ViewState(item_id=entry_item_id, params=dict(params or {}))]
        self.catalog = catalog

    # -- inspection --

    @property
    def frames(self) -> list[ViewState]:
        return list(self._frames)

    @property
    def entry(self) -> ViewState:
        return self._frames[0]

    @property
    def current(self) -> ViewState:
        return self._frames[-1]

    @property
    def depth(self) -> int:
        return len(self._frames)

    @property
    def at_entry(self) -> bool:
        return len(self._frames) == 1

    # -- push --

    def push(
        self,
        target_item_id: str,
        *,
        row: dict[str, Any] | None = None,
        action_params: dict[str, str] | None = None,
    ) -> ViewState:
        """
        Resolve the target against the current frame and push it.

        New frame params: the current params, overlaid with the action's
        resolved params when it declares any, otherwise with the row columns.

        Raises:
            UnresolvedParameterError: a token in the target or a param survived
            UnknownItemError: a catalog is attached and lacks the target
        """
        current = self.current
        bindings = navigation_bindings(current.params, row)

        bound: dict[str, str] | None = None
        if action_params is not None:
            bound, missing = bind_action_params(action_params, bindings, row)
            if missing:
                raise UnresolvedParameterError(str(action_params), missing)
            bindings.update(bound)

        target = resolve_tokens(target_item_id, bindings)
        if target.missing:
            raise UnresolvedParameterError(target_item_id, target.missing)
        if self.catalog is not None and target.text not in self.catalog:
            raise UnknownItemError(target.text)

        params = dict(current.params)
        if bound is not None:
            params.update(bound)
        elif row is not None:
            params.update(row_bindings(row))

        frame = ViewState(item_id=target.text, params=params)
        self._frames.append(frame)
        logger.debug("navigation: push %s (depth=%d)", frame.item_id, self.depth)
        return frame

    def push_primary(self, action: PrimaryAction) -> ViewState:
        return self.push(action.item_id)

    def push_row_action(self, action: RowAction, row: dict[str, Any]) -> ViewState:
        return self.push(action.item_id, row=row, action_params=action.params)

    # -- pop --

    def pop(self) -> ViewState | None:
        """Drop the top frame. Returns it, or None when already at entry."""
        if self.at_entry:
            return None
        frame = self._frames.pop()
        logger.debug("navigation: pop %s (depth=%d)", frame.item_id, self.depth)
        return frame

    def complete_query(self, query: Query) -> bool:
        """Called after a query ran successfully. Pops iff it returns to parent."""
        if query.return_to_parent:
            return self.pop() is not None
        return False

    # -- reload --

    def reload(self, catalog: ItemCatalog) -> int:
        """
        Re-validate frames against a new catalog. Frames above the first one
        whose item no longer exists are dropped. Returns how many.
        """
        self.catalog = catalog
        keep = 1
        for frame in self._frames[1:]:
            if frame.item_id not in catalog:
                break
            keep += 1
        dropped = len(self._frames) - keep
        if dropped:
            del self._frames[keep:]
            logger.info("navigation: dropped %d stale frame(s), now at %s", dropped, self.current.item_id)
        return dropped
