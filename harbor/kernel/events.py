"""
Harbor Kernel: Change Propagation

Project-scoped publish/subscribe for the "admin_config_changed" signal.

Every successful spec write publishes once. Each subscription is bound to a
project id and only receives signals for that project. publish() schedules
one task per matching handler on the running loop and returns at once, so a
slow consumer never holds up a writer. A handler that raises is logged and
does not affect the others. Publishers get no acknowledgement.

Subscriptions are explicit resources: close() them when the owning context
is disposed. A subscription closed before its delivery runs is skipped.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

ADMIN_CONFIG_CHANGED = "admin_config_changed"


@dataclass(frozen=True)
class ConfigChanged:
    project_id: str
    event: str = ADMIN_CONFIG_CHANGED

    def to_dict(self) -> dict[str, Any]:
        return {"event": self.event, "project_id": self.project_id}


Handler = Callable[[ConfigChanged], Awaitable[None]]


class Subscription:
    """Handle returned by ChangeHub.subscribe()."""

    def __init__(self, hub: ChangeHub, project_id: str, handler: Handler) -> None:
        self._hub = hub
        self.project_id = project_id
        self.handler = handler
        self.active = True

    def matches(self, signal: ConfigChanged) -> bool:
        return self.active and signal.project_id == self.project_id

    def close(self) -> None:
        """Stop receiving signals. Safe to call more than once."""
        if self.active:
            self.active = False
            self._hub._remove(self)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class ChangeHub:
    """In-process broadcaster for configuration-changed signals."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        # Strong references; the loop only keeps weak ones to running tasks.
        self._tasks: set[asyncio.Task[None]] = set()

    def subscribe(self, project_id: str, handler: Handler) -> Subscription:
        subscription = Subscription(self, project_id, handler)
        self._subscriptions.append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            pass

    def subscriber_count(self, project_id: str | None = None) -> int:
        if project_id is None:
            return len(self._subscriptions)
        return sum(1 for s in self._subscriptions if s.project_id == project_id)

    @property
    def pending(self) -> int:
        """Deliveries scheduled but not yet finished."""
        return len(self._tasks)

    def publish(self, project_id: str) -> None:
        """
        Broadcast a change for one project to its subscribers.

        Each handler runs in its own task; this returns without waiting for
        any of them. Must be called from a running event loop.
        """
        signal = ConfigChanged(project_id=project_id)
        # Snapshot: handlers may subscribe or close while we iterate.
        for subscription in list(self._subscriptions):
            if not subscription.matches(signal):
                continue
            task = asyncio.create_task(self._deliver(subscription, signal))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _deliver(self, subscription: Subscription, signal: ConfigChanged) -> None:
        # Closed between publish and delivery.
        if not subscription.active:
            return
        try:
            await subscription.handler(signal)
        except Exception:
            logger.exception("change_hub: handler failed for project=%s", signal.project_id)

    async def drain(self) -> None:
        """Wait until every scheduled delivery, including ones they trigger, has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
