"""
SidebarView: dynamic expansion, tabs, reload on change signals.
"""

import asyncio

import pytest

from harbor.kernel.errors import InvalidSpecification, UnknownGroup
from harbor.kernel.service import serialize
from harbor.kernel.sidebar import QueryRunner, SidebarView
from harbor.kernel.types import Group, Item, Manual


class StubRunner(QueryRunner):
    def __init__(self, rows=None, fail=False):
        self.rows = rows if rows is not None else []
        self.fail = fail
        self.calls: list[tuple[str, str]] = []
        self.gate: asyncio.Event | None = None
        self.entered = asyncio.Event()

    async def run(self, project_id, sql):
        self.calls.append((project_id, sql))
        self.entered.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise RuntimeError("relation does not exist")
        return self.rows


TABLE_ROWS = [{"schema": "public", "name": "users"}, {"schema": "public", "name": "orders"}]


@pytest.fixture
async def stored(storage, spec):
    await storage.put("p1", serialize(spec))
    return spec


@pytest.fixture
async def view(service, stored):
    view = SidebarView("p1", service, StubRunner(TABLE_ROWS))
    await view.start()
    yield view
    view.close()


class TestLoading:
    async def test_expands_query_groups(self, view):
        assert view.has_stored is True
        assert [i.id for i in view.items_for("tables")] == ["public.users", "public.orders"]
        assert view.items_for("tables")[0].queries[0].sql == 'SELECT * FROM "public"."users"'

    async def test_default_spec_without_runner(self, service):
        view = SidebarView("p1", service)
        await view.start()
        assert view.has_stored is False
        assert [g.id for g in view.spec.groups] == ["tables", "scripts"]
        assert view.items_for("tables") == []
        view.close()

    async def test_failing_group_query_is_isolated(self, service, stored, caplog):
        view = SidebarView("p1", service, StubRunner(fail=True))
        await view.start()

        assert view.group_errors == {"tables": "relation does not exist"}
        assert view.items_for("tables") == []
        assert [i.id for i in view.items_for("admin")] == ["users"]
        assert "failed to expand group tables" in caplog.text
        view.close()

    async def test_hidden_items_filtered(self, service):
        await service.add_group("p1", Group(id="admin", name="Admin"))
        await service.add_item_to_group("p1", "admin", Item(id="shown", name="Shown"))
        await service.add_item_to_group("p1", "admin", Item(id="hidden", name="Hidden", visible=False))
        view = SidebarView("p1", service)
        await view.start()
        assert [i.id for i in view.items_for("admin")] == ["shown"]
        view.close()

    async def test_unknown_group(self, view):
        with pytest.raises(UnknownGroup):
            view.items_for("nope")

    async def test_corrupt_spec_keeps_previous(self, view, storage):
        await storage.put("p1", "{broken")
        await view.reload()
        assert view.error is not None
        assert view.spec.get_group("admin") is not None


class TestTabs:
    async def test_open_item_carries_row_params(self, view):
        tab = view.open_item("tables", "public.orders")
        assert tab.navigation.entry.params == {"schema": "public", "name": "orders"}
        assert view.active_tab is tab

    async def test_open_item_reuses_tab(self, view):
        first = view.open_item("admin", "users")
        view.open_item("tables", "public.users")
        again = view.open_item("admin", "users")
        assert again is first
        assert len(view.tabs) == 2
        assert view.active_tab_id == first.id

    async def test_drill_down_from_tab(self, view):
        tab = view.open_item("admin", "users")
        action = tab.item.queries[0].row_actions[0]
        tab.navigation.push_row_action(action, {"id": 42, "email": "a@b.c"})
        assert tab.navigation.current.item_id == "user-detail"
        assert tab.navigation.current.params == {"id": "42"}

    async def test_create_item_in_user_creatable_group(self, view):
        tab = view.create_item("scripts")
        assert tab.item.id == tab.id
        assert tab.name == "Untitled"
        assert [i.id for i in view.items_for("scripts")] == [tab.id]

    async def test_create_item_rejected_for_static_group(self, view):
        with pytest.raises(InvalidSpecification):
            view.create_item("admin")

    async def test_close_tab_moves_focus(self, view):
        a = view.open_item("admin", "users")
        b = view.open_item("reports", "signups")
        view.close_tab(b.id)
        assert view.active_tab_id == a.id
        view.close_tab(a.id)
        assert view.active_tab_id is None
        view.close_tab("missing")


class TestChangeSignal:
    async def test_write_triggers_reload(self, view, service):
        await service.add_item_to_group("p1", "reports", Item(id="orders", name="Orders"))
        await service.hub.drain()
        assert [i.id for i in view.items_for("reports")] == ["signups", "orders"]

    async def test_other_project_ignored(self, view, service, storage):
        await service.add_group("p2", Group(id="x", name="X"))
        await service.hub.drain()
        assert view.spec.get_group("x") is None

    async def test_reload_trims_navigation(self, view, service):
        tab = view.open_item("admin", "users")
        tab.navigation.push("user-detail")

        spec = view.spec
        admin = spec.get_group("admin")
        users = admin.items[0]
        trimmed = Item(id=users.id, name=users.name, queries=users.queries, children=[])
        spec.groups[spec.index_of("admin")] = Group(id="admin", name="Admin", strategy=Manual(items=[trimmed]))
        await service.write_specification("p1", spec)
        await service.hub.drain()

        assert tab.navigation.at_entry

    async def test_reload_closes_tabs_of_removed_items(self, view, service):
        view.open_item("reports", "signups")
        spec = view.spec
        spec.groups[spec.index_of("reports")] = Group(id="reports", name="Reports")
        await service.write_specification("p1", spec)
        await service.hub.drain()
        assert view.tabs == []
        assert view.active_tab_id is None

    async def test_created_tabs_survive_reload(self, view, service):
        tab = view.create_item("scripts")
        await service.add_group("p1", Group(id="extra", name="Extra"))
        await service.hub.drain()
        assert view.get_tab(tab.id) is tab

    async def test_close_unsubscribes(self, service, stored, hub):
        view = SidebarView("p1", service)
        await view.start()
        assert hub.subscriber_count("p1") == 1
        view.close()
        assert hub.subscriber_count("p1") == 0


async def test_refresh_group(view):
    view._runner.rows = [{"schema": "audit", "name": "log"}]
    items = await view.refresh_group("tables")
    assert [c.item.id for c in items] == ["audit.log"]
    assert [i.id for i in view.items_for("tables")] == ["audit.log"]


class TestReloadFailures:
    async def test_failed_group_query_keeps_tabs(self, view):
        tab = view.open_item("tables", "public.users")
        tab.navigation.push("public.orders")

        view._runner.fail = True
        await view.reload()

        assert view.group_errors == {"tables": "relation does not exist"}
        assert view.get_tab(tab.id) is tab
        assert view.active_tab_id == tab.id
        assert tab.navigation.current.item_id == "public.orders"
        assert [i.id for i in view.items_for("tables")] == ["public.users", "public.orders"]

    async def test_recovers_after_failed_group_query(self, view):
        tab = view.open_item("tables", "public.users")
        view._runner.fail = True
        await view.reload()

        view._runner.fail = False
        view._runner.rows = [{"schema": "public", "name": "orders"}]
        await view.reload()

        assert view.group_errors == {}
        assert view.get_tab(tab.id) is None

    async def test_close_during_reload_discards_result(self, view, storage, spec):
        spec.groups.append(Group(id="extra", name="Extra"))
        await storage.put("p1", serialize(spec))

        view._runner.gate = asyncio.Event()
        view._runner.entered.clear()
        pending = asyncio.create_task(view.reload())
        await view._runner.entered.wait()

        view.close()
        view._runner.gate.set()
        await pending

        assert view.spec.get_group("extra") is None
        assert [i.id for i in view.items_for("tables")] == ["public.users", "public.orders"]
