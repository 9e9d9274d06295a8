"""
Default specification served to projects with no admin.json.
"""

from harbor.kernel.defaults import DEFAULT_SIDEBAR_SPEC, default_spec
from harbor.kernel.resolver import expand_rows
from harbor.kernel.types import QueryDriven, StateDerived


def test_groups():
    spec = default_spec()
    assert [g.id for g in spec.groups] == ["tables", "scripts"]
    assert isinstance(spec.get_group("tables").strategy, QueryDriven)
    assert isinstance(spec.get_group("scripts").strategy, StateDerived)
    assert spec.get_group("scripts").user_creatable


def test_copies_are_independent():
    first = default_spec()
    first.groups.pop()
    assert len(default_spec().groups) == 2
    assert len(DEFAULT_SIDEBAR_SPEC["groups"]) == 2


def test_table_template_expands():
    template = default_spec().get_group("tables").item_template
    [concrete] = expand_rows(template, [{"schema": "public", "name": "users"}])
    assert concrete.item.id == "public.users"
    assert concrete.item.auto_run
    assert concrete.item.queries[0].sql == 'SELECT * FROM "public"."users" LIMIT 100'
