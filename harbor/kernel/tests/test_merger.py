"""
Template merger: item append, group upsert, spec replace, failures.
"""

import copy

import pytest

from harbor.kernel.classifier import classify
from harbor.kernel.errors import InvalidSpecification, StrategyConflict, UnknownGroup
from harbor.kernel.merger import is_destructive, merge, target_group_id
from harbor.kernel.types import Group, Item, Manual, SidebarSpec, TemplatePayload

NEW_ITEM = {"id": "orders", "name": "Orders", "queries": [{"sql": "SELECT * FROM orders"}]}


class TestMergeItem:
    def test_appends_exactly_one(self, spec):
        before = [i.id for i in spec.get_group("reports").items]
        merged = merge(spec, classify(NEW_ITEM), "reports")
        after = [i.id for i in merged.get_group("reports").items]
        assert after == [*before, "orders"]

    def test_target_untouched(self, spec):
        merge(spec, classify(NEW_ITEM), "reports")
        assert [i.id for i in spec.get_group("reports").items] == ["signups"]

    def test_other_groups_untouched(self, spec):
        merged = merge(spec, classify(NEW_ITEM), "reports")
        assert merged.get_group("admin") is spec.get_group("admin")

    def test_envelope_group_id(self, spec):
        payload = classify({"type": "item", "groupId": "reports", "item": NEW_ITEM})
        merged = merge(spec, payload)
        assert merged.get_group("reports").items[-1].id == "orders"

    def test_explicit_group_beats_envelope(self, spec):
        payload = classify({"type": "item", "groupId": "reports", "item": NEW_ITEM})
        merged = merge(spec, payload, "admin")
        assert merged.get_group("admin").items[-1].id == "orders"
        assert len(merged.get_group("reports").items) == 1

    def test_fallback_group(self, spec):
        merged = merge(spec, classify(NEW_ITEM))
        assert merged.get_group("admin").items[-1].id == "orders"

    def test_unknown_group(self, spec):
        with pytest.raises(UnknownGroup) as exc_info:
            merge(spec, classify(NEW_ITEM), "nope")
        assert exc_info.value.group_id == "nope"

    @pytest.mark.parametrize("group_id, kind", [("tables", "query"), ("scripts", "state")])
    def test_dynamic_group_conflict(self, spec, group_id, kind):
        with pytest.raises(StrategyConflict) as exc_info:
            merge(spec, classify(NEW_ITEM), group_id)
        assert exc_info.value.group_id == group_id
        assert exc_info.value.strategy == kind

    def test_invalid_item_rejected(self, spec):
        bad = copy.deepcopy(NEW_ITEM)
        bad["queries"] = [{"sql": "SELECT 1", "results": "chart"}]
        with pytest.raises(InvalidSpecification):
            merge(spec, classify(bad), "reports")


class TestMergeGroup:
    def test_replaces_in_place(self, spec):
        payload = classify({"type": "group", "group": {"id": "reports", "name": "Reports v2", "items": [NEW_ITEM]}})
        merged = merge(spec, payload)

        assert [g.id for g in merged.groups] == [g.id for g in spec.groups]
        reports = merged.get_group("reports")
        assert reports.name == "Reports v2"
        assert [i.id for i in reports.items] == ["orders"]
        for group_id in ("admin", "tables", "scripts"):
            assert merged.get_group(group_id) == spec.get_group(group_id)

    def test_appends_new_group(self, spec):
        merged = merge(spec, classify({"id": "billing", "name": "Billing", "items": []}))
        assert [g.id for g in merged.groups][-1] == "billing"
        assert len(merged.groups) == len(spec.groups) + 1

    def test_template_only_group_merges_as_empty_manual(self, spec):
        value = {"id": "drafts", "name": "Drafts", "itemTemplate": {"id": ":id", "name": "Draft", "queries": []}}
        payload = classify(value)
        assert payload.type == "group"

        merged = merge(spec, payload)
        drafts = merged.get_group("drafts")
        assert isinstance(drafts.strategy, Manual)
        assert drafts.items == []

    def test_idempotent(self, spec):
        payload = classify({"id": "billing", "name": "Billing", "items": [NEW_ITEM]})
        once = merge(spec, payload)
        twice = merge(once, payload)
        assert once == twice


class TestMergeSpec:
    def test_replaces_wholesale(self, spec):
        payload = classify({"groups": [{"id": "only", "name": "Only", "items": []}]})
        merged = merge(spec, payload)
        assert [g.id for g in merged.groups] == ["only"]

    def test_is_destructive(self):
        assert is_destructive(TemplatePayload(type="spec", data={"groups": []}))
        assert not is_destructive(TemplatePayload(type="group", data={}))

    def test_invalid_spec_rejected(self, spec):
        payload = classify({"groups": [{"id": "a", "name": "A"}, {"id": "a", "name": "A"}]})
        with pytest.raises(InvalidSpecification):
            merge(spec, payload)


def test_target_group_precedence():
    payload = TemplatePayload(type="item", data={}, group_id="env")
    assert target_group_id(payload, "explicit") == "explicit"
    assert target_group_id(payload) == "env"
    assert target_group_id(TemplatePayload(type="item", data={}), fallback_group_id="fb") == "fb"


def test_group_without_items_receives_first_item():
    spec = SidebarSpec(groups=[Group(id="admin", name="Admin")])
    merged = merge(spec, TemplatePayload(type="item", data=NEW_ITEM))
    group = merged.get_group("admin")
    assert isinstance(group.strategy, Manual)
    assert group.items == [Item.from_dict(NEW_ITEM)]
