"""
Harbor Kernel: Template Classifier

Decides what an arbitrary decoded JSON document is: a single item, a group,
or a whole sidebar spec, optionally wrapped in a {type, ...} envelope.

The shapes overlap (a spec's first group looks like a standalone group), so
rules run in a fixed order and the first match wins:

  1. spec            {groups: [...]}
  2. group           {id, name, items | itemsSource | itemTemplate | itemsQuery | itemsFromState}
  3. item            {id, name, queries: [...]}
  4. item envelope   {type: "item", groupId, item: <rule 3>}
  5. group envelope  {type: "group", group: <rule 2>}

Anything else is rejected; there is no best-effort guess.
Classification is structural only. Loading the payload into typed objects
(and rejecting invariant violations) is the merger's job.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from harbor.kernel.errors import ClassificationError
from harbor.kernel.types import TemplatePayload

# ---------------------------------------------------------------------------
# Shape predicates
# ---------------------------------------------------------------------------


def _has_str(obj: dict[str, Any], key: str) -> bool:
    return isinstance(obj.get(key), str)


def _has_identity(obj: dict[str, Any]) -> bool:
    return _has_str(obj, "id") and _has_str(obj, "name")


def looks_like_spec(value: Any) -> bool:
    return isinstance(value, dict) and isinstance(value.get("groups"), list)


def looks_like_group(value: Any) -> bool:
    if not isinstance(value, dict) or not _has_identity(value):
        return False
    return (
        isinstance(value.get("items"), list)
        or isinstance(value.get("itemsSource"), dict)
        or isinstance(value.get("itemTemplate"), dict)
        or isinstance(value.get("itemsQuery"), str)
        or value.get("itemsFromState") == "tabs"
    )


def looks_like_item(value: Any) -> bool:
    return isinstance(value, dict) and _has_identity(value) and isinstance(value.get("queries"), list)


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

Rule = Callable[[Any], TemplatePayload | None]


def _spec_rule(value: Any) -> TemplatePayload | None:
    if looks_like_spec(value):
        return TemplatePayload(type="spec", data=value)
    return None


def _group_rule(value: Any) -> TemplatePayload | None:
    if looks_like_group(value):
        return TemplatePayload(type="group", data=value)
    return None


def _item_rule(value: Any) -> TemplatePayload | None:
    if looks_like_item(value):
        return TemplatePayload(type="item", data=value)
    return None


def _item_envelope_rule(value: Any) -> TemplatePayload | None:
    if (
        isinstance(value, dict)
        and value.get("type") == "item"
        and _has_str(value, "groupId")
        and looks_like_item(value.get("item"))
    ):
        return TemplatePayload(type="item", data=value["item"], group_id=value["groupId"])
    return None


def _group_envelope_rule(value: Any) -> TemplatePayload | None:
    if isinstance(value, dict) and value.get("type") == "group" and looks_like_group(value.get("group")):
        return TemplatePayload(type="group", data=value["group"])
    return None


RULES: list[Rule] = [
    _spec_rule,
    _group_rule,
    _item_rule,
    _item_envelope_rule,
    _group_envelope_rule,
]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def detect(value: Any) -> TemplatePayload | None:
    """Run the rules in order. Returns None when nothing matches."""
    for rule in RULES:
        payload = rule(value)
        if payload is not None:
            return payload
    return None


def classify(value: Any) -> TemplatePayload:
    """
    Classify a decoded JSON document.

    Raises:
        ClassificationError: the document matches none of the rules
    """
    payload = detect(value)
    if payload is None:
        raise ClassificationError()
    return payload


def describe(payload: TemplatePayload) -> str:
    """One-line preview shown before an import is committed."""
    data = payload.data
    if payload.type == "item":
        return f'Item: "{data.get("name") or data.get("id")}"'
    if payload.type == "group":
        items = data.get("items")
        count = len(items) if isinstance(items, list) else 0
        suffix = f" ({count} items)" if count > 0 else ""
        return f'Group: "{data.get("name") or data.get("id")}"{suffix}'
    return f"Full Sidebar: {len(data['groups'])} groups"
