"""
Harbor Kernel: Template Merger

Pure function: (SidebarSpec, TemplatePayload) → SidebarSpec

  item   appended to a Manual group's item list
  group  appended, or replaces a same-id group in place (idempotent)
  spec   replaces the target wholesale (destructive, callers must confirm)

The target spec is never modified. Persisting the result is the caller's job.
"""

from __future__ import annotations

from harbor.kernel.errors import StrategyConflict, UnknownGroup
from harbor.kernel.types import Group, Item, Manual, SidebarSpec, TemplatePayload

DEFAULT_TARGET_GROUP = "admin"


def target_group_id(
    payload: TemplatePayload,
    explicit_group_id: str | None = None,
    fallback_group_id: str = DEFAULT_TARGET_GROUP,
) -> str:
    """Explicit choice beats the envelope's groupId, which beats the fallback."""
    return explicit_group_id or payload.group_id or fallback_group_id


def is_destructive(payload: TemplatePayload) -> bool:
    """True when committing the payload overwrites the whole spec."""
    return payload.type == "spec"


def insert_item(spec: SidebarSpec, group_id: str, item: Item) -> SidebarSpec:
    """
    Append an item to a manual group.

    Raises:
        UnknownGroup: no group with that id
        StrategyConflict: the group is query-driven or state-derived
    """
    index = spec.index_of(group_id)
    if index < 0:
        raise UnknownGroup(group_id)

    group = spec.groups[index]
    if not isinstance(group.strategy, Manual):
        raise StrategyConflict(group_id, group.strategy.kind)

    updated = Group(
        id=group.id,
        name=group.name,
        strategy=Manual(items=[*group.strategy.items, item]),
        icon=group.icon,
        user_creatable=group.user_creatable,
    )
    groups = list(spec.groups)
    groups[index] = updated
    return SidebarSpec(groups=groups)


def upsert_group(spec: SidebarSpec, group: Group) -> SidebarSpec:
    """Replace the same-id group at its position, or append."""
    groups = list(spec.groups)
    index = spec.index_of(group.id)
    if index >= 0:
        groups[index] = group
    else:
        groups.append(group)
    return SidebarSpec(groups=groups)


def merge(
    target: SidebarSpec,
    payload: TemplatePayload,
    explicit_group_id: str | None = None,
    fallback_group_id: str = DEFAULT_TARGET_GROUP,
) -> SidebarSpec:
    """
    Merge a classified template into a spec.

    The payload data is loaded into typed objects first, so a template that
    classifies but breaks an invariant raises InvalidSpecification here.
    """
    if payload.type == "item":
        item = Item.from_dict(payload.data)
        group_id = target_group_id(payload, explicit_group_id, fallback_group_id)
        return insert_item(target, group_id, item)

    if payload.type == "group":
        return upsert_group(target, Group.from_dict(payload.data))

    if payload.type == "spec":
        return SidebarSpec.from_dict(payload.data)

    raise ValueError(f"Unknown template type: {payload.type}")
