"""
Harbor Kernel: Shared Types

Data classes for the sidebar specification document. These are the contracts
that bind the classifier, merger, resolver, and navigation together.

Document shape:
  SidebarSpec → Group[] → Item[] → Query[]

JSON keys are camelCase (the on-disk admin.json format), attributes are
snake_case. Unknown keys are ignored on load. Invariant violations raise
InvalidSpecification at load time, so a SidebarSpec in memory is always
well-formed.

Population strategies replace the optional, mutually-significant fields of
the document (items / itemsQuery / itemsSource / itemsFromState) with one
explicit variant per group:
  Manual:       a static list of items
  QueryDriven:  one item per row of a query, built from itemTemplate
  StateDerived: items mirror runtime state (open tabs)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

from harbor.kernel.errors import InvalidSpecification

# ---------------------------------------------------------------------------
# Vocabularies
# ---------------------------------------------------------------------------

RESULT_KINDS: set[str] = {"table", "chart"}

FIELD_TYPES: set[str] = {"text", "textarea", "number", "boolean", "select", "datetime"}

SOURCE_TYPES: set[str] = {"sql", "edge_function"}

STATE_SOURCES: set[str] = {"tabs"}

ACTION_VARIANTS: set[str] = {"default", "destructive"}


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _require_str(d: dict[str, Any], key: str, where: str) -> str:
    value = d.get(key)
    if not isinstance(value, str):
        raise InvalidSpecification(f"{where}: '{key}' must be a string")
    return value


def _optional_str(d: dict[str, Any], key: str, where: str) -> str | None:
    value = d.get(key)
    if value is not None and not isinstance(value, str):
        raise InvalidSpecification(f"{where}: '{key}' must be a string")
    return value


def _optional_list(d: dict[str, Any], key: str, where: str) -> list[Any] | None:
    value = d.get(key)
    if value is not None and not isinstance(value, list):
        raise InvalidSpecification(f"{where}: '{key}' must be an array")
    return value


def _require_object(value: Any, where: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise InvalidSpecification(f"{where}: expected an object")
    return value


# ---------------------------------------------------------------------------
# Query building blocks
# ---------------------------------------------------------------------------


@dataclass
class QuerySource:
    """
    An opaque query payload. `sql` sources hold query text; `edge_function`
    sources hold a JSON config in `value` and the function in `name`.
    """

    value: str
    type: str = "sql"
    name: str | None = None

    def to_json(self) -> str | dict[str, Any]:
        """Plain SQL collapses to a string, anything else stays an object."""
        if self.type == "sql" and self.name is None:
            return self.value
        d: dict[str, Any] = {"type": self.type, "value": self.value}
        if self.name is not None:
            d["name"] = self.name
        return d

    @classmethod
    def from_json(cls, raw: Any, where: str) -> QuerySource:
        if isinstance(raw, str):
            return cls(value=raw)
        d = _require_object(raw, where)
        source_type = d.get("type", "sql")
        if source_type not in SOURCE_TYPES:
            raise InvalidSpecification(f"{where}: unknown source type {source_type!r}")
        return cls(
            value=_require_str(d, "value", where),
            type=source_type,
            name=_optional_str(d, "name", where),
        )


@dataclass
class ChartAxis:
    name: str
    label: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"name": self.name}
        if self.label is not None:
            d["label"] = self.label
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any], where: str) -> ChartAxis:
        d = _require_object(d, where)
        return cls(name=_require_str(d, "name", where), label=_optional_str(d, "label", where))


@dataclass
class ChartSpec:
    x_axis: ChartAxis
    y_axis: list[ChartAxis]

    def to_dict(self) -> dict[str, Any]:
        return {
            "xAxis": self.x_axis.to_dict(),
            "yAxis": [a.to_dict() for a in self.y_axis],
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any], where: str) -> ChartSpec:
        d = _require_object(d, where)
        y_raw = d.get("yAxis")
        if not isinstance(y_raw, list) or not y_raw:
            raise InvalidSpecification(f"{where}: 'yAxis' must be a non-empty array")
        return cls(
            x_axis=ChartAxis.from_dict(d.get("xAxis"), f"{where}.xAxis"),
            y_axis=[ChartAxis.from_dict(a, f"{where}.yAxis") for a in y_raw],
        )


@dataclass
class SelectOption:
    value: str
    label: str

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "label": self.label}


@dataclass
class FormField:
    """One input of a query's parameter form."""

    name: str
    label: str
    type: str = "text"
    required: bool = False
    default_value: str | int | float | bool | None = None
    placeholder: str | None = None
    options: list[SelectOption] | None = None
    options_query: str | None = None

    def static_options(self) -> list[SelectOption]:
        """Options for a select; neither options nor optionsQuery means none."""
        return list(self.options or [])

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"name": self.name, "label": self.label, "type": self.type}
        if self.required:
            d["required"] = True
        if self.default_value is not None:
            d["defaultValue"] = self.default_value
        if self.placeholder is not None:
            d["placeholder"] = self.placeholder
        if self.options is not None:
            d["options"] = [o.to_dict() for o in self.options]
        if self.options_query is not None:
            d["optionsQuery"] = self.options_query
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any], where: str) -> FormField:
        d = _require_object(d, where)
        name = _require_str(d, "name", where)
        where = f"{where} field '{name}'"
        field_type = d.get("type", "text")
        if field_type not in FIELD_TYPES:
            raise InvalidSpecification(f"{where}: unknown field type {field_type!r}")

        options = None
        raw_options = _optional_list(d, "options", where)
        if raw_options is not None:
            options = []
            for o in raw_options:
                o = _require_object(o, f"{where} option")
                options.append(SelectOption(value=str(o.get("value", "")), label=str(o.get("label", o.get("value", "")))))
        options_query = _optional_str(d, "optionsQuery", where)
        if options is not None and options_query is not None:
            raise InvalidSpecification(f"{where}: provide only one of 'options' or 'optionsQuery'")

        return cls(
            name=name,
            label=d.get("label") if isinstance(d.get("label"), str) else name,
            type=field_type,
            required=bool(d.get("required", False)),
            default_value=d.get("defaultValue"),
            placeholder=_optional_str(d, "placeholder", where),
            options=options,
            options_query=options_query,
        )


@dataclass
class RowAction:
    """Static binding from a result row to a navigable item."""

    label: str
    item_id: str
    variant: str = "default"
    params: dict[str, str] | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"label": self.label, "itemId": self.item_id}
        if self.variant != "default":
            d["variant"] = self.variant
        if self.params is not None:
            d["params"] = dict(self.params)
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any], where: str) -> RowAction:
        d = _require_object(d, where)
        variant = d.get("variant", "default")
        if variant not in ACTION_VARIANTS:
            raise InvalidSpecification(f"{where}: unknown variant {variant!r}")
        params = d.get("params")
        if params is not None:
            if not isinstance(params, dict) or not all(isinstance(v, str) for v in params.values()):
                raise InvalidSpecification(f"{where}: 'params' must map names to strings")
            params = dict(params)
        return cls(
            label=_require_str(d, "label", where),
            item_id=_require_str(d, "itemId", where),
            variant=variant,
            params=params,
        )


@dataclass
class PrimaryAction:
    label: str
    item_id: str

    def to_dict(self) -> dict[str, Any]:
        return {"label": self.label, "itemId": self.item_id}

    @classmethod
    def from_dict(cls, d: dict[str, Any], where: str) -> PrimaryAction:
        d = _require_object(d, where)
        return cls(label=_require_str(d, "label", where), item_id=_require_str(d, "itemId", where))


@dataclass
class Query:
    """
    One query block of an item. `results` is "table" (default), "chart",
    or None for statements with no result area.
    """

    source: QuerySource
    results: str | None = "table"
    chart: ChartSpec | None = None
    parameters: list[FormField] = field(default_factory=list)
    load_query: QuerySource | None = None
    row_actions: list[RowAction] = field(default_factory=list)
    return_to_parent: bool = False

    @property
    def sql(self) -> str:
        return self.source.value

    def to_dict(self) -> dict[str, Any]:
        source = self.source.to_json()
        d: dict[str, Any] = {"sql": source} if isinstance(source, str) else {"source": source}
        d["results"] = self.results
        if self.chart is not None:
            d["chart"] = self.chart.to_dict()
        if self.parameters:
            d["parameters"] = [f.to_dict() for f in self.parameters]
        if self.load_query is not None:
            d["loadQuery"] = self.load_query.to_json()
        if self.row_actions:
            d["rowActions"] = [a.to_dict() for a in self.row_actions]
        if self.return_to_parent:
            d["returnToParent"] = True
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any], where: str) -> Query:
        d = _require_object(d, where)
        if isinstance(d.get("sql"), str):
            source = QuerySource(value=d["sql"])
        elif "source" in d:
            source = QuerySource.from_json(d["source"], f"{where}.source")
        else:
            raise InvalidSpecification(f"{where}: query requires 'sql' or 'source'")

        results = d.get("results", "table")
        if results is not None and results not in RESULT_KINDS:
            raise InvalidSpecification(f"{where}: unknown results kind {results!r}")

        chart = None
        if d.get("chart") is not None:
            chart = ChartSpec.from_dict(d["chart"], f"{where}.chart")
        if results == "chart" and chart is None:
            raise InvalidSpecification(f"{where}: results 'chart' requires a 'chart' definition")
        if results != "chart" and chart is not None:
            raise InvalidSpecification(f"{where}: 'chart' is only allowed when results is 'chart'")

        load_query = None
        if d.get("loadQuery") is not None:
            load_query = QuerySource.from_json(d["loadQuery"], f"{where}.loadQuery")

        return cls(
            source=source,
            results=results,
            chart=chart,
            parameters=[FormField.from_dict(f, where) for f in _optional_list(d, "parameters", where) or []],
            load_query=load_query,
            row_actions=[RowAction.from_dict(a, f"{where} row action") for a in _optional_list(d, "rowActions", where) or []],
            return_to_parent=bool(d.get("returnToParent", False)),
        )


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


@dataclass
class Item:
    """
    A navigable sidebar entry. When used as a template, `id`, `name` and
    query text may contain `:token` placeholders.
    """

    id: str
    name: str
    icon: str | None = None
    visible: bool = True
    queries: list[Query] = field(default_factory=list)
    primary_action: PrimaryAction | None = None
    children: list[Item] | None = None
    auto_run: bool = False

    def walk(self):
        """Yield this item and every descendant, depth first."""
        yield self
        for child in self.children or []:
            yield from child.walk()

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"id": self.id, "name": self.name}
        if self.icon is not None:
            d["icon"] = self.icon
        if not self.visible:
            d["visible"] = False
        d["queries"] = [q.to_dict() for q in self.queries]
        if self.primary_action is not None:
            d["primaryAction"] = self.primary_action.to_dict()
        if self.children is not None:
            d["children"] = [c.to_dict() for c in self.children]
        if self.auto_run:
            d["autoRun"] = True
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any], where: str = "item") -> Item:
        d = _require_object(d, where)
        item_id = _require_str(d, "id", where)
        where = f"item '{item_id}'"

        children = None
        raw_children = _optional_list(d, "children", where)
        if raw_children is not None:
            children = [cls.from_dict(c, f"{where} child") for c in raw_children]

        primary = None
        if d.get("primaryAction") is not None:
            primary = PrimaryAction.from_dict(d["primaryAction"], f"{where}.primaryAction")

        return cls(
            id=item_id,
            name=_require_str(d, "name", where),
            icon=_optional_str(d, "icon", where),
            visible=d.get("visible", True) is not False,
            queries=[Query.from_dict(q, f"{where} query") for q in _optional_list(d, "queries", where) or []],
            primary_action=primary,
            children=children,
            auto_run=bool(d.get("autoRun", False)),
        )


# ---------------------------------------------------------------------------
# Population strategies
# ---------------------------------------------------------------------------


@dataclass
class Manual:
    items: list[Item] = field(default_factory=list)

    kind: ClassVar[str] = "manual"


@dataclass
class QueryDriven:
    source: QuerySource
    item_template: Item

    kind: ClassVar[str] = "query"


@dataclass
class StateDerived:
    source: str = "tabs"
    item_template: Item | None = None  # used by userCreatable groups to mint items

    kind: ClassVar[str] = "state"


PopulationStrategy = Union[Manual, QueryDriven, StateDerived]


@dataclass
class Group:
    id: str
    name: str
    strategy: PopulationStrategy = field(default_factory=Manual)
    icon: str | None = None
    user_creatable: bool = False

    @property
    def items(self) -> list[Item]:
        """Static items. Empty for dynamic groups."""
        if isinstance(self.strategy, Manual):
            return self.strategy.items
        return []

    @property
    def item_template(self) -> Item | None:
        if isinstance(self.strategy, Manual):
            return None
        return self.strategy.item_template

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"id": self.id, "name": self.name}
        if self.icon is not None:
            d["icon"] = self.icon

        strategy = self.strategy
        if isinstance(strategy, Manual):
            d["items"] = [i.to_dict() for i in strategy.items]
        elif isinstance(strategy, QueryDriven):
            source = strategy.source.to_json()
            if isinstance(source, str):
                d["itemsQuery"] = source
            else:
                d["itemsSource"] = source
            d["itemTemplate"] = strategy.item_template.to_dict()
        else:
            d["itemsFromState"] = strategy.source
            if strategy.item_template is not None:
                d["itemTemplate"] = strategy.item_template.to_dict()

        if self.user_creatable:
            d["userCreatable"] = True
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any], where: str = "group") -> Group:
        d = _require_object(d, where)
        group_id = _require_str(d, "id", where)
        where = f"group '{group_id}'"

        declared = [
            name
            for name, present in (
                ("items", "items" in d),
                ("itemsQuery", "itemsQuery" in d),
                ("itemsSource", "itemsSource" in d),
                ("itemsFromState", "itemsFromState" in d),
            )
            if present
        ]
        if len(declared) > 1:
            raise InvalidSpecification(f"{where}: declares more than one population strategy ({', '.join(declared)})")

        # Without a query or state source the template is ignored and the group
        # loads as an empty manual group.
        has_source = any(key in d for key in ("itemsQuery", "itemsSource", "itemsFromState"))
        template = None
        if has_source and d.get("itemTemplate") is not None:
            template = Item.from_dict(d["itemTemplate"], f"{where}.itemTemplate")

        strategy: PopulationStrategy
        if "itemsQuery" in d or "itemsSource" in d:
            key = declared[0]
            source = QuerySource.from_json(d[key], f"{where}.{key}")
            if template is None:
                raise InvalidSpecification(f"{where}: '{key}' requires an 'itemTemplate'")
            strategy = QueryDriven(source=source, item_template=template)
        elif "itemsFromState" in d:
            state = d["itemsFromState"]
            if state not in STATE_SOURCES:
                raise InvalidSpecification(f"{where}: unknown itemsFromState {state!r}")
            strategy = StateDerived(source=state, item_template=template)
        else:
            raw_items = _optional_list(d, "items", where) or []
            strategy = Manual(items=[Item.from_dict(i, f"{where} item") for i in raw_items])

        return cls(
            id=group_id,
            name=_require_str(d, "name", where),
            strategy=strategy,
            icon=_optional_str(d, "icon", where),
            user_creatable=bool(d.get("userCreatable", False)),
        )


@dataclass
class SidebarSpec:
    """The whole document. Group order is display order."""

    groups: list[Group] = field(default_factory=list)

    def get_group(self, group_id: str) -> Group | None:
        for group in self.groups:
            if group.id == group_id:
                return group
        return None

    def index_of(self, group_id: str) -> int:
        """Position of a group, or -1."""
        for i, group in enumerate(self.groups):
            if group.id == group_id:
                return i
        return -1

    def to_dict(self) -> dict[str, Any]:
        return {"groups": [g.to_dict() for g in self.groups]}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> SidebarSpec:
        d = _require_object(d, "spec")
        raw_groups = d.get("groups")
        if not isinstance(raw_groups, list):
            raise InvalidSpecification("Invalid spec: missing groups array")

        groups = [Group.from_dict(g) for g in raw_groups]
        seen: set[str] = set()
        for group in groups:
            if group.id in seen:
                raise InvalidSpecification(f"Invalid spec: duplicate group id '{group.id}'")
            seen.add(group.id)
        return cls(groups=groups)


# ---------------------------------------------------------------------------
# Runtime values
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ViewState:
    """One frame of a tab's navigation stack. `params` is fully resolved."""

    item_id: str
    params: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"itemId": self.item_id, "params": dict(self.params)}


@dataclass
class TemplatePayload:
    """
    Classifier output. `data` is the raw decoded JSON of the item, group or
    spec (envelope already unwrapped). Never persisted.
    """

    type: str  # "item" | "group" | "spec"
    data: dict[str, Any]
    group_id: str | None = None
