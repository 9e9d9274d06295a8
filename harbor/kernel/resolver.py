"""
Harbor Kernel: Parameter Resolver

Best-effort `:token` templating over item ids, names, and query text.

  resolve(":schema.:name", {"schema": "public", "name": "users"}) → "public.users"
  resolve(":missing", {})                                           → ":missing"

Missing bindings never raise. The token stays in the output and is reported
by resolve_tokens(), so navigation can refuse to push a half-resolved frame.

Qualified tokens address a namespace explicitly:
  :row.<column>    a column of the row the action was triggered from
  :params.<name>   a parameter of the current navigation frame
If a dotted token has no binding, the leading identifier is tried on its own
and the remainder is kept literally, so ":schema.users" still resolves
":schema". Postgres casts ("::text") are never treated as tokens.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field, replace
from typing import Any

from harbor.kernel.types import Item, Query

TOKEN_PATTERN = re.compile(r"(?<!:):([A-Za-z0-9_]+(?:\.[A-Za-z0-9_]+)*)")

ROW_NAMESPACE = "row"
PARAMS_NAMESPACE = "params"


@dataclass
class Resolution:
    text: str
    missing: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.missing


# ---------------------------------------------------------------------------
# Core substitution
# ---------------------------------------------------------------------------


def resolve_tokens(template: str, bindings: dict[str, str]) -> Resolution:
    """Substitute every bound token; collect the ones left in place."""
    missing: list[str] = []

    def _sub(match: re.Match[str]) -> str:
        token = match.group(1)
        if token in bindings:
            return bindings[token]
        head, dot, rest = token.partition(".")
        if dot and head in bindings:
            return f"{bindings[head]}.{rest}"
        missing.append(token)
        return match.group(0)

    return Resolution(text=TOKEN_PATTERN.sub(_sub, template), missing=missing)


def resolve(template: str, bindings: dict[str, str]) -> str:
    return resolve_tokens(template, bindings).text


def has_tokens(template: str) -> bool:
    return TOKEN_PATTERN.search(template) is not None


# ---------------------------------------------------------------------------
# Row bindings
# ---------------------------------------------------------------------------


def stringify(value: Any) -> str:
    """Render a result cell the way it appears in a resolved template."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def row_bindings(row: dict[str, Any]) -> dict[str, str]:
    """Every column of the row, keyed by column name."""
    return {str(column): stringify(value) for column, value in row.items()}


def navigation_bindings(
    params: dict[str, str] | None = None,
    row: dict[str, Any] | None = None,
) -> dict[str, str]:
    """
    Bindings visible to a navigation action, lowest precedence first:
    current params, then row columns. Both are also reachable through their
    qualified namespace (:params.x, :row.x).
    """
    bindings: dict[str, str] = {}
    for name, value in (params or {}).items():
        bindings[name] = value
        bindings[f"{PARAMS_NAMESPACE}.{name}"] = value
    for column, value in row_bindings(row or {}).items():
        bindings[column] = value
        bindings[f"{ROW_NAMESPACE}.{column}"] = value
    return bindings


def bind_action_params(
    action_params: dict[str, str],
    bindings: dict[str, str],
    row: dict[str, Any] | None = None,
) -> tuple[dict[str, str], list[str]]:
    """
    Resolve a row action's param map.

    A value with tokens is resolved against `bindings`. A token-free value
    naming a row column takes that column's value. Anything else is literal.
    Returns (params, unresolved tokens).
    """
    row = row or {}
    resolved: dict[str, str] = {}
    missing: list[str] = []
    for name, template in action_params.items():
        if has_tokens(template):
            result = resolve_tokens(template, bindings)
            resolved[name] = result.text
            missing.extend(result.missing)
        elif template in row:
            resolved[name] = stringify(row[template])
        else:
            resolved[name] = template
    return resolved, missing


# ---------------------------------------------------------------------------
# Item templates
# ---------------------------------------------------------------------------


@dataclass
class ConcreteItem:
    """An item template expanded for one row, with the row as its params."""

    item: Item
    params: dict[str, str]


def _resolve_query(query: Query, bindings: dict[str, str]) -> Query:
    return replace(query, source=replace(query.source, value=resolve(query.source.value, bindings)))


def expand_item(template: Item, bindings: dict[str, str]) -> Item:
    """Resolve id, name, and every query's text. Other fields are shared."""
    return replace(
        template,
        id=resolve(template.id, bindings),
        name=resolve(template.name, bindings),
        queries=[_resolve_query(q, bindings) for q in template.queries],
    )


def expand_rows(template: Item, rows: list[dict[str, Any]]) -> list[ConcreteItem]:
    """
    One concrete item per row. Resolved ids identify items within the
    group; when two rows resolve to the same id the later row wins.
    """
    expanded: dict[str, ConcreteItem] = {}
    for row in rows:
        params = row_bindings(row)
        item = expand_item(template, params)
        expanded[item.id] = ConcreteItem(item=item, params=params)
    return list(expanded.values())


# ---------------------------------------------------------------------------
# SQL literals
# ---------------------------------------------------------------------------


def _sql_literal(value: Any) -> str:
    if value is None:
        return "NULL"
    return "'" + stringify(value).replace("'", "''") + "'"


def render_sql(template: str, values: dict[str, Any]) -> str:
    """
    Substitute `:name` with a quoted SQL literal. Absent values become NULL.
    Used for loadQuery, which pre-fills a form from the current params.
    """

    def _sub(match: re.Match[str]) -> str:
        return _sql_literal(values.get(match.group(1)))

    return re.sub(r"(?<!:):([A-Za-z0-9_]+)", _sub, template)
