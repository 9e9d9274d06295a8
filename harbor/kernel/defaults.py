"""
Default sidebar spec, served when a project has no stored admin.json.

Two groups: "tables" lists every public table via a query, "scripts"
mirrors the open script tabs and lets the user create new ones.
"""

from __future__ import annotations

import copy
from typing import Any

from harbor.kernel.types import SidebarSpec

DEFAULT_SIDEBAR_SPEC: dict[str, Any] = {
    "groups": [
        {
            "id": "tables",
            "name": "Tables",
            "icon": "table",
            "itemsSource": {
                "type": "sql",
                "value": (
                    "SELECT schemaname AS schema, tablename AS name FROM pg_tables "
                    "WHERE schemaname = 'public' ORDER BY tablename"
                ),
            },
            "itemTemplate": {
                "id": ":schema.:name",
                "icon": "table",
                "name": ":name",
                "visible": True,
                "autoRun": True,
                "queries": [
                    {
                        "source": {"type": "sql", "value": 'SELECT * FROM ":schema".":name" LIMIT 100'},
                        "results": "table",
                    }
                ],
            },
        },
        {
            "id": "scripts",
            "name": "Scripts",
            "icon": "file-text",
            "itemsFromState": "tabs",
            "userCreatable": True,
            "itemTemplate": {
                "id": ":id",
                "name": "Untitled",
                "icon": "file-text",
                "visible": True,
                "queries": [
                    {
                        "source": {"type": "sql", "value": ""},
                        "results": "table",
                    }
                ],
            },
        },
    ]
}


def default_spec() -> SidebarSpec:
    """A fresh copy; callers may build on it freely."""
    return SidebarSpec.from_dict(copy.deepcopy(DEFAULT_SIDEBAR_SPEC))
