"""
Import deep links.

  harbor://import?url=<encoded template url>&groupId=<optional group id>

Opening such a link starts an import session pre-filled with the URL and
target group.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import parse_qs, urlencode, urlsplit

SCHEME = "harbor"
IMPORT_ACTION = "import"


@dataclass(frozen=True)
class DeepLink:
    template_url: str
    group_id: str | None = None


def generate_import_link(template_url: str, group_id: str | None = None) -> str:
    query = {"url": template_url}
    if group_id:
        query["groupId"] = group_id
    return f"{SCHEME}://{IMPORT_ACTION}?{urlencode(query)}"


def parse_deep_link(link: str) -> DeepLink | None:
    """Returns None for anything that is not a well-formed import link."""
    parts = urlsplit(link)
    if parts.scheme != SCHEME or parts.netloc != IMPORT_ACTION:
        return None

    query = parse_qs(parts.query)
    urls = query.get("url")
    if not urls or not urls[0]:
        return None
    groups = query.get("groupId")
    return DeepLink(template_url=urls[0], group_id=groups[0] if groups and groups[0] else None)
