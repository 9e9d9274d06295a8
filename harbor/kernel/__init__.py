"""
Harbor Kernel: the sidebar specification engine.

Pure components:
  types       SidebarSpec → Group → Item → Query, loaded and validated
  classifier  decoded JSON → TemplatePayload (item | group | spec)
  merger      (SidebarSpec, TemplatePayload) → SidebarSpec
  resolver    :token substitution, per-row item expansion
  navigation  per-tab ViewState stack
  events      project-scoped admin_config_changed pub/sub

Coordinators (IO):
  service     read-merge-write over a SpecStorage, publishes on write
  importer    fetch a template by URL, preview, commit
  deeplink    harbor://import links that open an import session
  sidebar     one project's live view: expanded groups and tabs
"""

from harbor.kernel.classifier import classify, describe
from harbor.kernel.deeplink import DeepLink, generate_import_link, parse_deep_link
from harbor.kernel.events import ChangeHub
from harbor.kernel.importer import ImportSession, TemplateFetcher
from harbor.kernel.merger import merge
from harbor.kernel.navigation import ItemCatalog, NavigationStack
from harbor.kernel.resolver import expand_rows, resolve
from harbor.kernel.service import SpecService
from harbor.kernel.sidebar import QueryRunner, SidebarView
from harbor.kernel.storage import FileStorage, MemoryStorage
from harbor.kernel.types import SidebarSpec

__all__ = [
    "classify",
    "describe",
    "merge",
    "resolve",
    "expand_rows",
    "NavigationStack",
    "ItemCatalog",
    "ChangeHub",
    "SpecService",
    "ImportSession",
    "TemplateFetcher",
    "DeepLink",
    "generate_import_link",
    "parse_deep_link",
    "SidebarView",
    "QueryRunner",
    "MemoryStorage",
    "FileStorage",
    "SidebarSpec",
]
