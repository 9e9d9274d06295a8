"""
Harbor Kernel: Errors

Every failure the kernel reports is a HarborError. Callers (the API layer,
the sidebar view) catch the base class and map subclasses to user-facing
messages or HTTP status codes.
"""

from __future__ import annotations


class HarborError(Exception):
    """Base class for all kernel errors."""


class InvalidSpecification(HarborError):
    """A specification document violates the data-model invariants."""


class ClassificationError(HarborError):
    """A template document matches none of the known shapes."""

    def __init__(self, message: str = "unrecognized template shape") -> None:
        super().__init__(message)


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


class MergeError(HarborError):
    """A classified template cannot be merged into the target spec."""


class UnknownGroup(MergeError):
    def __init__(self, group_id: str) -> None:
        self.group_id = group_id
        super().__init__(f"Group '{group_id}' not found")


class StrategyConflict(MergeError):
    def __init__(self, group_id: str, strategy: str) -> None:
        self.group_id = group_id
        self.strategy = strategy
        super().__init__(f"Group '{group_id}' is populated by '{strategy}' and cannot receive manually imported items")


class ReplaceNotConfirmed(HarborError):
    """A whole-spec import was committed without confirming the replacement."""

    def __init__(self, project_id: str) -> None:
        self.project_id = project_id
        super().__init__(f"Importing a full sidebar replaces the entire configuration of project {project_id}; confirmation required")


# ---------------------------------------------------------------------------
# IO
# ---------------------------------------------------------------------------


class FetchError(HarborError):
    """Template download failed: network error, non-2xx status, or bad JSON."""

    def __init__(self, url: str, reason: str, status: int | None = None) -> None:
        self.url = url
        self.reason = reason
        self.status = status
        if status is not None:
            message = f"Failed to fetch: {status} {reason}".rstrip()
        else:
            message = f"Failed to fetch: {reason}"
        super().__init__(message)


class PersistenceError(HarborError):
    """The storage adapter failed to read or write a document."""


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------


class NavigationError(HarborError):
    """A navigation transition could not be completed."""


class UnresolvedParameterError(NavigationError):
    def __init__(self, template: str, tokens: list[str]) -> None:
        self.template = template
        self.tokens = tokens
        names = ", ".join(f":{t}" for t in tokens)
        super().__init__(f"Unresolved parameters {names} in '{template}'")


class UnknownItemError(NavigationError):
    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(f"Item '{item_id}' not found")
