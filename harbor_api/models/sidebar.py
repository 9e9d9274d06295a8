"""Request/response models for the sidebar and template routes."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class SpecResponse(BaseModel):
    """What GET /sidebar returns."""

    spec: dict[str, Any]
    has_stored: bool


class SaveSpecRequest(BaseModel):
    """What the client sends to replace a project's sidebar."""

    model_config = {"extra": "forbid"}

    spec: dict[str, Any]


class AddGroupRequest(BaseModel):
    model_config = {"extra": "forbid"}

    group: dict[str, Any]


class AddItemRequest(BaseModel):
    model_config = {"extra": "forbid"}

    item: dict[str, Any]


class PreviewRequest(BaseModel):
    """A template URL to classify without importing."""

    model_config = {"extra": "forbid"}

    url: str = Field(min_length=1, max_length=2048)


class PreviewResponse(BaseModel):
    type: Literal["item", "group", "spec"]
    group_id: str | None = None
    summary: str
    destructive: bool


class ImportRequest(BaseModel):
    """
    Fetch a template and merge it into the project's sidebar.
    `group_id` targets item imports; a `spec` import needs confirm_replace.
    """

    model_config = {"extra": "forbid"}

    url: str = Field(min_length=1, max_length=2048)
    group_id: str | None = None
    confirm_replace: bool = False


class ImportResponse(BaseModel):
    type: Literal["item", "group", "spec"]
    spec: dict[str, Any]
