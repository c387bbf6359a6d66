from __future__ import annotations

from typing import Literal

from pydantic import Field

from draftboard.models import CanvasNode, SourceLocation, WireModel


class HealthResponse(WireModel):
    status: str = "ok"


class ReadinessResponse(WireModel):
    status: str = "ok"
    session: str = "up"
    preview_errors: int = 0


class SelectionSchema(WireModel):
    ids: list[str] = Field(default_factory=list)
    primary_id: str | None = None


class SceneResponse(WireModel):
    nodes: list[CanvasNode]
    root_ids: list[str]
    selection: SelectionSchema


class SelectionRequest(WireModel):
    """``node_id`` is required for every action but ``clear``."""

    action: Literal["select", "deselect", "toggle", "clear"] = "select"
    node_id: str | None = None
    additive: bool = False


class GroupResponse(WireModel):
    group_id: str


class UngroupResponse(WireModel):
    child_ids: list[str]


class MaterializeRequest(WireModel):
    x: float
    y: float
    page_id: str | None = None


class MaterializeResponse(WireModel):
    success: bool
    error: str | None = None
    reason: str | None = None
    file: str | None = None
    location: SourceLocation | None = None


class PreviewFilesResponse(WireModel):
    version: int
    files: dict[str, str]
    dependencies: dict[str, str]
    errors: dict[str, str] = Field(default_factory=dict)


class ModesRequest(WireModel):
    inspection_mode: bool | None = None
    flow_mode: bool | None = None


class ModesResponse(WireModel):
    inspection_mode: bool
    flow_mode: bool


class NotificationSchema(WireModel):
    id: int
    level: str
    message: str
