from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for everything that crosses the host/frame boundary (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SourceLocation(WireModel):
    file: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"

    @classmethod
    def from_stamp(cls, value: str) -> "SourceLocation":
        """Parse a ``file:line:column`` stamp as written by the instrumenter."""
        file, line, column = value.rsplit(":", 2)
        return cls(file=file, line=int(line), column=int(column))


class ParentLayout(WireModel):
    layout: Literal["flex", "grid", "block"] = "block"
    direction: Literal["row", "column"] = "column"
    is_reverse: bool = False
    parent_source: SourceLocation | None = None


class SelectedElement(WireModel):
    selector: str
    tag_name: str
    selection_id: str
    source: SourceLocation | None = None
    instance_source: SourceLocation | None = None
    parent_layout: ParentLayout | None = None
    page_id: str | None = None
    class_name: str | None = None
    text_content: str | None = None


class DropTarget(WireModel):
    is_container: bool = False
    source: SourceLocation | None = None
    tag_name: str | None = None
    selector: str | None = None


class ImportRequirement(WireModel):
    component_name: str
    import_path: str
    is_named_export: bool = True


class GeneratedCode(BaseModel):
    markup: str
    imports: list[ImportRequirement] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Scene graph
# ---------------------------------------------------------------------------


class NodeKind(str, Enum):
    FRAME = "frame"
    GROUP = "group"
    COMPONENT = "component"
    TEXT = "text"


class LayoutConfig(WireModel):
    direction: Literal["row", "column"] = "row"
    gap: float = 8
    padding: float = 0
    align_items: Literal["start", "center", "end", "stretch"] | None = None


class NodeStyle(WireModel):
    background_color: str | None = None
    border_width: float | None = None
    border_color: str | None = None
    border_radius: float | None = None


class CanvasNode(WireModel):
    id: str
    kind: NodeKind = NodeKind.COMPONENT
    x: float = 0
    y: float = 0
    width: float = 100
    height: float = 40
    parent_id: str | None = None
    children: list[str] = Field(default_factory=list)
    layout: LayoutConfig | None = None
    style: NodeStyle | None = None
    component_type: str | None = None
    name: str | None = None
    content: str | None = None
    props: dict[str, str | bool | int | float] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Preview sync
# ---------------------------------------------------------------------------


class SyncBatch(WireModel):
    """One coalesced push of instrumented files to the preview sandbox."""

    updates: dict[str, str] = Field(default_factory=dict)
    deletes: list[str] = Field(default_factory=list)
    full_reset: bool = False
    reasons: list[str] = Field(default_factory=list)
    dependencies: dict[str, str] = Field(default_factory=dict)
