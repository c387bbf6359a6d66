from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from draftboard.models import CanvasNode, LayoutConfig


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


def world_position(node: CanvasNode, nodes: Mapping[str, CanvasNode]) -> tuple[float, float]:
    """Accumulate ancestor offsets (and their padding) up to the root."""
    x, y = node.x, node.y
    seen = {node.id}
    parent_id = node.parent_id
    while parent_id is not None:
        parent = nodes.get(parent_id)
        if parent is None or parent.id in seen:
            break
        seen.add(parent.id)
        padding = parent.layout.padding if parent.layout else 0
        x += parent.x + padding
        y += parent.y + padding
        parent_id = parent.parent_id
    return x, y


def world_rect(node: CanvasNode, nodes: Mapping[str, CanvasNode]) -> Rect:
    x, y = world_position(node, nodes)
    return Rect(x, y, node.width, node.height)


def bounding_box(rects: Sequence[Rect]) -> Rect | None:
    if not rects:
        return None
    left = min(r.x for r in rects)
    top = min(r.y for r in rects)
    right = max(r.right for r in rects)
    bottom = max(r.bottom for r in rects)
    return Rect(left, top, right - left, bottom - top)


def content_origin(container: CanvasNode | None, nodes: Mapping[str, CanvasNode]) -> tuple[float, float]:
    """World position of the point children of ``container`` measure from; (0, 0) for the root."""
    if container is None:
        return 0.0, 0.0
    x, y = world_position(container, nodes)
    padding = container.layout.padding if container.layout else 0
    return x + padding, y + padding


def world_to_local(
    world_x: float, world_y: float, container: CanvasNode | None, nodes: Mapping[str, CanvasNode]
) -> tuple[float, float]:
    origin_x, origin_y = content_origin(container, nodes)
    return world_x - origin_x, world_y - origin_y


def auto_layout_positions(children: Sequence[CanvasNode], layout: LayoutConfig) -> list[tuple[float, float]]:
    positions: list[tuple[float, float]] = []
    cursor = 0.0
    for child in children:
        if layout.direction == "row":
            positions.append((cursor, 0.0))
            cursor += child.width + layout.gap
        else:
            positions.append((0.0, cursor))
            cursor += child.height + layout.gap
    return positions


def auto_layout_size(children: Sequence[CanvasNode], layout: LayoutConfig) -> tuple[float, float]:
    """Container (width, height) that fits ``children`` laid out along one axis."""
    edge = 2 * layout.padding
    if not children:
        return edge, edge
    gaps = layout.gap * (len(children) - 1)
    if layout.direction == "row":
        width = sum(c.width for c in children) + gaps
        height = max(c.height for c in children)
    else:
        width = max(c.width for c in children)
        height = sum(c.height for c in children) + gaps
    return width + edge, height + edge
