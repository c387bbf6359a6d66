"""In-memory scene graph of ghost canvas nodes.

Nodes live in a flat ``id -> CanvasNode`` arena; structure is carried by each
node's ``parent_id`` and its parent's ordered ``children`` list (or
``root_ids`` for top-level nodes). Every mutation builds the new arena off to
the side and commits it in one step, so a rejected operation leaves the store
exactly as it was.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from draftboard.core.geometry import (
    Rect,
    auto_layout_positions,
    auto_layout_size,
    bounding_box,
    world_position,
    world_rect,
    world_to_local,
)
from draftboard.errors import SceneGraphError
from draftboard.models import CanvasNode, LayoutConfig, NodeKind, NodeStyle

logger = logging.getLogger(__name__)

_IMMUTABLE_FIELDS = frozenset({"id", "children"})
DEFAULT_GROUP_LAYOUT = LayoutConfig(direction="row", gap=8)


@dataclass
class Selection:
    ids: list[str] = field(default_factory=list)
    primary_id: str | None = None

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.ids


def new_node_id() -> str:
    return uuid.uuid4().hex[:12]


class SceneGraph:
    def __init__(self) -> None:
        self.nodes: dict[str, CanvasNode] = {}
        self.root_ids: list[str] = []
        self.selection = Selection()
        self._group_counter = 1

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, node_id: str) -> CanvasNode | None:
        return self.nodes.get(node_id)

    def children_of(self, node_id: str | None) -> list[CanvasNode]:
        ids = self.root_ids if node_id is None else self._require(node_id).children
        return [self.nodes[child_id] for child_id in ids if child_id in self.nodes]

    def world_position(self, node_id: str) -> tuple[float, float]:
        return world_position(self._require(node_id), self.nodes)

    def selected_nodes(self) -> list[CanvasNode]:
        return [self.nodes[node_id] for node_id in self.selection.ids if node_id in self.nodes]

    def selection_bounding_box(self) -> Rect | None:
        return bounding_box([world_rect(node, self.nodes) for node in self.selected_nodes()])

    def descendants(self, node_id: str) -> Iterator[str]:
        stack = list(reversed(self._require(node_id).children))
        while stack:
            current = stack.pop()
            yield current
            node = self.nodes.get(current)
            if node is not None:
                stack.extend(reversed(node.children))

    def check_integrity(self) -> None:
        """Raise ``SceneGraphError`` describing the first broken structural invariant."""
        listed: dict[str, int] = {}
        for node_id in self.root_ids:
            listed[node_id] = listed.get(node_id, 0) + 1
            node = self.nodes.get(node_id)
            if node is None:
                raise SceneGraphError(f"Root {node_id!r} does not exist")
            if node.parent_id is not None:
                raise SceneGraphError(f"Root {node_id!r} has parent {node.parent_id!r}")

        for node in self.nodes.values():
            for child_id in node.children:
                listed[child_id] = listed.get(child_id, 0) + 1
                child = self.nodes.get(child_id)
                if child is None:
                    raise SceneGraphError(f"{node.id!r} lists missing child {child_id!r}")
                if child.parent_id != node.id:
                    raise SceneGraphError(f"{child_id!r} is listed by {node.id!r} but points at {child.parent_id!r}")

        for node_id, node in self.nodes.items():
            if listed.get(node_id, 0) != 1:
                raise SceneGraphError(f"{node_id!r} is listed {listed.get(node_id, 0)} times")
            if node.parent_id is not None and node.parent_id not in self.nodes:
                raise SceneGraphError(f"{node_id!r} points at missing parent {node.parent_id!r}")
            if node_id in self._ancestors(node_id, self.nodes):
                raise SceneGraphError(f"{node_id!r} is its own ancestor")

        for node_id in self.selection.ids:
            if node_id not in self.nodes:
                raise SceneGraphError(f"Selected id {node_id!r} does not exist")
        if len(set(self.selection.ids)) != len(self.selection.ids):
            raise SceneGraphError("Selection lists an id twice")
        primary = self.selection.primary_id
        if primary is not None and primary not in self.selection.ids:
            raise SceneGraphError(f"Primary {primary!r} is not selected")

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def add_node(self, node: CanvasNode) -> CanvasNode:
        """Insert ``node`` under its ``parent_id`` (or at the root).

        Children arrive by adding them with ``parent_id`` set, so any
        ``children`` on the incoming node are ignored.
        """
        if node.id in self.nodes:
            raise SceneGraphError(f"Node {node.id!r} already exists")
        if node.parent_id is not None and node.parent_id not in self.nodes:
            raise SceneGraphError(f"Parent {node.parent_id!r} does not exist")

        node = node.model_copy(deep=True, update={"children": []})
        nodes = dict(self.nodes)
        roots = list(self.root_ids)
        nodes[node.id] = node
        self._attach(nodes, roots, node.id, node.parent_id)
        self._commit(nodes, roots)
        return node

    def update_node(self, node_id: str, **changes: Any) -> CanvasNode | None:
        node = self.nodes.get(node_id)
        if node is None:
            return None
        forbidden = _IMMUTABLE_FIELDS.intersection(changes)
        if forbidden:
            raise SceneGraphError(f"Fields {sorted(forbidden)} cannot be updated directly")
        unknown = set(changes) - set(CanvasNode.model_fields)
        if unknown:
            raise SceneGraphError(f"Unknown node fields {sorted(unknown)}")

        updated = CanvasNode.model_validate({**node.model_dump(), **changes})
        nodes = dict(self.nodes)
        roots = list(self.root_ids)
        nodes[node_id] = updated

        if "parent_id" in changes and updated.parent_id != node.parent_id:
            new_parent = updated.parent_id
            if new_parent is not None:
                if new_parent not in self.nodes:
                    raise SceneGraphError(f"Parent {new_parent!r} does not exist")
                if new_parent == node_id or new_parent in set(self.descendants(node_id)):
                    raise SceneGraphError(f"Cannot move {node_id!r} under itself")
            self._detach(nodes, roots, node_id, node.parent_id)
            self._attach(nodes, roots, node_id, new_parent)

        self._commit(nodes, roots)
        return updated

    def remove_node(self, node_id: str) -> bool:
        node = self.nodes.get(node_id)
        if node is None:
            return False
        removed = {node_id, *self.descendants(node_id)}
        nodes = {key: value for key, value in self.nodes.items() if key not in removed}
        roots = [root for root in self.root_ids if root not in removed]
        if node.parent_id is not None and node.parent_id in nodes:
            self._detach(nodes, roots, node_id, node.parent_id)
        self._commit(nodes, roots)
        self._set_selection([i for i in self.selection.ids if i not in removed], keep_primary=True)
        return True

    def clear(self) -> None:
        self.nodes = {}
        self.root_ids = []
        self.selection = Selection()

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select(self, node_id: str, additive: bool = False) -> None:
        if node_id not in self.nodes:
            return
        if not additive:
            self.selection = Selection(ids=[node_id], primary_id=node_id)
            return
        ids = list(self.selection.ids)
        if node_id not in ids:
            ids.append(node_id)
        self.selection = Selection(ids=ids, primary_id=node_id)

    def deselect(self, node_id: str) -> None:
        if node_id in self.selection:
            self._set_selection([i for i in self.selection.ids if i != node_id], keep_primary=True)

    def deselect_all(self) -> None:
        self.selection = Selection()

    def toggle_selection(self, node_id: str) -> None:
        if node_id not in self.nodes:
            return
        if node_id in self.selection:
            self.deselect(node_id)
        else:
            self.select(node_id, additive=True)

    def _set_selection(self, ids: list[str], keep_primary: bool) -> None:
        primary = self.selection.primary_id if keep_primary else None
        if primary not in ids:
            primary = ids[0] if ids else None
        self.selection = Selection(ids=ids, primary_id=primary)

    # ------------------------------------------------------------------
    # Grouping and layout
    # ------------------------------------------------------------------

    def group_selection(self) -> str | None:
        """Wrap the selected siblings in a new auto-layout group and select it."""
        members = self.selected_nodes()
        if len(members) < 2:
            return None
        if len({member.parent_id for member in members}) > 1:
            members = [member for member in members if member.parent_id is None]
            if len(members) < 2:
                logger.debug("Refusing to group selection spanning several parents")
                return None

        parent_id = members[0].parent_id
        parent = self.nodes.get(parent_id) if parent_id is not None else None
        siblings = self.root_ids if parent is None else parent.children
        members.sort(key=lambda member: siblings.index(member.id))

        bbox = bounding_box([world_rect(member, self.nodes) for member in members])
        assert bbox is not None
        group_x, group_y = world_to_local(bbox.x, bbox.y, parent, self.nodes)
        group = CanvasNode(
            id=new_node_id(),
            kind=NodeKind.GROUP,
            x=group_x,
            y=group_y,
            width=bbox.width,
            height=bbox.height,
            parent_id=parent_id,
            name=f"Group {self._group_counter}",
            layout=DEFAULT_GROUP_LAYOUT.model_copy(),
        )

        nodes = dict(self.nodes)
        roots = list(self.root_ids)
        member_ids = [member.id for member in members]
        index = siblings.index(member_ids[0])
        remaining = [sibling for sibling in siblings if sibling not in member_ids]
        remaining.insert(min(index, len(remaining)), group.id)
        if parent is None:
            roots = remaining
        else:
            nodes[parent.id] = parent.model_copy(update={"children": remaining})

        nodes[group.id] = group.model_copy(update={"children": member_ids})
        for member in members:
            wx, wy = world_position(member, self.nodes)
            local_x, local_y = world_to_local(wx, wy, nodes[group.id], nodes)
            nodes[member.id] = member.model_copy(update={"x": local_x, "y": local_y, "parent_id": group.id})
        self._relayout(nodes, group.id)

        self._commit(nodes, roots)
        self._group_counter += 1
        self.selection = Selection(ids=[group.id], primary_id=group.id)
        logger.debug("Grouped %s into %s", member_ids, group.id)
        return group.id

    def ungroup_node(self, node_id: str) -> list[str]:
        group = self.nodes.get(node_id)
        if group is None or not group.children:
            return []
        parent = self.nodes.get(group.parent_id) if group.parent_id is not None else None
        child_ids = list(group.children)

        nodes = dict(self.nodes)
        roots = list(self.root_ids)
        siblings = list(roots if parent is None else parent.children)
        index = siblings.index(node_id)
        siblings[index : index + 1] = child_ids
        if parent is None:
            roots = siblings
        else:
            nodes[parent.id] = parent.model_copy(update={"children": siblings})

        for child_id in child_ids:
            child = self.nodes[child_id]
            wx, wy = world_position(child, self.nodes)
            local_x, local_y = world_to_local(wx, wy, parent, self.nodes)
            nodes[child_id] = child.model_copy(update={"x": local_x, "y": local_y, "parent_id": group.parent_id})
        del nodes[node_id]

        self._commit(nodes, roots)
        self.selection = Selection(ids=child_ids, primary_id=child_ids[0])
        return child_ids

    def set_layout(self, node_id: str, layout: LayoutConfig | None) -> CanvasNode | None:
        node = self.nodes.get(node_id)
        if node is None:
            return None
        nodes = dict(self.nodes)
        nodes[node_id] = node.model_copy(update={"layout": layout})
        if layout is not None and node.children:
            self._relayout(nodes, node_id)
        self._commit(nodes, list(self.root_ids))
        return self.nodes[node_id]

    def set_style(self, node_id: str, style: NodeStyle | None) -> CanvasNode | None:
        node = self.nodes.get(node_id)
        if node is None:
            return None
        self.nodes[node_id] = node.model_copy(update={"style": style})
        return self.nodes[node_id]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, node_id: str) -> CanvasNode:
        node = self.nodes.get(node_id)
        if node is None:
            raise SceneGraphError(f"Node {node_id!r} does not exist")
        return node

    def _commit(self, nodes: dict[str, CanvasNode], roots: list[str]) -> None:
        self.nodes = nodes
        self.root_ids = roots

    @staticmethod
    def _attach(nodes: dict[str, CanvasNode], roots: list[str], node_id: str, parent_id: str | None) -> None:
        if parent_id is None:
            if node_id not in roots:
                roots.append(node_id)
            return
        parent = nodes[parent_id]
        if node_id not in parent.children:
            nodes[parent_id] = parent.model_copy(update={"children": [*parent.children, node_id]})

    @staticmethod
    def _detach(nodes: dict[str, CanvasNode], roots: list[str], node_id: str, parent_id: str | None) -> None:
        if parent_id is None:
            if node_id in roots:
                roots.remove(node_id)
            return
        parent = nodes[parent_id]
        nodes[parent_id] = parent.model_copy(update={"children": [c for c in parent.children if c != node_id]})

    @staticmethod
    def _relayout(nodes: dict[str, CanvasNode], container_id: str) -> None:
        container = nodes[container_id]
        if container.layout is None:
            return
        children = [nodes[child_id] for child_id in container.children]
        for child, (x, y) in zip(children, auto_layout_positions(children, container.layout)):
            nodes[child.id] = child.model_copy(update={"x": x, "y": y})
        width, height = auto_layout_size(children, container.layout)
        nodes[container_id] = container.model_copy(update={"width": width, "height": height})

    @staticmethod
    def _ancestors(node_id: str, nodes: dict[str, CanvasNode]) -> set[str]:
        seen: set[str] = set()
        current = nodes.get(node_id)
        while current is not None and current.parent_id is not None:
            if current.parent_id in seen:
                break
            seen.add(current.parent_id)
            current = nodes.get(current.parent_id)
        return seen
