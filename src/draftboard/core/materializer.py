"""Commit a ghost node from the canvas into real source."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from draftboard.config import Settings, get_settings
from draftboard.core.imports import add_imports_if_missing
from draftboard.core.ports.vfs import VirtualFileSystem
from draftboard.core.scene import SceneGraph
from draftboard.core.synthesis import generate_code
from draftboard.core.writer import find_root_element_location, insert_child_at_location
from draftboard.errors import WriteFailure
from draftboard.models import DropTarget, GeneratedCode, SourceLocation
from draftboard.notifications import Notifier
from draftboard.protocol.host import HostBus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MaterializeResult:
    success: bool
    error: str | None = None
    reason: WriteFailure | None = None
    file: str | None = None
    location: SourceLocation | None = None


class Materializer:
    def __init__(
        self,
        scene: SceneGraph,
        bus: HostBus,
        vfs: VirtualFileSystem,
        notifier: Notifier,
        settings: Settings | None = None,
    ) -> None:
        self.scene = scene
        self.bus = bus
        self.vfs = vfs
        self.notifier = notifier
        self.settings = settings or get_settings()

    async def materialize(self, node_id: str, x: float, y: float, page_id: str | None = None) -> MaterializeResult:
        """Write the node (and its subtree) into the element under preview point (x, y).

        Falls back to the root element of the fallback file when the preview
        cannot name a container. On success the ghost node leaves the scene.
        """
        node = self.scene.get(node_id)
        if node is None:
            return self._fail(f"Unknown node {node_id!r}")

        await self.bus.insert_placeholder(x, y, node.component_type or node.kind.value, page_id)
        try:
            drop_target = await self.bus.find_drop_target(x, y, page_id)
            # The scene may have changed while we waited on the preview.
            node = self.scene.get(node_id)
            if node is None:
                return self._fail("The element was removed before it could be placed")
            generated = generate_code(node, self.scene.nodes)
            result = await self._write(generated, drop_target)
        finally:
            self.bus.schedule(self.settings.placeholder_removal_delay, lambda: self.bus.remove_placeholder(page_id))

        if not result.success:
            self.notifier.error(result.error or "Failed to insert code")
            return result
        self.scene.remove_node(node_id)
        logger.info("Materialized %s into %s at %s", node_id, result.file, result.location)
        return result

    async def _write(self, generated: GeneratedCode, drop_target: DropTarget | None) -> MaterializeResult:
        use_target = drop_target is not None and drop_target.is_container and drop_target.source is not None
        if use_target:
            assert drop_target is not None and drop_target.source is not None
            target_file = drop_target.source.file
        else:
            target_file = self.settings.fallback_file

        original = await self.vfs.read_file(target_file)
        if original is None:
            return MaterializeResult(False, f"File not found: {target_file}", WriteFailure.SOURCE_NOT_FOUND)

        location = drop_target.source if use_target and drop_target is not None else None
        if location is None:
            location = find_root_element_location(original, target_file)
            if location is None:
                return MaterializeResult(
                    False, "Could not find a valid insertion point in the code", WriteFailure.SOURCE_NOT_FOUND
                )

        merged = add_imports_if_missing(original, generated.imports, target_file)
        if not merged.success:
            return MaterializeResult(False, merged.error or "Failed to add imports", WriteFailure.PARSE_FAILURE)
        code = merged.code
        location = location.model_copy(update={"line": location.line + merged.line_offset})

        inserted = insert_child_at_location(code, location, generated.markup, "last")
        if not inserted.success and use_target:
            logger.info("Drop target %s is stale, falling back to the root of %s", location, target_file)
            fallback = find_root_element_location(code, target_file)
            if fallback is not None:
                inserted = insert_child_at_location(code, fallback, generated.markup, "last")
        if not inserted.success:
            return MaterializeResult(False, inserted.error or "Failed to insert code", inserted.reason)

        await self.vfs.write_file(target_file, inserted.code)
        return MaterializeResult(True, file=target_file, location=inserted.location)

    def _fail(self, message: str) -> MaterializeResult:
        self.notifier.error(message)
        return MaterializeResult(False, message)
