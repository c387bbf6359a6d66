from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from draftboard.core.ports.vfs import VirtualFileSystem
from draftboard.core.writer import Direction, preflight_swap_sibling_at_location, swap_sibling_at_location
from draftboard.errors import INFORMATIONAL_FAILURES, WriteFailure, failure_message
from draftboard.models import ParentLayout, SourceLocation
from draftboard.notifications import Notifier
from draftboard.protocol.host import HostBus
from draftboard.protocol.messages import KeyboardEventPayload, MessageType

logger = logging.getLogger(__name__)

ARROW_KEYS = frozenset({"ArrowUp", "ArrowDown", "ArrowLeft", "ArrowRight"})
_ROW_KEYS: dict[str, Direction] = {"ArrowLeft": "prev", "ArrowRight": "next"}
_COLUMN_KEYS: dict[str, Direction] = {"ArrowUp": "prev", "ArrowDown": "next"}


@dataclass(frozen=True)
class ReorderResult:
    success: bool
    reason: WriteFailure | None = None
    location: SourceLocation | None = None


def swap_direction(key: str, parent_layout: ParentLayout | None) -> Direction | WriteFailure | None:
    """Map an arrow key to a sibling direction within a flex parent.

    Returns ``NON_REORDERABLE_CONTEXT`` outside flex layouts and ``None``
    for keys that do not move along the parent's main axis.
    """
    if parent_layout is None or parent_layout.layout != "flex":
        return WriteFailure.NON_REORDERABLE_CONTEXT
    keys = _ROW_KEYS if parent_layout.direction == "row" else _COLUMN_KEYS
    direction = keys.get(key)
    if direction is None:
        return None
    if parent_layout.is_reverse:
        return "next" if direction == "prev" else "prev"
    return direction


class KeyboardReorder:
    """Moves the selected preview element among its siblings on arrow keys."""

    def __init__(self, bus: HostBus, vfs: VirtualFileSystem, notifier: Notifier) -> None:
        self.bus = bus
        self.vfs = vfs
        self.notifier = notifier
        self._unsubscribe = bus.on(MessageType.KEYBOARD_EVENT, self.on_keyboard_event)

    def close(self) -> None:
        self._unsubscribe()

    async def on_keyboard_event(self, payload: dict[str, Any]) -> None:
        event = KeyboardEventPayload.model_validate(payload)
        if event.key not in ARROW_KEYS:
            return
        selected = self.bus.selected
        if selected is None:
            return
        if event.selection_id and selected.selection_id and event.selection_id != selected.selection_id:
            logger.debug("Ignoring %s for stale selection %s", event.key, event.selection_id)
            return
        await self.move(event.key, event.parent_layout)

    async def move(self, key: str, parent_layout: ParentLayout | None = None) -> ReorderResult:
        selected = self.bus.selected
        if selected is None or selected.source is None:
            return ReorderResult(False)
        direction = swap_direction(key, parent_layout or selected.parent_layout)
        if direction is None:
            return ReorderResult(False)
        if isinstance(direction, WriteFailure):
            return self._fail(direction)

        source = selected.source
        text = await self.vfs.read_file(source.file)
        if text is None:
            logger.warning("File not found: %s", source.file)
            return self._fail(WriteFailure.SOURCE_NOT_FOUND)

        preflight = preflight_swap_sibling_at_location(text, source, direction)
        if not preflight.success:
            return self._fail(preflight.reason or WriteFailure.UNKNOWN)

        result = swap_sibling_at_location(text, source, direction)
        if not result.success or result.location is None:
            return self._fail(result.reason or WriteFailure.UNKNOWN)

        await self.vfs.write_file(source.file, result.code)
        self.bus.update_selected_source(result.location)
        return ReorderResult(True, location=result.location)

    def _fail(self, reason: WriteFailure) -> ReorderResult:
        message = failure_message(reason)
        if reason in INFORMATIONAL_FAILURES:
            self.notifier.notify("info", message)
        else:
            self.notifier.error(message)
        return ReorderResult(False, reason=reason)
