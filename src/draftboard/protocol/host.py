"""Host side of the host/preview message bus.

Frames live in isolated, independently reloading sandboxes, so the host never
calls into them: it sends fire-and-forget messages, re-broadcasts its global
toggles whenever a frame may have lost them, and resolves at most one
drop-target query at a time.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any

from pydantic import ValidationError

from draftboard.config import Settings, get_settings
from draftboard.core.ports.frames import FrameChannel
from draftboard.models import DropTarget, SelectedElement, SourceLocation
from draftboard.protocol.frames import FrameState, PreviewFrame
from draftboard.protocol.messages import DropTargetQuery, Message, MessageType, PlaceholderPayload, ToggleState

logger = logging.getLogger(__name__)

Listener = Callable[[dict[str, Any]], Awaitable[None] | None]

_SELECTION_TYPES = frozenset({MessageType.ELEMENT_SELECTED, MessageType.SELECTION_REVALIDATED})
_FORWARDED_TYPES = frozenset({MessageType.KEYBOARD_EVENT, MessageType.NAVIGATION_INTENT})


class HostBus:
    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.frames: dict[str, PreviewFrame] = {}
        self.inspection_mode = False
        self.flow_mode = False
        self.selected: SelectedElement | None = None
        self._listeners: dict[MessageType, list[Listener]] = defaultdict(list)
        self._pending: asyncio.Future[DropTarget | None] | None = None
        self._timers: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Frames and listeners
    # ------------------------------------------------------------------

    def register_frame(self, page_id: str, channel: FrameChannel) -> PreviewFrame:
        frame = PreviewFrame(page_id, channel)
        frame.mark_loading()
        self.frames[page_id] = frame
        logger.info("Registered preview frame %s", page_id)
        return frame

    def unregister_frame(self, page_id: str) -> None:
        frame = self.frames.pop(page_id, None)
        if frame is not None:
            frame.mark_unloaded()
            logger.info("Unregistered preview frame %s", page_id)

    def frame_for(self, channel: object) -> PreviewFrame | None:
        for frame in self.frames.values():
            if frame.channel is channel:
                return frame
        return None

    def on(self, type: MessageType, listener: Listener) -> Callable[[], None]:
        self._listeners[type].append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners[type]:
                self._listeners[type].remove(listener)

        return unsubscribe

    async def _dispatch(self, type: MessageType, payload: dict[str, Any]) -> None:
        for listener in list(self._listeners[type]):
            try:
                result = listener(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Error in %s listener", type.value)

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def broadcast(self, message: Message) -> int:
        delivered = 0
        for frame in list(self.frames.values()):
            if await frame.send(message):
                delivered += 1
        return delivered

    async def send_to_page(self, page_id: str | None, message: Message) -> bool:
        frame = self._pick_frame(page_id)
        if frame is None:
            return False
        return await frame.send(message)

    async def insert_placeholder(self, x: float, y: float, component_name: str, page_id: str | None = None) -> bool:
        payload = PlaceholderPayload(x=x, y=y, component_name=component_name)
        return await self.send_to_page(page_id, Message.of(MessageType.INSERT_PLACEHOLDER, payload))

    async def remove_placeholder(self, page_id: str | None = None) -> bool:
        return await self.send_to_page(page_id, Message.of(MessageType.REMOVE_PLACEHOLDER))

    def _toggle_messages(self) -> list[Message]:
        return [
            Message.of(MessageType.INSPECTION_MODE, ToggleState(enabled=self.inspection_mode)),
            Message.of(MessageType.FLOW_MODE_STATE, ToggleState(enabled=self.flow_mode)),
        ]

    async def rebroadcast_toggles(self, page_id: str | None = None) -> None:
        for message in self._toggle_messages():
            if page_id is None:
                await self.broadcast(message)
            else:
                await self.send_to_page(page_id, message)

    # ------------------------------------------------------------------
    # Global toggles
    # ------------------------------------------------------------------

    def set_inspection_mode(self, enabled: bool) -> None:
        if enabled == self.inspection_mode:
            return
        self.inspection_mode = enabled
        message = Message.of(MessageType.INSPECTION_MODE, ToggleState(enabled=enabled))
        self.schedule(self.settings.inspection_toggle_delay, lambda: self.broadcast(message))

    def set_flow_mode(self, enabled: bool) -> None:
        if enabled == self.flow_mode:
            return
        self.flow_mode = enabled
        message = Message.of(MessageType.FLOW_MODE_STATE, ToggleState(enabled=enabled))
        self.schedule(self.settings.flow_toggle_delay, lambda: self.broadcast(message))

    def on_build_settled(self, page_id: str | None = None) -> None:
        """The sandbox went idle after a rebuild; its frames may have reset their toggles."""
        self.schedule(self.settings.build_settled_delay, lambda: self.rebroadcast_toggles(page_id))

    def schedule(self, delay: float, action: Callable[[], Coroutine[Any, Any, Any]]) -> asyncio.Task[None]:
        async def run() -> None:
            await asyncio.sleep(delay)
            await action()

        task = asyncio.get_running_loop().create_task(run())
        self._timers.add(task)
        task.add_done_callback(self._timers.discard)
        return task

    async def settle(self) -> None:
        """Wait for every delayed send to go out."""
        while self._timers:
            await asyncio.gather(*list(self._timers), return_exceptions=True)

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def handle_message(self, source: object, message: Message) -> None:
        frame = self.frame_for(source)
        page_id = frame.page_id if frame is not None else None

        if message.type == MessageType.INSPECTOR_READY:
            if frame is None:
                logger.debug("inspector-ready from an unknown frame")
                return
            frame.mark_ready()
            self.schedule(self.settings.inspector_ready_delay, lambda: self.rebroadcast_toggles(frame.page_id))
        elif message.type in _SELECTION_TYPES:
            await self._handle_selection(message, page_id)
        elif message.type == MessageType.DROP_TARGET_FOUND:
            self._resolve_drop_target(message)
        elif message.type in _FORWARDED_TYPES:
            payload = dict(message.payload)
            if page_id is not None:
                payload["pageId"] = page_id
            await self._dispatch(message.type, payload)
        else:
            logger.debug("Ignoring host-bound %s message", message.type.value)

    async def _handle_selection(self, message: Message, page_id: str | None) -> None:
        try:
            element = message.parse_payload(SelectedElement)
        except ValidationError as exc:
            logger.warning("Dropping malformed %s from %s: %s", message.type.value, page_id or "unknown frame", exc)
            return
        if page_id is not None:
            element = element.model_copy(update={"page_id": page_id})
        changed = element != self.selected
        self.selected = element
        # Re-delivery of the same selection only refreshes stored state.
        if message.type == MessageType.ELEMENT_SELECTED and changed:
            await self._dispatch(MessageType.ELEMENT_SELECTED, element.model_dump(by_alias=True))

    def update_selected_source(self, source: SourceLocation) -> None:
        """Re-anchor the stored selection after an edit moved its element."""
        if self.selected is not None:
            self.selected = self.selected.model_copy(update={"source": source})

    def clear_selection(self) -> None:
        self.selected = None

    # ------------------------------------------------------------------
    # Drop-target queries
    # ------------------------------------------------------------------

    def _pick_frame(self, page_id: str | None) -> PreviewFrame | None:
        if page_id is not None:
            return self.frames.get(page_id)
        ready = [f for f in self.frames.values() if f.state == FrameState.READY]
        if ready:
            return ready[0]
        return next(iter(self.frames.values()), None)

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.set_result(None)
        self._pending = None

    def _resolve_drop_target(self, message: Message) -> None:
        if self._pending is None or self._pending.done():
            logger.debug("Dropping drop-target reply with no pending request")
            return
        try:
            target: DropTarget | None = message.parse_payload(DropTarget)
        except ValidationError as exc:
            # A reply we cannot read still ends the query, as a miss.
            logger.warning("Malformed drop-target reply: %s", exc)
            target = None
        self._pending.set_result(target)

    async def find_drop_target(self, x: float, y: float, page_id: str | None = None) -> DropTarget | None:
        """Ask the preview which element sits under (x, y).

        Resolves to ``None`` when no frame is reachable, when no reply arrives
        within the timeout, or when a newer query supersedes this one.
        """
        frame = self._pick_frame(page_id)
        if frame is None:
            return None
        self._cancel_pending()
        future: asyncio.Future[DropTarget | None] = asyncio.get_running_loop().create_future()
        self._pending = future
        try:
            if not await frame.send(Message.of(MessageType.FIND_DROP_TARGET, DropTargetQuery(x=x, y=y))):
                return None
            return await asyncio.wait_for(future, timeout=self.settings.drop_target_timeout)
        except asyncio.TimeoutError:
            logger.debug("No drop-target reply from %s within %.0f ms", frame.page_id, self.settings.drop_target_timeout * 1000)
            return None
        finally:
            if self._pending is future:
                self._pending = None

    async def close(self) -> None:
        self._cancel_pending()
        for task in list(self._timers):
            task.cancel()
        for task in list(self._timers):
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._timers.clear()
