from __future__ import annotations

import logging
from enum import Enum

from draftboard.core.ports.frames import FrameChannel
from draftboard.protocol.messages import Message

logger = logging.getLogger(__name__)


class FrameState(str, Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"


class PreviewFrame:
    """One reloadable preview page, reachable only by sending it messages."""

    def __init__(self, page_id: str, channel: FrameChannel) -> None:
        self.page_id = page_id
        self.channel = channel
        self.state = FrameState.UNLOADED
        self.ready_count = 0

    def mark_loading(self) -> None:
        self.state = FrameState.LOADING

    def mark_ready(self) -> None:
        # READY recurs on every reload of the frame.
        self.state = FrameState.READY
        self.ready_count += 1

    def mark_unloaded(self) -> None:
        self.state = FrameState.UNLOADED

    async def send(self, message: Message) -> bool:
        try:
            await self.channel.send(message)
        except Exception:
            logger.warning("Failed to deliver %s to frame %s", message.type.value, self.page_id, exc_info=True)
            return False
        return True

    def __repr__(self) -> str:
        return f"PreviewFrame(page_id={self.page_id!r}, state={self.state.value})"
