from typing import Protocol

from draftboard.protocol.messages import Message


class FrameChannel(Protocol):
    async def send(self, message: Message) -> None: ...
