from typing import Protocol

from draftboard.models import SyncBatch


class PreviewSandbox(Protocol):
    async def apply(self, batch: SyncBatch) -> None: ...
