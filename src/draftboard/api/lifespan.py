from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from draftboard.vfs.directory import DirectoryVFS
from draftboard.watcher.watchfiles_adapter import WatchfilesWatcher

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    session = app.state.session
    watcher = WatchfilesWatcher.for_vfs(session.vfs) if isinstance(session.vfs, DirectoryVFS) else None
    await session.start()
    if watcher is not None:
        await watcher.start()
    try:
        yield
    finally:
        if watcher is not None:
            await watcher.stop()
        await session.close()
