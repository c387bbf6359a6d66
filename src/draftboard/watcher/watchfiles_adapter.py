from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path

from watchfiles import Change, awatch

from draftboard.core.ports.watcher import ChangeCallback
from draftboard.vfs.directory import DirectoryVFS, is_project_file

logger = logging.getLogger(__name__)

_IGNORED_PARTS = frozenset({"node_modules", ".git", "dist", "build", "__pycache__"})


def _is_watched_file(path: Path) -> bool:
    if any(part in _IGNORED_PARTS for part in path.parts):
        return False
    return is_project_file(path)


def _watch_filter(change: Change, path: str) -> bool:
    return _is_watched_file(Path(path))


class WatchfilesWatcher:
    """Feeds edits made outside the session (editor, git checkout) back into the project.

    Implements the ``FileWatcherPort`` protocol. Changes are batched by
    watchfiles over ``debounce_ms`` and handed to ``on_change`` as one set.
    """

    def __init__(self, directory: str | Path, on_change: ChangeCallback, debounce_ms: int = 100) -> None:
        self.directory = Path(directory)
        self.on_change = on_change
        self.debounce_ms = debounce_ms
        self._task: asyncio.Task[None] | None = None

    @classmethod
    def for_vfs(cls, vfs: DirectoryVFS, debounce_ms: int = 100) -> WatchfilesWatcher:
        async def refresh(paths: set[Path]) -> None:
            emitted = vfs.refresh(sorted(paths))
            if emitted:
                logger.debug("Picked up %d external change(s)", emitted)

        return cls(vfs.root, refresh, debounce_ms)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._watch())
        logger.info("Watching %s for external edits", self.directory)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("Stopped watching %s", self.directory)

    async def _watch(self) -> None:
        async for changes in awatch(self.directory, watch_filter=_watch_filter, debounce=self.debounce_ms):
            # The filter is advisory; re-check in case watchfiles passed something through.
            paths = {Path(raw) for _, raw in changes if _is_watched_file(Path(raw))}
            if not paths:
                continue
            logger.info("External edit to %d file(s)", len(paths))
            try:
                await self.on_change(paths)
            except Exception:
                logger.exception("Failed to apply external edits from %s", self.directory)
