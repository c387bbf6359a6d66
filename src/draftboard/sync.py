"""Debounced push of file changes into the preview sandbox.

Writes are queued per path and flushed together once the debounce window
closes. Each flush is either an incremental update or a full reset of the
sandbox, depending on what the batch contains.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections.abc import Callable

from draftboard.config import Settings, get_settings
from draftboard.core.instrument import Instrumenter
from draftboard.core.ports.sandbox import PreviewSandbox
from draftboard.core.ports.vfs import FileEvent, VirtualFileSystem
from draftboard.models import SyncBatch

logger = logging.getLogger(__name__)

PACKAGE_JSON = "/package.json"
TOKENS_JSON = "/tokens.json"
# Handled by the sandbox's own setup, never sent as preview files.
_NON_PREVIEW_FILES = frozenset({PACKAGE_JSON, TOKENS_JSON})

DEFAULT_DEPENDENCIES: dict[str, str] = {
    "react": "^18.2.0",
    "react-dom": "^18.2.0",
    "clsx": "^2.1.0",
    "tailwind-merge": "^2.2.0",
}


def parse_dependencies(package_json: str | None) -> dict[str, str]:
    if not package_json:
        return dict(DEFAULT_DEPENDENCIES)
    try:
        parsed = json.loads(package_json)
    except json.JSONDecodeError:
        logger.warning("Failed to parse %s, using default dependencies", PACKAGE_JSON)
        return dict(DEFAULT_DEPENDENCIES)
    dependencies = parsed.get("dependencies") if isinstance(parsed, dict) else None
    if not isinstance(dependencies, dict):
        return dict(DEFAULT_DEPENDENCIES)
    return {str(name): str(version) for name, version in dependencies.items()}


def is_preview_file(path: str) -> bool:
    return path not in _NON_PREVIEW_FILES


class PreviewSync:
    def __init__(
        self,
        vfs: VirtualFileSystem,
        sandbox: PreviewSandbox,
        instrumenter: Instrumenter | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.vfs = vfs
        self.sandbox = sandbox
        self.instrumenter = instrumenter or Instrumenter()
        self.settings = settings or get_settings()
        self.preview_files: dict[str, str] = {}
        self.errors: dict[str, str] = {}
        self.dependencies: dict[str, str] = dict(DEFAULT_DEPENDENCIES)
        self.batches_applied = 0
        self._pending_updates: dict[str, str] = {}
        self._pending_deletes: set[str] = set()
        self._timer: asyncio.Task[None] | None = None
        self._flushing: set[asyncio.Task[None]] = set()
        self._unsubscribe: Callable[[], None] | None = None

    async def start(self) -> SyncBatch:
        """Load every file, push a full reset, then follow the VFS."""
        files = await self.vfs.list_files()
        self.dependencies = parse_dependencies(files.get(PACKAGE_JSON))
        self.preview_files = {}
        for path, content in files.items():
            self._shadow(path, content)
        batch = SyncBatch(
            updates=dict(self.preview_files),
            full_reset=True,
            reasons=["initial-load"],
            dependencies=self.dependencies,
        )
        await self._apply(batch)
        if self._unsubscribe is None:
            self._unsubscribe = self.vfs.subscribe(self.on_file_event)
        return batch

    async def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        tasks = {task for task in (self._timer, *self._flushing) if task is not None}
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._timer = None
        self._flushing.clear()

    @property
    def has_pending(self) -> bool:
        return bool(self._pending_updates or self._pending_deletes)

    def on_file_event(self, event: FileEvent) -> None:
        if event.kind == "delete":
            self._pending_deletes.add(event.path)
        else:
            self._pending_updates[event.path] = event.content or ""
        self._restart_timer()

    def _restart_timer(self) -> None:
        # A flush already past its sleep owns its batch and must not be cancelled.
        timer = self._timer
        if timer is not None and not timer.done() and timer not in self._flushing:
            timer.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._flush_later())

    async def _flush_later(self) -> None:
        await asyncio.sleep(self.settings.sync_debounce)
        task = asyncio.current_task()
        assert task is not None
        self._flushing.add(task)
        try:
            await self.flush()
        except Exception:
            logger.exception("Error pushing files to the preview")
        finally:
            self._flushing.discard(task)

    async def wait_idle(self) -> None:
        """Wait until the current debounce window and every running flush are done."""
        while True:
            pending = {task for task in (self._timer, *self._flushing) if task is not None and not task.done()}
            if not pending:
                return
            await asyncio.wait(pending)

    async def flush(self) -> SyncBatch | None:
        # Take the queue first; writes that land while applying go to the next batch.
        updates, deletes = self._pending_updates, self._pending_deletes
        self._pending_updates, self._pending_deletes = {}, set()
        updates = {path: content for path, content in updates.items() if path not in deletes}
        if not updates and not deletes:
            return None

        batch = self.build_batch(updates, deletes)
        await self._apply(batch)
        return batch

    def build_batch(self, updates: dict[str, str], deletes: set[str]) -> SyncBatch:
        reasons: list[str] = []
        if any(path not in self.preview_files and is_preview_file(path) for path in updates):
            reasons.append("new-file")
        if len(updates) > self.settings.full_reset_threshold:
            reasons.append("bulk-update")
        if PACKAGE_JSON in updates:
            reasons.append("dependencies-changed")
            self.dependencies = parse_dependencies(updates[PACKAGE_JSON])

        changed: dict[str, str] = {}
        for path, content in updates.items():
            shadow = self._shadow(path, content)
            if shadow is not None:
                changed[path] = shadow
        removed = sorted(path for path in deletes if self._forget(path))

        full_reset = bool(reasons)
        return SyncBatch(
            updates=dict(self.preview_files) if full_reset else changed,
            deletes=removed,
            full_reset=full_reset,
            reasons=reasons,
            dependencies=dict(self.dependencies),
        )

    def _shadow(self, path: str, content: str) -> str | None:
        if not is_preview_file(path):
            return None
        shadow, error = self.instrumenter.shadow(path, content)
        if error:
            self.errors[path] = error
        else:
            self.errors.pop(path, None)
        self.preview_files[path] = shadow
        return shadow

    def _forget(self, path: str) -> bool:
        self.instrumenter.forget(path)
        self.errors.pop(path, None)
        return self.preview_files.pop(path, None) is not None

    async def _apply(self, batch: SyncBatch) -> None:
        logger.info(
            "Syncing %d update(s), %d delete(s) to preview%s",
            len(batch.updates),
            len(batch.deletes),
            f" (full reset: {', '.join(batch.reasons)})" if batch.full_reset else "",
        )
        await self.sandbox.apply(batch)
        self.batches_applied += 1
