from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from pathlib import Path

from draftboard.core.languages import is_source_file
from draftboard.core.ports.vfs import FileEvent, FileListener
from draftboard.vfs.memory import normalize_path

logger = logging.getLogger(__name__)

_SKIPPED_DIRS = frozenset({"node_modules", ".git", "dist", "build", "__pycache__"})
_ASSET_SUFFIXES = frozenset({".json", ".css", ".html", ".md"})


def is_project_file(path: Path) -> bool:
    return is_source_file(path.name) or path.suffix.lower() in _ASSET_SUFFIXES


class DirectoryVFS:
    """A project rooted in a directory on disk, addressed with ``/``-rooted paths."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()
        self._listeners: list[FileListener] = []
        self._known: dict[str, str] = {}

    def _disk_path(self, path: str) -> Path:
        disk = (self.root / normalize_path(path).lstrip("/")).resolve()
        if not disk.is_relative_to(self.root):
            raise ValueError(f"{path!r} escapes the project root")
        return disk

    def vfs_path(self, disk: Path) -> str:
        return "/" + disk.resolve().relative_to(self.root).as_posix()

    async def read_file(self, path: str) -> str | None:
        disk = self._disk_path(path)
        if not disk.is_file():
            return None
        return disk.read_text(encoding="utf-8")

    async def write_file(self, path: str, content: str) -> None:
        path = normalize_path(path)
        disk = self._disk_path(path)
        disk.parent.mkdir(parents=True, exist_ok=True)
        disk.write_text(content, encoding="utf-8")
        self._known[path] = content
        self._emit(FileEvent(kind="write", path=path, content=content))

    async def delete_file(self, path: str) -> bool:
        path = normalize_path(path)
        disk = self._disk_path(path)
        if not disk.is_file():
            return False
        disk.unlink()
        self._known.pop(path, None)
        self._emit(FileEvent(kind="delete", path=path))
        return True

    async def list_files(self) -> dict[str, str]:
        files: dict[str, str] = {}
        for disk in sorted(self.root.rglob("*")):
            relative = disk.relative_to(self.root)
            if any(part in _SKIPPED_DIRS or part.startswith(".") for part in relative.parts):
                continue
            if disk.is_file() and is_project_file(disk):
                files[self.vfs_path(disk)] = disk.read_text(encoding="utf-8")
        return files

    def subscribe(self, listener: FileListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def refresh(self, disk_paths: Iterable[Path]) -> int:
        """Re-read files changed behind our back and notify listeners; returns events emitted."""
        emitted = 0
        for disk in disk_paths:
            path = self.vfs_path(disk)
            if not disk.is_file():
                self._known.pop(path, None)
                self._emit(FileEvent(kind="delete", path=path))
                emitted += 1
                continue
            content = disk.read_text(encoding="utf-8")
            if self._known.get(path) == content:
                continue
            self._known[path] = content
            self._emit(FileEvent(kind="write", path=path, content=content))
            emitted += 1
        return emitted

    def _emit(self, event: FileEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Error in file listener for %s", event.path)
