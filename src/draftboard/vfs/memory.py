from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

from draftboard.core.ports.vfs import FileEvent, FileListener

logger = logging.getLogger(__name__)


def normalize_path(path: str) -> str:
    return path if path.startswith("/") else f"/{path}"


class InMemoryVFS:
    """Project files held in a dict; the single writer every edit goes through."""

    def __init__(self, files: Mapping[str, str] | None = None) -> None:
        self.files: dict[str, str] = {normalize_path(p): c for p, c in (files or {}).items()}
        self._listeners: list[FileListener] = []

    async def read_file(self, path: str) -> str | None:
        return self.files.get(normalize_path(path))

    async def write_file(self, path: str, content: str) -> None:
        path = normalize_path(path)
        self.files[path] = content
        self._emit(FileEvent(kind="write", path=path, content=content))

    async def delete_file(self, path: str) -> bool:
        path = normalize_path(path)
        if self.files.pop(path, None) is None:
            return False
        self._emit(FileEvent(kind="delete", path=path))
        return True

    async def list_files(self) -> dict[str, str]:
        return dict(self.files)

    def subscribe(self, listener: FileListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: FileEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Error in file listener for %s", event.path)
