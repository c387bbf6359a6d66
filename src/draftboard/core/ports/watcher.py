from collections.abc import Callable, Coroutine
from pathlib import Path
from typing import Any, Protocol

ChangeCallback = Callable[[set[Path]], Coroutine[Any, Any, None]]


class FileWatcherPort(Protocol):
    """Reports project files edited outside the session, e.g. by an editor or a git checkout."""

    async def start(self) -> None: ...

    async def stop(self) -> None: ...
