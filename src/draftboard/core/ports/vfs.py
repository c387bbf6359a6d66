from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal, Protocol


@dataclass(frozen=True)
class FileEvent:
    kind: Literal["write", "delete"]
    path: str
    content: str | None = None


FileListener = Callable[[FileEvent], None]


class VirtualFileSystem(Protocol):
    async def read_file(self, path: str) -> str | None: ...

    async def write_file(self, path: str, content: str) -> None: ...

    async def delete_file(self, path: str) -> bool: ...

    async def list_files(self) -> dict[str, str]: ...

    def subscribe(self, listener: FileListener) -> Callable[[], None]: ...
