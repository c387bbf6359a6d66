from draftboard.vfs.directory import DirectoryVFS
from draftboard.vfs.memory import InMemoryVFS

__all__ = [
    "DirectoryVFS",
    "InMemoryVFS",
]
