from __future__ import annotations

from pathlib import Path

import pytest

from draftboard.core.ports.vfs import FileEvent
from draftboard.vfs import DirectoryVFS, InMemoryVFS


class TestInMemoryVFS:
    @pytest.mark.asyncio
    async def test_paths_are_rooted(self) -> None:
        vfs = InMemoryVFS({"App.tsx": "x"})
        assert await vfs.read_file("/App.tsx") == "x"
        assert await vfs.read_file("App.tsx") == "x"
        assert await vfs.read_file("/missing.tsx") is None

    @pytest.mark.asyncio
    async def test_writes_and_deletes_are_published(self) -> None:
        vfs = InMemoryVFS()
        events: list[FileEvent] = []
        unsubscribe = vfs.subscribe(events.append)

        await vfs.write_file("a.ts", "1")
        assert await vfs.delete_file("/a.ts")
        assert not await vfs.delete_file("/a.ts")
        unsubscribe()
        await vfs.write_file("/b.ts", "2")

        assert events == [FileEvent(kind="write", path="/a.ts", content="1"), FileEvent(kind="delete", path="/a.ts")]
        assert await vfs.list_files() == {"/b.ts": "2"}

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_block_others(self) -> None:
        vfs = InMemoryVFS()
        events: list[FileEvent] = []

        def broken(event: FileEvent) -> None:
            raise RuntimeError("boom")

        vfs.subscribe(broken)
        vfs.subscribe(events.append)
        await vfs.write_file("/a.ts", "1")
        assert len(events) == 1


class TestDirectoryVFS:
    @pytest.mark.asyncio
    async def test_read_write(self, tmp_path: Path) -> None:
        vfs = DirectoryVFS(tmp_path)
        await vfs.write_file("/components/Button.tsx", "export {};\n")
        assert (tmp_path / "components" / "Button.tsx").read_text() == "export {};\n"
        assert await vfs.read_file("components/Button.tsx") == "export {};\n"
        assert await vfs.read_file("/nope.tsx") is None

    @pytest.mark.asyncio
    async def test_paths_cannot_escape_root(self, tmp_path: Path) -> None:
        vfs = DirectoryVFS(tmp_path / "project")
        with pytest.raises(ValueError, match="escapes"):
            await vfs.read_file("/../secret.txt")

    @pytest.mark.asyncio
    async def test_list_skips_dependencies_and_foreign_files(self, tmp_path: Path) -> None:
        (tmp_path / "node_modules" / "react").mkdir(parents=True)
        (tmp_path / "node_modules" / "react" / "index.js").write_text("x")
        (tmp_path / ".git").mkdir()
        (tmp_path / ".git" / "config.json").write_text("{}")
        (tmp_path / "App.tsx").write_text("app")
        (tmp_path / "package.json").write_text("{}")
        (tmp_path / "logo.png").write_bytes(b"\x89PNG")

        files = await DirectoryVFS(tmp_path).list_files()

        assert files == {"/App.tsx": "app", "/package.json": "{}"}

    @pytest.mark.asyncio
    async def test_delete(self, tmp_path: Path) -> None:
        (tmp_path / "App.tsx").write_text("app")
        vfs = DirectoryVFS(tmp_path)
        events: list[FileEvent] = []
        vfs.subscribe(events.append)

        assert await vfs.delete_file("/App.tsx")
        assert not await vfs.delete_file("/App.tsx")
        assert events == [FileEvent(kind="delete", path="/App.tsx")]

    def test_refresh_emits_only_real_changes(self, tmp_path: Path) -> None:
        app = tmp_path / "App.tsx"
        app.write_text("one")
        vfs = DirectoryVFS(tmp_path)
        events: list[FileEvent] = []
        vfs.subscribe(events.append)

        assert vfs.refresh([app]) == 1
        assert vfs.refresh([app]) == 0
        app.unlink()
        assert vfs.refresh([app]) == 1

        assert [(e.kind, e.path) for e in events] == [("write", "/App.tsx"), ("delete", "/App.tsx")]
        assert events[0].content == "one"

    @pytest.mark.asyncio
    async def test_own_writes_are_not_echoed_by_refresh(self, tmp_path: Path) -> None:
        vfs = DirectoryVFS(tmp_path)
        await vfs.write_file("/App.tsx", "mine")
        assert vfs.refresh([tmp_path / "App.tsx"]) == 0
