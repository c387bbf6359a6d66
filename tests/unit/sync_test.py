"""Tests for the debounced preview sync."""

from __future__ import annotations

import asyncio
import json

import pytest

from draftboard.config import Settings
from draftboard.core.instrument import SOURCE_LOC_ATTR
from draftboard.core.ports.vfs import FileEvent
from draftboard.models import SyncBatch
from draftboard.session import PreviewSnapshot
from draftboard.sync import DEFAULT_DEPENDENCIES, PreviewSync, parse_dependencies
from draftboard.vfs import InMemoryVFS
from tests.conftest import APP_TSX

PACKAGE = json.dumps({"dependencies": {"react": "^18.3.0", "lucide-react": "^0.400.0"}})


@pytest.fixture
def vfs() -> InMemoryVFS:
    return InMemoryVFS(
        {
            "/App.tsx": APP_TSX,
            "/components/Header.tsx": "export function Header() {\n  return <header>Hi</header>;\n}\n",
            "/lib/utils.ts": "export const cn = (...xs: string[]) => xs.join(' ');\n",
            "/package.json": PACKAGE,
            "/tokens.json": "{}",
        }
    )


class TestParseDependencies:
    def test_reads_dependencies(self) -> None:
        assert parse_dependencies(PACKAGE) == {"react": "^18.3.0", "lucide-react": "^0.400.0"}

    @pytest.mark.parametrize("text", [None, "", "not json", "[]", '{"dependencies": 3}'])
    def test_falls_back_to_defaults(self, text: str | None) -> None:
        assert parse_dependencies(text) == DEFAULT_DEPENDENCIES


class TestPreviewSync:
    @pytest.mark.asyncio
    async def test_start_pushes_everything(self, vfs: InMemoryVFS, fast_settings: Settings) -> None:
        sandbox = PreviewSnapshot()
        sync = PreviewSync(vfs, sandbox, settings=fast_settings)

        batch = await sync.start()

        assert batch.full_reset
        assert batch.reasons == ["initial-load"]
        assert set(sandbox.files) == {"/App.tsx", "/components/Header.tsx", "/lib/utils.ts"}
        assert SOURCE_LOC_ATTR in sandbox.files["/App.tsx"]
        assert sandbox.files["/lib/utils.ts"] == vfs.files["/lib/utils.ts"]
        assert sandbox.dependencies == {"react": "^18.3.0", "lucide-react": "^0.400.0"}
        await sync.stop()

    @pytest.mark.asyncio
    async def test_single_edit_is_incremental(self, vfs: InMemoryVFS, fast_settings: Settings) -> None:
        sandbox = PreviewSnapshot()
        sync = PreviewSync(vfs, sandbox, settings=fast_settings)
        await sync.start()

        await vfs.write_file("/App.tsx", APP_TSX.replace("Title", "Welcome"))
        await sync.wait_idle()

        batch = sandbox.last_batch
        assert batch is not None
        assert not batch.full_reset
        assert list(batch.updates) == ["/App.tsx"]
        assert "Welcome" in sandbox.files["/App.tsx"]
        assert sandbox.resets == 1
        await sync.stop()

    @pytest.mark.asyncio
    async def test_rapid_writes_coalesce_into_one_reset(self, vfs: InMemoryVFS, fast_settings: Settings) -> None:
        sandbox = PreviewSnapshot()
        sync = PreviewSync(vfs, sandbox, settings=fast_settings)
        await sync.start()
        applied = sync.batches_applied

        await vfs.write_file("/App.tsx", APP_TSX.replace("Title", "One"))
        await vfs.write_file("/App.tsx", APP_TSX.replace("Title", "Two"))
        await vfs.write_file("/package.json", json.dumps({"dependencies": {"react": "^19.0.0"}}))
        await sync.wait_idle()

        assert sync.batches_applied == applied + 1
        batch = sandbox.last_batch
        assert batch is not None
        assert batch.full_reset
        assert batch.reasons == ["dependencies-changed"]
        assert "/package.json" not in batch.updates
        assert "Two" in batch.updates["/App.tsx"]
        assert sandbox.dependencies == {"react": "^19.0.0"}
        await sync.stop()

    @pytest.mark.asyncio
    async def test_new_file_forces_reset(self, vfs: InMemoryVFS, fast_settings: Settings) -> None:
        sandbox = PreviewSnapshot()
        sync = PreviewSync(vfs, sandbox, settings=fast_settings)
        await sync.start()

        await vfs.write_file("/pages/About.tsx", "export default function About() {\n  return <h1>About</h1>;\n}\n")
        await sync.wait_idle()

        batch = sandbox.last_batch
        assert batch is not None
        assert batch.full_reset
        assert batch.reasons == ["new-file"]
        assert set(batch.updates) == {"/App.tsx", "/components/Header.tsx", "/lib/utils.ts", "/pages/About.tsx"}
        await sync.stop()

    @pytest.mark.asyncio
    async def test_bulk_update_forces_reset(self, vfs: InMemoryVFS, fast_settings: Settings) -> None:
        sandbox = PreviewSnapshot()
        sync = PreviewSync(vfs, sandbox, settings=fast_settings)
        await sync.start()

        for path, content in list(vfs.files.items()):
            await vfs.write_file(path, content + "\n")
        await sync.wait_idle()

        batch = sandbox.last_batch
        assert batch is not None
        assert "bulk-update" in batch.reasons
        await sync.stop()

    @pytest.mark.asyncio
    async def test_delete_is_sent_and_wins_over_write(self, vfs: InMemoryVFS, fast_settings: Settings) -> None:
        sandbox = PreviewSnapshot()
        sync = PreviewSync(vfs, sandbox, settings=fast_settings)
        await sync.start()

        await vfs.write_file("/lib/utils.ts", "export const cn = () => '';\n")
        await vfs.delete_file("/lib/utils.ts")
        await sync.wait_idle()

        batch = sandbox.last_batch
        assert batch is not None
        assert batch.deletes == ["/lib/utils.ts"]
        assert batch.updates == {}
        assert "/lib/utils.ts" not in sandbox.files
        await sync.stop()

    @pytest.mark.asyncio
    async def test_broken_file_keeps_last_good_preview(self, vfs: InMemoryVFS, fast_settings: Settings) -> None:
        sandbox = PreviewSnapshot()
        sync = PreviewSync(vfs, sandbox, settings=fast_settings)
        await sync.start()
        good = sandbox.files["/App.tsx"]

        await vfs.write_file("/App.tsx", APP_TSX.replace("</main>", ""))
        await sync.wait_idle()

        assert sandbox.files["/App.tsx"] == good
        assert "/App.tsx" in sync.errors

        await vfs.write_file("/App.tsx", APP_TSX)
        await sync.wait_idle()
        assert "/App.tsx" not in sync.errors
        await sync.stop()

    @pytest.mark.asyncio
    async def test_stop_unsubscribes(self, vfs: InMemoryVFS, fast_settings: Settings) -> None:
        sandbox = PreviewSnapshot()
        sync = PreviewSync(vfs, sandbox, settings=fast_settings)
        await sync.start()
        await sync.stop()

        await vfs.write_file("/App.tsx", "changed")
        assert not sync.has_pending
        assert sandbox.version == 1


class GatedSnapshot(PreviewSnapshot):
    """Holds incremental batches until released."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def apply(self, batch: SyncBatch) -> None:
        if not batch.full_reset or batch.reasons != ["initial-load"]:
            self.entered.set()
            await self.release.wait()
        await super().apply(batch)


class TestDebounceDuringFlush:
    @pytest.mark.asyncio
    async def test_events_during_a_flush_start_a_single_timer(self, vfs: InMemoryVFS, fast_settings: Settings) -> None:
        sandbox = GatedSnapshot()
        sync = PreviewSync(vfs, sandbox, settings=fast_settings)
        await sync.start()

        sync.on_file_event(FileEvent(kind="write", path="/lib/utils.ts", content="export const a = 1;\n"))
        await asyncio.wait_for(sandbox.entered.wait(), timeout=1)
        running = sync._timer

        sync.on_file_event(FileEvent(kind="write", path="/lib/utils.ts", content="export const a = 2;\n"))
        superseded = sync._timer
        sync.on_file_event(FileEvent(kind="write", path="/lib/utils.ts", content="export const a = 3;\n"))
        await asyncio.sleep(0)

        assert running is not None and not running.done()
        assert superseded is not None and superseded.cancelled()

        sandbox.release.set()
        await sync.wait_idle()

        assert running.done()
        assert sync.batches_applied == 3
        assert sandbox.files["/lib/utils.ts"] == "export const a = 3;\n"
        assert sync._flushing == set()
        await sync.stop()
