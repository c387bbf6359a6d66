"""One editing session: the scene, the file corpus, the preview bus and everything wired between them."""

from __future__ import annotations

import logging

from draftboard.config import Settings, get_settings
from draftboard.core.instrument import Instrumenter
from draftboard.core.materializer import Materializer
from draftboard.core.navigation import FLOW_JSON, FlowNavigator, parse_flow_manifest
from draftboard.core.ports.sandbox import PreviewSandbox
from draftboard.core.ports.vfs import FileEvent, VirtualFileSystem
from draftboard.core.reorder import KeyboardReorder
from draftboard.core.scene import SceneGraph
from draftboard.models import SyncBatch
from draftboard.notifications import Notifier
from draftboard.protocol.host import HostBus
from draftboard.sync import PreviewSync

logger = logging.getLogger(__name__)


class PreviewSnapshot:
    """In-process sandbox: keeps the latest preview file set for frames to fetch."""

    def __init__(self) -> None:
        self.files: dict[str, str] = {}
        self.dependencies: dict[str, str] = {}
        self.version = 0
        self.resets = 0
        self.last_batch: SyncBatch | None = None

    async def apply(self, batch: SyncBatch) -> None:
        if batch.full_reset:
            self.files = dict(batch.updates)
            self.resets += 1
        else:
            self.files.update(batch.updates)
        for path in batch.deletes:
            self.files.pop(path, None)
        self.dependencies = dict(batch.dependencies)
        self.version += 1
        self.last_batch = batch


class Session:
    def __init__(
        self,
        vfs: VirtualFileSystem,
        sandbox: PreviewSandbox | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.vfs = vfs
        self.sandbox = sandbox if sandbox is not None else PreviewSnapshot()
        self.scene = SceneGraph()
        self.notifier = Notifier()
        self.bus = HostBus(self.settings)
        self.instrumenter = Instrumenter()
        self.sync = PreviewSync(vfs, self.sandbox, self.instrumenter, self.settings)
        self.materializer = Materializer(self.scene, self.bus, vfs, self.notifier, self.settings)
        self.reorder = KeyboardReorder(self.bus, vfs, self.notifier)
        self.navigator = FlowNavigator(self.bus, self.notifier, self.settings)
        self._unsubscribe = vfs.subscribe(self._on_file_event)
        self.started = False

    async def start(self) -> None:
        if self.started:
            return
        self.navigator.load_manifest(parse_flow_manifest(await self.vfs.read_file(FLOW_JSON)))
        await self.sync.start()
        self.started = True
        logger.info("Session started")

    async def close(self) -> None:
        self._unsubscribe()
        self.reorder.close()
        await self.navigator.close()
        await self.sync.stop()
        await self.bus.close()
        self.started = False
        logger.info("Session closed")

    def _on_file_event(self, event: FileEvent) -> None:
        if event.path == FLOW_JSON:
            content = event.content if event.kind == "write" else None
            self.navigator.load_manifest(parse_flow_manifest(content))
