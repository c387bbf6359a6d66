"""Flow-mode navigation: clicking a link in a preview pans the canvas to its page."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import Field, ValidationError

from draftboard.config import Settings, get_settings
from draftboard.core.geometry import Rect
from draftboard.models import WireModel
from draftboard.notifications import Notifier
from draftboard.protocol.host import HostBus
from draftboard.protocol.messages import MessageType, NavigationIntent

logger = logging.getLogger(__name__)

FLOW_JSON = "/flow.json"
FRAME_HEADER_HEIGHT = 36
TITLE_BAR_HEIGHT = 28
_FRAME_INTERVAL = 1 / 60

PAGE_WIDTH = 1280.0
PAGE_HEIGHT = 800.0
_COLUMN_SPACING = PAGE_WIDTH + 100
_ROW_SPACING = PAGE_HEIGHT + 120
_MARGIN = 50.0


class FlowPage(WireModel):
    id: str
    name: str
    route: str


class FlowConnection(WireModel):
    from_: str = Field(alias="from")
    to: str


class FlowManifest(WireModel):
    pages: list[FlowPage]
    connections: list[FlowConnection] = Field(default_factory=list)

    def page_for_route(self, route: str) -> FlowPage | None:
        return next((page for page in self.pages if page.route == route), None)


def fallback_manifest() -> FlowManifest:
    return FlowManifest(pages=[FlowPage(id="home", name="Home", route="/")])


def _sequential_connections(pages: list[FlowPage]) -> list[FlowConnection]:
    home = [page for page in pages if page.route == "/"]
    ordered = home + [page for page in pages if page.route != "/"]
    return [FlowConnection(from_=a.id, to=b.id) for a, b in zip(ordered, ordered[1:])]


def parse_flow_manifest(text: str | None) -> FlowManifest:
    """Pages and connections from ``/flow.json``; a single home page when absent or invalid."""
    if not text:
        return fallback_manifest()
    try:
        manifest = FlowManifest.model_validate(json.loads(text))
    except (json.JSONDecodeError, ValidationError) as exc:
        logger.warning("Invalid %s, using fallback manifest: %s", FLOW_JSON, exc)
        return fallback_manifest()
    if not manifest.connections and len(manifest.pages) > 1:
        manifest.connections = _sequential_connections(manifest.pages)
    return manifest


def flow_layout(manifest: FlowManifest) -> dict[str, Rect]:
    """Place page frames in columns by distance from the start page (breadth-first)."""
    if not manifest.pages:
        return {}
    ids = {page.id for page in manifest.pages}
    adjacency: dict[str, list[str]] = {page.id: [] for page in manifest.pages}
    in_degree = dict.fromkeys(ids, 0)
    for connection in manifest.connections:
        if connection.from_ in ids and connection.to in ids:
            adjacency[connection.from_].append(connection.to)
            in_degree[connection.to] += 1

    home = manifest.page_for_route("/")
    starts = [page.id for page in manifest.pages if in_degree[page.id] == 0 and page is not home]
    if home is not None:
        starts.insert(0, home.id)
    elif not starts:
        starts = [manifest.pages[0].id]

    levels: dict[str, int] = {}
    queue = deque((page_id, 0) for page_id in starts)
    while queue:
        page_id, level = queue.popleft()
        if page_id in levels:
            continue
        levels[page_id] = level
        queue.extend((neighbor, level + 1) for neighbor in adjacency[page_id] if neighbor not in levels)
    unreached = max(levels.values(), default=0) + 1

    columns: dict[int, list[str]] = {}
    for page in manifest.pages:
        columns.setdefault(levels.get(page.id, unreached), []).append(page.id)
    tallest = max(len(column) for column in columns.values())
    total_height = tallest * _ROW_SPACING - (_ROW_SPACING - PAGE_HEIGHT)

    positions: dict[str, Rect] = {}
    for level, column in columns.items():
        column_height = len(column) * _ROW_SPACING - (_ROW_SPACING - PAGE_HEIGHT)
        top = _MARGIN + (total_height - column_height) / 2
        for index, page_id in enumerate(column):
            x = _MARGIN + level * _COLUMN_SPACING
            positions[page_id] = Rect(x, top + index * _ROW_SPACING, PAGE_WIDTH, PAGE_HEIGHT)
    return positions


@dataclass(frozen=True)
class ViewportState:
    x: float = 0.0
    y: float = 0.0
    scale: float = 1.0


def ease_out_cubic(t: float) -> float:
    return 1 - (1 - t) ** 3


def interpolate(start: ViewportState, end: ViewportState, t: float) -> ViewportState:
    def lerp(a: float, b: float) -> float:
        return a + (b - a) * t

    return ViewportState(lerp(start.x, end.x), lerp(start.y, end.y), lerp(start.scale, end.scale))


def centered_viewport(rect: Rect, container_width: float, container_height: float) -> ViewportState:
    center_x = rect.x + rect.width / 2
    center_y = rect.y + rect.height / 2
    return ViewportState(x=container_width / 2 - center_x, y=container_height / 2 - center_y, scale=1.0)


class FlowNavigator:
    def __init__(
        self,
        bus: HostBus,
        notifier: Notifier,
        settings: Settings | None = None,
        container_size: tuple[float, float] = (1280.0, 800.0),
    ) -> None:
        self.bus = bus
        self.notifier = notifier
        self.settings = settings or get_settings()
        self.container_size = container_size
        self.manifest = fallback_manifest()
        self.page_positions: dict[str, Rect] = flow_layout(self.manifest)
        self.viewport = ViewportState()
        self.listeners: list[Callable[[ViewportState], None]] = []
        self._animation: asyncio.Task[None] | None = None
        self._unsubscribe = bus.on(MessageType.NAVIGATION_INTENT, self.on_navigation_intent)

    def load_manifest(self, manifest: FlowManifest) -> None:
        self.manifest = manifest
        self.page_positions = flow_layout(manifest)

    async def on_navigation_intent(self, payload: dict[str, Any]) -> None:
        if not self.bus.flow_mode:
            return
        intent = NavigationIntent.model_validate(payload)
        self.navigate(intent.target_route)

    def navigate(self, route: str) -> asyncio.Task[None] | None:
        page = self.manifest.page_for_route(route)
        if page is None:
            self.notifier.error(f'Route "{route}" not found in flow')
            return None
        position = self.page_positions.get(page.id)
        if position is None:
            self.notifier.error(f'No frame found for page "{page.name}"')
            return None

        self.cancel()
        framed = Rect(
            position.x,
            position.y,
            position.width,
            position.height + FRAME_HEADER_HEIGHT + TITLE_BAR_HEIGHT,
        )
        target = centered_viewport(framed, *self.container_size)
        self._animation = asyncio.get_running_loop().create_task(self._animate(self.viewport, target))
        return self._animation

    def cancel(self) -> None:
        if self._animation is not None and not self._animation.done():
            self._animation.cancel()
        self._animation = None

    async def _animate(self, start: ViewportState, end: ViewportState) -> None:
        loop = asyncio.get_running_loop()
        duration = self.settings.navigation_duration
        began = loop.time()
        while True:
            progress = 1.0 if duration <= 0 else min((loop.time() - began) / duration, 1.0)
            self._update(interpolate(start, end, ease_out_cubic(progress)))
            if progress >= 1.0:
                return
            await asyncio.sleep(_FRAME_INTERVAL)

    def _update(self, state: ViewportState) -> None:
        self.viewport = state
        for listener in list(self.listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Error in viewport listener")

    async def close(self) -> None:
        self._unsubscribe()
        task = self._animation
        self.cancel()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task
