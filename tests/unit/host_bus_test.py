"""Tests for the host side of the host/preview message bus."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from draftboard.config import Settings
from draftboard.models import DropTarget, SourceLocation
from draftboard.protocol.frames import FrameState
from draftboard.protocol.host import HostBus
from draftboard.protocol.messages import Message, MessageType
from tests.conftest import RecordingChannel

SELECTED = {
    "selector": "main > h1",
    "tagName": "h1",
    "selectionId": "sel-1",
    "source": {"file": "/App.tsx", "line": 6, "column": 8},
}


def _msg(type: MessageType, payload: dict[str, Any] | None = None) -> Message:
    return Message(type=type, payload=payload or {})


async def _wait_for_query(channel: RecordingChannel) -> None:
    for _ in range(100):
        if MessageType.FIND_DROP_TARGET in [m.type for m in channel.sent]:
            return
        await asyncio.sleep(0)
    raise AssertionError("no find-drop-target was sent")


class TestFrames:
    @pytest.mark.asyncio
    async def test_inspector_ready_marks_frame_and_resends_toggles(self, fast_settings: Settings) -> None:
        bus = HostBus(fast_settings)
        channel = RecordingChannel()
        frame = bus.register_frame("home", channel)
        assert frame.state == FrameState.LOADING

        await bus.handle_message(channel, _msg(MessageType.INSPECTOR_READY))
        await bus.settle()

        assert frame.state == FrameState.READY
        assert channel.types() == ["inspection-mode", "flow-mode-state"]
        assert [m.payload for m in channel.sent] == [{"enabled": False}, {"enabled": False}]

    @pytest.mark.asyncio
    async def test_every_reload_gets_the_toggles_again(self, fast_settings: Settings) -> None:
        bus = HostBus(fast_settings)
        channel = RecordingChannel()
        frame = bus.register_frame("home", channel)
        for _ in range(2):
            await bus.handle_message(channel, _msg(MessageType.INSPECTOR_READY))
            await bus.settle()
        assert frame.ready_count == 2
        assert len(channel.sent) == 4

    @pytest.mark.asyncio
    async def test_ready_from_unknown_source_is_ignored(self, fast_settings: Settings) -> None:
        bus = HostBus(fast_settings)
        await bus.handle_message(object(), _msg(MessageType.INSPECTOR_READY))
        await bus.settle()
        assert bus.frames == {}

    @pytest.mark.asyncio
    async def test_toggle_changes_are_broadcast_once(self, fast_settings: Settings) -> None:
        bus = HostBus(fast_settings)
        first, second = RecordingChannel(), RecordingChannel()
        bus.register_frame("home", first)
        bus.register_frame("about", second)

        bus.set_inspection_mode(True)
        bus.set_inspection_mode(True)
        bus.set_flow_mode(True)
        await bus.settle()

        for channel in (first, second):
            assert channel.types() == ["inspection-mode", "flow-mode-state"]
            assert channel.sent[0].payload == {"enabled": True}

    @pytest.mark.asyncio
    async def test_build_settled_rebroadcasts_to_that_page(self, fast_settings: Settings) -> None:
        bus = HostBus(fast_settings)
        home, about = RecordingChannel(), RecordingChannel()
        bus.register_frame("home", home)
        bus.register_frame("about", about)

        bus.on_build_settled("about")
        await bus.settle()

        assert home.sent == []
        assert about.types() == ["inspection-mode", "flow-mode-state"]

    @pytest.mark.asyncio
    async def test_failed_delivery_does_not_raise(self, fast_settings: Settings) -> None:
        bus = HostBus(fast_settings)
        bus.register_frame("home", RecordingChannel(fail=True))
        delivered = await bus.broadcast(_msg(MessageType.REMOVE_PLACEHOLDER))
        assert delivered == 0

    @pytest.mark.asyncio
    async def test_placeholder_goes_to_the_requested_page(self, fast_settings: Settings) -> None:
        bus = HostBus(fast_settings)
        home, about = RecordingChannel(), RecordingChannel()
        bus.register_frame("home", home)
        bus.register_frame("about", about)

        assert await bus.insert_placeholder(10, 20, "Button", "about")

        assert home.sent == []
        assert about.sent[0].payload == {"x": 10, "y": 20, "componentName": "Button"}

    @pytest.mark.asyncio
    async def test_unregister(self, fast_settings: Settings) -> None:
        bus = HostBus(fast_settings)
        frame = bus.register_frame("home", RecordingChannel())
        bus.unregister_frame("home")
        assert frame.state == FrameState.UNLOADED
        assert not await bus.send_to_page("home", _msg(MessageType.REMOVE_PLACEHOLDER))


class TestSelection:
    @pytest.mark.asyncio
    async def test_selection_is_stored_and_dispatched_once(self, fast_settings: Settings) -> None:
        bus = HostBus(fast_settings)
        channel = RecordingChannel()
        bus.register_frame("home", channel)
        received: list[dict[str, Any]] = []
        bus.on(MessageType.ELEMENT_SELECTED, received.append)

        await bus.handle_message(channel, _msg(MessageType.ELEMENT_SELECTED, SELECTED))
        await bus.handle_message(channel, _msg(MessageType.ELEMENT_SELECTED, SELECTED))

        assert bus.selected is not None
        assert bus.selected.page_id == "home"
        assert bus.selected.source == SourceLocation(file="/App.tsx", line=6, column=8)
        assert len(received) == 1
        assert received[0]["pageId"] == "home"

    @pytest.mark.asyncio
    async def test_malformed_selection_is_dropped(self, fast_settings: Settings) -> None:
        bus = HostBus(fast_settings)
        channel = RecordingChannel()
        bus.register_frame("home", channel)
        received: list[dict[str, Any]] = []
        bus.on(MessageType.ELEMENT_SELECTED, received.append)
        await bus.handle_message(channel, _msg(MessageType.ELEMENT_SELECTED, SELECTED))

        await bus.handle_message(channel, _msg(MessageType.ELEMENT_SELECTED, {"foo": 1}))
        await bus.handle_message(channel, _msg(MessageType.SELECTION_REVALIDATED, {"tagName": 3}))

        assert bus.selected is not None
        assert bus.selected.selection_id == "sel-1"
        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_revalidation_updates_silently(self, fast_settings: Settings) -> None:
        bus = HostBus(fast_settings)
        channel = RecordingChannel()
        bus.register_frame("home", channel)
        received: list[dict[str, Any]] = []
        bus.on(MessageType.ELEMENT_SELECTED, received.append)

        moved = {**SELECTED, "source": {"file": "/App.tsx", "line": 7, "column": 8}}
        await bus.handle_message(channel, _msg(MessageType.SELECTION_REVALIDATED, moved))

        assert received == []
        assert bus.selected is not None
        assert bus.selected.source is not None
        assert bus.selected.source.line == 7

    @pytest.mark.asyncio
    async def test_update_selected_source(self, fast_settings: Settings) -> None:
        bus = HostBus(fast_settings)
        channel = RecordingChannel()
        bus.register_frame("home", channel)
        await bus.handle_message(channel, _msg(MessageType.ELEMENT_SELECTED, SELECTED))

        bus.update_selected_source(SourceLocation(file="/App.tsx", line=9, column=2))

        assert bus.selected is not None
        assert bus.selected.source == SourceLocation(file="/App.tsx", line=9, column=2)
        bus.clear_selection()
        assert bus.selected is None

    @pytest.mark.asyncio
    async def test_keyboard_events_are_forwarded_with_page(self, fast_settings: Settings) -> None:
        bus = HostBus(fast_settings)
        channel = RecordingChannel()
        bus.register_frame("home", channel)
        received: list[dict[str, Any]] = []

        async def listener(payload: dict[str, Any]) -> None:
            received.append(payload)

        bus.on(MessageType.KEYBOARD_EVENT, listener)
        await bus.handle_message(channel, _msg(MessageType.KEYBOARD_EVENT, {"key": "ArrowDown"}))

        assert received == [{"key": "ArrowDown", "pageId": "home"}]

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_stop_others(self, fast_settings: Settings) -> None:
        bus = HostBus(fast_settings)
        channel = RecordingChannel()
        bus.register_frame("home", channel)
        received: list[dict[str, Any]] = []

        def broken(payload: dict[str, Any]) -> None:
            raise RuntimeError("boom")

        bus.on(MessageType.KEYBOARD_EVENT, broken)
        unsubscribe = bus.on(MessageType.KEYBOARD_EVENT, received.append)
        await bus.handle_message(channel, _msg(MessageType.KEYBOARD_EVENT, {"key": "ArrowUp"}))
        unsubscribe()
        await bus.handle_message(channel, _msg(MessageType.KEYBOARD_EVENT, {"key": "ArrowUp"}))

        assert len(received) == 1


class TestDropTarget:
    @pytest.mark.asyncio
    async def test_reply_resolves_query(self, fast_settings: Settings) -> None:
        bus = HostBus(fast_settings)
        channel = RecordingChannel()
        bus.register_frame("home", channel)

        query = asyncio.create_task(bus.find_drop_target(120, 80, "home"))
        await _wait_for_query(channel)
        reply = {"isContainer": True, "source": {"file": "/App.tsx", "line": 5, "column": 6}, "tagName": "main"}
        await bus.handle_message(channel, _msg(MessageType.DROP_TARGET_FOUND, reply))

        target = await query
        assert target == DropTarget(
            is_container=True, source=SourceLocation(file="/App.tsx", line=5, column=6), tag_name="main"
        )
        assert channel.sent[0].payload == {"x": 120, "y": 80}

    @pytest.mark.asyncio
    async def test_timeout_resolves_to_none(self, fast_settings: Settings) -> None:
        bus = HostBus(fast_settings)
        bus.register_frame("home", RecordingChannel())
        assert await bus.find_drop_target(1, 1) is None

    @pytest.mark.asyncio
    async def test_no_frame_resolves_to_none(self, fast_settings: Settings) -> None:
        bus = HostBus(fast_settings)
        assert await bus.find_drop_target(1, 1) is None

    @pytest.mark.asyncio
    async def test_failed_send_resolves_to_none(self, fast_settings: Settings) -> None:
        bus = HostBus(fast_settings)
        bus.register_frame("home", RecordingChannel(fail=True))
        assert await bus.find_drop_target(1, 1) is None

    @pytest.mark.asyncio
    async def test_newer_query_supersedes_older(self, fast_settings: Settings) -> None:
        bus = HostBus(fast_settings)
        channel = RecordingChannel()
        bus.register_frame("home", channel)

        older = asyncio.create_task(bus.find_drop_target(1, 1))
        await _wait_for_query(channel)
        newer = asyncio.create_task(bus.find_drop_target(2, 2))
        for _ in range(100):
            if len(channel.sent) == 2:
                break
            await asyncio.sleep(0)
        await bus.handle_message(channel, _msg(MessageType.DROP_TARGET_FOUND, {"isContainer": False}))

        assert await older is None
        assert await newer == DropTarget(is_container=False)

    @pytest.mark.asyncio
    async def test_malformed_reply_resolves_to_none_at_once(self, fast_settings: Settings) -> None:
        bus = HostBus(fast_settings)
        channel = RecordingChannel()
        bus.register_frame("home", channel)

        query = asyncio.create_task(bus.find_drop_target(1, 1, "home"))
        await _wait_for_query(channel)
        await bus.handle_message(channel, _msg(MessageType.DROP_TARGET_FOUND, {"isContainer": "maybe?"}))

        assert await asyncio.wait_for(query, timeout=0.02) is None
        assert bus._pending is None

    @pytest.mark.asyncio
    async def test_unsolicited_reply_is_ignored(self, fast_settings: Settings) -> None:
        bus = HostBus(fast_settings)
        channel = RecordingChannel()
        bus.register_frame("home", channel)
        await bus.handle_message(channel, _msg(MessageType.DROP_TARGET_FOUND, {"isContainer": True}))
        assert await bus.find_drop_target(1, 1) is None

    @pytest.mark.asyncio
    async def test_prefers_ready_frame(self, fast_settings: Settings) -> None:
        bus = HostBus(fast_settings)
        loading, ready = RecordingChannel(), RecordingChannel()
        bus.register_frame("loading", loading)
        bus.register_frame("ready", ready)
        await bus.handle_message(ready, _msg(MessageType.INSPECTOR_READY))
        await bus.settle()
        ready.sent.clear()

        await bus.find_drop_target(1, 1)

        assert loading.sent == []
        assert ready.types() == ["find-drop-target"]
