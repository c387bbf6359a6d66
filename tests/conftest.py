"""Shared fixtures and helpers for tests."""

from pathlib import Path

import pytest

from draftboard.config import Settings
from draftboard.protocol.messages import Message
from draftboard.vfs import InMemoryVFS

_REPO_ROOT = Path(__file__).parent.parent


# ---------------------------------------------------------------------------
# Auto-marker: tag tests as "unit" or "integration" based on directory
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        test_path = Path(str(item.fspath))
        rel = test_path.relative_to(_REPO_ROOT / "tests")
        parts = rel.parts
        if parts and parts[0] == "integration":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

APP_TSX = """import { Header } from "./components/Header";

export default function App() {
  return (
    <div className="flex flex-col gap-4">
      <Header />
      <main className="flex flex-row">
        <h1>Title</h1>
        <p>Body</p>
      </main>
    </div>
  );
}
"""


class RecordingChannel:
    """``FrameChannel`` that keeps every message it is asked to deliver."""

    def __init__(self, fail: bool = False) -> None:
        self.sent: list[Message] = []
        self.fail = fail

    async def send(self, message: Message) -> None:
        if self.fail:
            raise ConnectionError("frame is gone")
        self.sent.append(message)

    def types(self) -> list[str]:
        return [message.type.value for message in self.sent]


# ---------------------------------------------------------------------------
# Shared unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with every delay shrunk so async tests finish quickly."""
    return Settings(
        drop_target_timeout=0.05,
        sync_debounce=0.01,
        inspection_toggle_delay=0.0,
        flow_toggle_delay=0.0,
        build_settled_delay=0.0,
        inspector_ready_delay=0.0,
        placeholder_removal_delay=0.0,
        navigation_duration=0.02,
    )


@pytest.fixture
def app_vfs() -> InMemoryVFS:
    return InMemoryVFS({"/App.tsx": APP_TSX})
