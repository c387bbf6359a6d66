from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi.requests import HTTPConnection

from draftboard.session import Session


async def get_session(connection: HTTPConnection) -> AsyncIterator[Session]:
    """Yield the ``Session`` the app was created with (HTTP and websocket routes alike)."""
    session: Session = connection.app.state.session
    yield session
