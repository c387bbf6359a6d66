from __future__ import annotations

from fastapi import FastAPI

from draftboard.api.lifespan import lifespan
from draftboard.api.routes.frames import router as frames_router
from draftboard.api.routes.health import router as health_router
from draftboard.api.routes.preview import router as preview_router
from draftboard.api.routes.scene import router as scene_router
from draftboard.session import Session
from draftboard.vfs.memory import InMemoryVFS


def create_app(session: Session | None = None) -> FastAPI:
    app = FastAPI(
        title="Draftboard API",
        description="Canvas scene, source materialization and preview frame messaging.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.session = session if session is not None else Session(InMemoryVFS())

    app.include_router(health_router, include_in_schema=False)
    app.include_router(scene_router)
    app.include_router(preview_router)
    app.include_router(frames_router)

    return app
