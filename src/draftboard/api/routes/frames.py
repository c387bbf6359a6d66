"""Preview frames connect over a websocket, one per page."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError

from draftboard.api.dependencies import get_session
from draftboard.api.schemas import ModesRequest, ModesResponse
from draftboard.protocol.messages import Message
from draftboard.session import Session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/frames", tags=["frames"])


class WebSocketChannel:
    """``FrameChannel`` over an accepted websocket."""

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket

    async def send(self, message: Message) -> None:
        await self.websocket.send_json(message.model_dump(mode="json"))


@router.websocket("/{page_id}")
async def frame_socket(websocket: WebSocket, page_id: str, session: Session = Depends(get_session)) -> None:
    await websocket.accept()
    channel = WebSocketChannel(websocket)
    session.bus.register_frame(page_id, channel)
    try:
        while True:
            data = await websocket.receive_json()
            try:
                message = Message.model_validate(data)
            except ValidationError as exc:
                logger.warning("Discarding malformed message from frame %s: %s", page_id, exc)
                continue
            await session.bus.handle_message(channel, message)
    except WebSocketDisconnect:
        logger.info("Frame %s disconnected", page_id)
    finally:
        # A reconnecting frame may already have registered a new channel.
        frame = session.bus.frames.get(page_id)
        if frame is not None and frame.channel is channel:
            session.bus.unregister_frame(page_id)


@router.post("/{page_id}/settled", status_code=status.HTTP_202_ACCEPTED)
async def build_settled(page_id: str, session: Session = Depends(get_session)) -> None:
    """The sandbox finished rebuilding this page; re-send the global toggles."""
    session.bus.on_build_settled(page_id)


@router.get("/modes", response_model=ModesResponse)
async def get_modes(session: Session = Depends(get_session)) -> ModesResponse:
    return ModesResponse(inspection_mode=session.bus.inspection_mode, flow_mode=session.bus.flow_mode)


@router.put("/modes", response_model=ModesResponse)
async def set_modes(request: ModesRequest, session: Session = Depends(get_session)) -> ModesResponse:
    if request.inspection_mode is not None:
        session.bus.set_inspection_mode(request.inspection_mode)
    if request.flow_mode is not None:
        session.bus.set_flow_mode(request.flow_mode)
    return ModesResponse(inspection_mode=session.bus.inspection_mode, flow_mode=session.bus.flow_mode)
