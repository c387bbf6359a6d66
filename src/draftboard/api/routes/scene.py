from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status

from draftboard.api.dependencies import get_session
from draftboard.api.schemas import (
    GroupResponse,
    MaterializeRequest,
    MaterializeResponse,
    SceneResponse,
    SelectionRequest,
    SelectionSchema,
    UngroupResponse,
)
from draftboard.errors import SceneGraphError
from draftboard.models import CanvasNode
from draftboard.session import Session

router = APIRouter(prefix="/scene", tags=["scene"])

_FIELD_BY_ALIAS = {(field.alias or name): name for name, field in CanvasNode.model_fields.items()}


def _scene_response(session: Session) -> SceneResponse:
    scene = session.scene
    return SceneResponse(
        nodes=list(scene.nodes.values()),
        root_ids=list(scene.root_ids),
        selection=SelectionSchema(ids=list(scene.selection.ids), primary_id=scene.selection.primary_id),
    )


@router.get("", response_model=SceneResponse)
async def get_scene(session: Session = Depends(get_session)) -> SceneResponse:
    return _scene_response(session)


@router.post("/nodes", response_model=CanvasNode, status_code=status.HTTP_201_CREATED)
async def add_node(node: CanvasNode, session: Session = Depends(get_session)) -> CanvasNode:
    try:
        return session.scene.add_node(node)
    except SceneGraphError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc


@router.patch("/nodes/{node_id}", response_model=CanvasNode)
async def update_node(
    node_id: str,
    changes: dict[str, Any] = Body(...),
    session: Session = Depends(get_session),
) -> CanvasNode:
    """Partial update; keys may be camelCase (wire) or snake_case."""
    fields = {_FIELD_BY_ALIAS.get(key, key): value for key, value in changes.items()}
    try:
        updated = session.scene.update_node(node_id, **fields)
    except SceneGraphError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Node {node_id!r} not found")
    return updated


@router.delete("/nodes/{node_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_node(node_id: str, session: Session = Depends(get_session)) -> None:
    if not session.scene.remove_node(node_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Node {node_id!r} not found")


@router.post("/selection", response_model=SelectionSchema)
async def change_selection(request: SelectionRequest, session: Session = Depends(get_session)) -> SelectionSchema:
    scene = session.scene
    if request.action == "clear":
        scene.deselect_all()
    elif request.node_id is None:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="nodeId is required")
    elif request.node_id not in scene.nodes:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Node {request.node_id!r} not found")
    elif request.action == "select":
        scene.select(request.node_id, additive=request.additive)
    elif request.action == "deselect":
        scene.deselect(request.node_id)
    else:
        scene.toggle_selection(request.node_id)
    return SelectionSchema(ids=list(scene.selection.ids), primary_id=scene.selection.primary_id)


@router.post("/group", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def group_selection(session: Session = Depends(get_session)) -> GroupResponse:
    group_id = session.scene.group_selection()
    if group_id is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Select at least two sibling nodes to group",
        )
    return GroupResponse(group_id=group_id)


@router.post("/nodes/{node_id}/ungroup", response_model=UngroupResponse)
async def ungroup_node(node_id: str, session: Session = Depends(get_session)) -> UngroupResponse:
    if node_id not in session.scene.nodes:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Node {node_id!r} not found")
    return UngroupResponse(child_ids=session.scene.ungroup_node(node_id))


@router.post("/nodes/{node_id}/materialize", response_model=MaterializeResponse)
async def materialize_node(
    node_id: str,
    request: MaterializeRequest,
    session: Session = Depends(get_session),
) -> MaterializeResponse:
    """Write the ghost node into source at the preview point; the node leaves the scene on success."""
    if node_id not in session.scene.nodes:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Node {node_id!r} not found")
    result = await session.materializer.materialize(node_id, request.x, request.y, request.page_id)
    return MaterializeResponse(
        success=result.success,
        error=result.error,
        reason=result.reason.value if result.reason is not None else None,
        file=result.file,
        location=result.location,
    )
