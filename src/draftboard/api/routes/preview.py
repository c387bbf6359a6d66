from fastapi import APIRouter, Depends, HTTPException, status

from draftboard.api.dependencies import get_session
from draftboard.api.schemas import NotificationSchema, PreviewFilesResponse
from draftboard.session import PreviewSnapshot, Session

router = APIRouter(prefix="/preview", tags=["preview"])


@router.get("/files", response_model=PreviewFilesResponse)
async def preview_files(session: Session = Depends(get_session)) -> PreviewFilesResponse:
    """The instrumented file set the preview frames build from."""
    sandbox = session.sandbox
    if not isinstance(sandbox, PreviewSnapshot):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Preview files are served by an external sandbox",
        )
    return PreviewFilesResponse(
        version=sandbox.version,
        files=sandbox.files,
        dependencies=sandbox.dependencies,
        errors=session.sync.errors,
    )


@router.get("/notifications", response_model=list[NotificationSchema])
async def notifications(session: Session = Depends(get_session)) -> list[NotificationSchema]:
    return [NotificationSchema(id=n.id, level=n.level, message=n.message) for n in session.notifier.active]


@router.delete("/notifications/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def dismiss_notification(notification_id: int, session: Session = Depends(get_session)) -> None:
    if not session.notifier.dismiss(notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
