from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from .. import repo
from ..auth.deps import get_current_user
from ..config import NOTIFICATIONS_LIMIT
from ..http_helpers import parse_uuid
from ..services.notifications import notification_feed

router = APIRouter()


def _notification_id(raw: str) -> str:
    return parse_uuid(raw, status_code=404, detail="Notification not found")


@router.get("/notifications")
def list_notifications(limit: int = NOTIFICATIONS_LIMIT, current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    return notification_feed(str(current_user["id"]), limit=limit)


@router.post("/notifications/read-all")
def read_all_notifications(current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    return {"updated": repo.mark_all_notifications_read(str(current_user["id"]))}


@router.post("/notifications/{notification_id}/read")
def read_notification(notification_id: str, current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    notification_id = _notification_id(notification_id)
    if not repo.mark_notification_read(notification_id, str(current_user["id"])):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"id": notification_id, "read": True}


@router.delete("/notifications/{notification_id}")
def delete_notification(notification_id: str, current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    notification_id = _notification_id(notification_id)
    if not repo.delete_notification(notification_id, str(current_user["id"])):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"id": notification_id, "deleted": True}
