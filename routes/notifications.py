from typing import Optional

from fastapi import APIRouter, Query, status

from database import create_document, delete_document, get_db, get_documents, require_reference, update_document
from responses import envelope
from schemas import CamelModel, Notification

router = APIRouter(prefix="/api/notifications", tags=["notifications"])

MAX_NOTIFICATIONS = 50


class NotificationUpdate(CamelModel):
    is_read: bool = True


@router.get("")
def list_notifications(unread_only: bool = Query(False, alias="unreadOnly")):
    q = {"isRead": False} if unread_only else {}
    return envelope(get_documents("notification", q, limit=MAX_NOTIFICATIONS))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_notification(payload: Notification):
    if payload.project_id:
        require_reference("project", payload.project_id, "Project")
    if payload.inquiry_id:
        require_reference("inquiry", payload.inquiry_id, "Inquiry")
    return envelope(create_document("notification", payload), message="Notification created")


@router.put("/mark-all/read")
def mark_all_read():
    res = get_db()["notification"].update_many({"isRead": False}, {"$set": {"isRead": True}})
    return envelope({"modified": res.modified_count}, message="All notifications marked as read")


@router.put("/{notification_id}")
def mark_notification(notification_id: str, payload: Optional[NotificationUpdate] = None):
    is_read = payload.is_read if payload is not None else True
    return envelope(update_document("notification", notification_id, {"isRead": is_read}, "Notification"))


@router.delete("/{notification_id}")
def delete_notification(notification_id: str):
    delete_document("notification", notification_id, "Notification")
    return envelope(message="Notification deleted")
