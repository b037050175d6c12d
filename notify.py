"""Notifications recorded as a side effect of project and inquiry writes."""
from typing import Optional

import structlog

from database import create_document
from schemas import Notification

log = structlog.get_logger(__name__)


def record(type_: str, message: str, project_id: Optional[str] = None, inquiry_id: Optional[str] = None) -> dict:
    notification = Notification(message=message, type=type_, project_id=project_id, inquiry_id=inquiry_id)
    doc = create_document("notification", notification)
    log.info("notification_recorded", type=type_, notification_id=doc["_id"])
    return doc


def project_created(project: dict) -> dict:
    return record("project_created", f"New project created: {project['name']}", project_id=project["_id"])


def project_updated(project: dict) -> dict:
    return record("project_updated", f"Project updated: {project['name']}", project_id=project["_id"])


def project_deleted(project: dict) -> dict:
    # the project is gone, keep the id for the audit trail only
    return record("project_deleted", f"Project deleted: {project['name']}", project_id=project["_id"])


def inquiry_received(inquiry: dict) -> dict:
    return record(
        "inquiry_received",
        f"New inquiry from {inquiry['name']} ({inquiry['packageType']})",
        inquiry_id=inquiry["_id"],
    )
