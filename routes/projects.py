from datetime import datetime
from typing import Optional

import structlog
from fastapi import APIRouter, HTTPException, status
from pydantic import Field

import notify
from database import create_document, delete_document, get_db, get_document_or_404, get_documents, update_document
from responses import envelope
from schemas import CamelModel, Project, ProjectStatus, ProjectType, as_utc

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/projects", tags=["projects"])


class ProjectUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    type: Optional[ProjectType] = None
    location: Optional[str] = Field(None, min_length=1)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: Optional[ProjectStatus] = None
    budget: Optional[float] = Field(None, ge=0)
    manager: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1, max_length=5000)
    completion: Optional[float] = Field(None, ge=0, le=100)


@router.get("")
def list_projects(status: Optional[ProjectStatus] = None):
    q = {"status": status} if status else {}
    return envelope(get_documents("project", q))


@router.get("/stats")
def project_stats():
    """Project counts per status, total budget and mean completion."""
    rows = list(get_db()["project"].aggregate([
        {"$group": {
            "_id": "$status",
            "count": {"$sum": 1},
            "budget": {"$sum": "$budget"},
            "completion": {"$sum": "$completion"},
        }},
    ]))
    total = sum(r["count"] for r in rows)
    return envelope({
        "total": total,
        "byStatus": {r["_id"]: r["count"] for r in rows},
        "totalBudget": sum(r["budget"] for r in rows),
        "averageCompletion": round(sum(r["completion"] for r in rows) / total, 2) if total else 0,
    })


@router.get("/{project_id}")
def get_project(project_id: str):
    return envelope(get_document_or_404("project", project_id, "Project"))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_project(payload: Project):
    project = create_document("project", payload)
    notify.project_created(project)
    log.info("project_created", project_id=project["_id"])
    return envelope(project, message="Project created successfully")


@router.put("/{project_id}")
def update_project(project_id: str, payload: ProjectUpdate):
    update = {k: v for k, v in payload.model_dump(by_alias=True).items() if v is not None}
    if "startDate" in update or "endDate" in update:
        current = get_document_or_404("project", project_id, "Project")
        start = update.get("startDate", current.get("startDate"))
        end = update.get("endDate", current.get("endDate"))
        if start and end and as_utc(end) < as_utc(start):
            raise HTTPException(status_code=400, detail="endDate must not be before startDate")
    project = update_document("project", project_id, update, "Project")
    notify.project_updated(project)
    return envelope(project, message="Project updated successfully")


@router.delete("/{project_id}")
def delete_project(project_id: str):
    # no cascade: expenses and tasks keep their references
    project = delete_document("project", project_id, "Project")
    notify.project_deleted(project)
    log.info("project_deleted", project_id=project_id)
    return envelope(message="Project deleted successfully")