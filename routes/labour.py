from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import Field
from pymongo import DESCENDING

from database import create_document, delete_document, get_db, get_document_or_404, get_documents, update_document
from responses import envelope
from schemas import CamelModel, LabourAssignment, LabourType

router = APIRouter(prefix="/api/labour-assignments", tags=["labour"])


class LabourAssignmentUpdate(CamelModel):
    project_code: Optional[str] = Field(None, min_length=1)
    task_code: Optional[str] = Field(None, min_length=1)
    labour_type: Optional[LabourType] = None
    number_of_labourers: Optional[int] = Field(None, ge=1)
    assignment_date: Optional[datetime] = None
    site_name: Optional[str] = Field(None, min_length=1)
    supervisor: Optional[str] = Field(None, min_length=1)


def _require_task(task_code: str) -> None:
    if get_db()["task"].find_one({"taskCode": task_code}, {"_id": 1}) is None:
        raise HTTPException(status_code=400, detail=f"Task {task_code} does not exist")


@router.get("")
def list_assignments(
    project_code: Optional[str] = Query(None, alias="projectCode"),
    task_code: Optional[str] = Query(None, alias="taskCode"),
):
    q = {}
    if project_code:
        q["projectCode"] = project_code
    if task_code:
        q["taskCode"] = task_code
    return envelope(get_documents("labourassignment", q, sort=[("assignmentDate", DESCENDING)]))


@router.get("/{assignment_id}")
def get_assignment(assignment_id: str):
    return envelope(get_document_or_404("labourassignment", assignment_id, "Assignment"))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_assignment(payload: LabourAssignment):
    _require_task(payload.task_code)
    return envelope(create_document("labourassignment", payload), message="Assignment created successfully")


@router.put("/{assignment_id}")
def update_assignment(assignment_id: str, payload: LabourAssignmentUpdate):
    update = {k: v for k, v in payload.model_dump(by_alias=True).items() if v is not None}
    if "taskCode" in update:
        _require_task(update["taskCode"])
    return envelope(update_document("labourassignment", assignment_id, update, "Assignment"), message="Assignment updated successfully")


@router.delete("/{assignment_id}")
def delete_assignment(assignment_id: str):
    delete_document("labourassignment", assignment_id, "Assignment")
    return envelope(message="Assignment deleted successfully")
