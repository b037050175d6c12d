from datetime import datetime
from typing import Optional

import structlog
from fastapi import APIRouter, HTTPException, status
from pydantic import Field
from pymongo.errors import DuplicateKeyError

from database import create_document, delete_document, get_document_or_404, get_documents, update_document
from responses import envelope
from schemas import CamelModel, Task

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


class TaskUpdate(CamelModel):
    project_code: Optional[str] = Field(None, min_length=1)
    task_code: Optional[str] = Field(None, min_length=1)
    task_type: Optional[str] = Field(None, min_length=1)
    floor: Optional[str] = Field(None, min_length=1)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    site_name: Optional[str] = Field(None, min_length=1)


def _duplicate(task_code: Optional[str]) -> HTTPException:
    return HTTPException(status_code=400, detail=f"Task code {task_code} already exists")


@router.get("")
def list_tasks():
    return envelope(get_documents("task"))


@router.get("/{task_id}")
def get_task(task_id: str):
    return envelope(get_document_or_404("task", task_id, "Task"))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_task(payload: Task):
    try:
        task = create_document("task", payload)
    except DuplicateKeyError:
        raise _duplicate(payload.task_code)
    log.info("task_created", task_id=task["_id"], task_code=payload.task_code)
    return envelope(task, message="Task created successfully")


@router.put("/{task_id}")
def update_task(task_id: str, payload: TaskUpdate):
    update = {k: v for k, v in payload.model_dump(by_alias=True).items() if v is not None}
    try:
        task = update_document("task", task_id, update, "Task")
    except DuplicateKeyError:
        raise _duplicate(payload.task_code)
    return envelope(task, message="Task updated successfully")


@router.delete("/{task_id}")
def delete_task(task_id: str):
    delete_document("task", task_id, "Task")
    return envelope(message="Task deleted successfully")
