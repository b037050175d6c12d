import json
import math
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

import structlog
from fastapi import APIRouter, HTTPException, Query, Request, status
from pydantic import Field
from pymongo import DESCENDING
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from database import (
    create_document,
    delete_document,
    get_db,
    get_document_or_404,
    get_documents,
    require_reference,
    update_document,
)
from responses import envelope
from schemas import CamelModel, Expense, ExpenseCategory, PaymentMethod
from storage import storage

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/expenses", tags=["expenses"])

RECEIPT_FIELD = "receipt"


class ExpenseUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    amount: Optional[float] = Field(None, gt=0)
    category: Optional[ExpenseCategory] = None
    date: Optional[datetime] = None
    payment_method: Optional[PaymentMethod] = None
    project_id: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None


def with_receipt_url(expense: Dict[str, Any]) -> Dict[str, Any]:
    if expense.get("receipt"):
        expense["receiptUrl"] = storage.url_for(expense["receipt"])
    return expense


async def read_body(request: Request) -> Tuple[Dict[str, Any], Optional[UploadFile]]:
    """Accept multipart/urlencoded forms with an optional receipt file, or plain JSON."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            data = await request.json()
        except json.JSONDecodeError:
            raise HTTPException(status_code=400, detail="Malformed JSON body")
        if not isinstance(data, dict):
            raise HTTPException(status_code=400, detail="Expected a JSON object")
        data.pop(RECEIPT_FIELD, None)
        return data, None
    form = await request.form()
    data = {k: v for k, v in form.items() if isinstance(v, str) and v != "" and k != RECEIPT_FIELD}
    receipt = form.get(RECEIPT_FIELD)
    if not isinstance(receipt, UploadFile) or not receipt.filename:
        receipt = None
    return data, receipt


@router.get("")
def list_expenses(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    category: Optional[ExpenseCategory] = None,
    project_id: Optional[str] = Query(None, alias="projectId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
):
    q: Dict[str, Any] = {}
    if category:
        q["category"] = category
    if project_id:
        q["projectId"] = project_id
    if start_date or end_date:
        q["date"] = {}
        if start_date:
            q["date"]["$gte"] = start_date
        if end_date:
            q["date"]["$lte"] = end_date
    total = get_db()["expense"].count_documents(q)
    items = get_documents("expense", q, sort=[("date", DESCENDING)], skip=(page - 1) * limit, limit=limit)
    return envelope({
        "items": [with_receipt_url(e) for e in items],
        "totalCount": total,
        "currentPage": page,
        "totalPages": math.ceil(total / limit),
    })


@router.get("/summary")
def expense_summary():
    """Totals per category, largest first, plus the grand total."""
    summary = list(get_db()["expense"].aggregate([
        {"$group": {"_id": "$category", "totalAmount": {"$sum": "$amount"}, "count": {"$sum": 1}}},
        {"$sort": {"totalAmount": -1}},
    ]))
    return envelope({"summary": summary, "total": sum(s["totalAmount"] for s in summary)})


@router.get("/{expense_id}")
def get_expense(expense_id: str):
    return envelope(with_receipt_url(get_document_or_404("expense", expense_id, "Expense")))


def _create(data: Dict[str, Any], receipt: Optional[UploadFile]) -> Dict[str, Any]:
    expense = Expense.model_validate(data)
    require_reference("project", expense.project_id, "Project")
    if receipt is not None:
        expense.receipt = storage.save(receipt.file, RECEIPT_FIELD, receipt.filename)
    try:
        doc = create_document("expense", expense)
    except Exception:
        if expense.receipt:
            storage.delete(expense.receipt)
        raise
    log.info("expense_created", expense_id=doc["_id"], receipt=bool(expense.receipt))
    return doc


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_expense(request: Request):
    data, receipt = await read_body(request)
    doc = await run_in_threadpool(_create, data, receipt)
    return envelope(with_receipt_url(doc), message="Expense created successfully")


def _update(expense_id: str, data: Dict[str, Any], receipt: Optional[UploadFile]) -> Dict[str, Any]:
    changes = ExpenseUpdate.model_validate(data)
    update = {k: v for k, v in changes.model_dump(by_alias=True).items() if v is not None}
    current = get_document_or_404("expense", expense_id, "Expense")
    if "projectId" in update:
        require_reference("project", update["projectId"], "Project")
    if receipt is not None:
        update["receipt"] = storage.save(receipt.file, RECEIPT_FIELD, receipt.filename)
    doc = update_document("expense", expense_id, update, "Expense")
    if receipt is not None and current.get("receipt"):
        storage.delete(current["receipt"])
    return doc


@router.put("/{expense_id}")
async def update_expense(expense_id: str, request: Request):
    data, receipt = await read_body(request)
    doc = await run_in_threadpool(_update, expense_id, data, receipt)
    return envelope(with_receipt_url(doc), message="Expense updated successfully")


@router.delete("/{expense_id}")
def delete_expense(expense_id: str):
    expense = delete_document("expense", expense_id, "Expense")
    if expense.get("receipt"):
        storage.delete(expense["receipt"])
    return envelope(message="Expense deleted successfully")
