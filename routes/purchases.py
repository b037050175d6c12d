from typing import Optional

from fastapi import APIRouter, Query, status

from database import create_document, delete_document, get_document_or_404, get_documents
from responses import envelope
from schemas import Purchase

router = APIRouter(prefix="/api/purchases", tags=["purchases"])


# Purchase orders are immutable once placed: no update route.

@router.get("")
def list_purchases(project_code: Optional[str] = Query(None, alias="projectCode")):
    q = {"projectCode": project_code} if project_code else {}
    return envelope(get_documents("purchase", q))


@router.get("/{purchase_id}")
def get_purchase(purchase_id: str):
    return envelope(get_document_or_404("purchase", purchase_id, "Purchase order"))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_purchase(payload: Purchase):
    return envelope(create_document("purchase", payload), message="Purchase order created successfully")


@router.delete("/{purchase_id}")
def delete_purchase(purchase_id: str):
    delete_document("purchase", purchase_id, "Purchase order")
    return envelope(message="Purchase order deleted successfully")
