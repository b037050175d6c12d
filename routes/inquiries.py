import structlog
from fastapi import APIRouter, Depends, status

import notify
from database import create_document, get_documents
from responses import envelope
from schemas import Inquiry
from security import CurrentUser, require_roles

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/inquiries", tags=["inquiries"])


@router.post("", status_code=status.HTTP_201_CREATED)
def submit_inquiry(payload: Inquiry):
    """Public contact form; the admin notification is recorded in the same request."""
    inquiry = create_document("inquiry", payload)
    notify.inquiry_received(inquiry)
    log.info("inquiry_received", inquiry_id=inquiry["_id"], package=payload.package_type)
    return envelope(inquiry, message="Inquiry submitted successfully")


@router.get("")
def list_inquiries(_: CurrentUser = Depends(require_roles("ADMIN"))):
    inquiries = get_documents("inquiry")
    return envelope(inquiries, count=len(inquiries))
