from datetime import datetime
from typing import Optional

from fastapi import APIRouter, status
from pydantic import Field

from database import create_document, delete_document, get_document_or_404, get_documents, update_document
from responses import envelope
from schemas import CamelModel, Equipment, EquipmentCondition, EquipmentStatus

router = APIRouter(prefix="/api/equipment", tags=["equipment"])


class EquipmentUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    type: Optional[str] = Field(None, min_length=1)
    manufacturer: Optional[str] = None
    serial_number: Optional[str] = None
    status: Optional[EquipmentStatus] = None
    condition: Optional[EquipmentCondition] = None
    location: Optional[str] = Field(None, min_length=1)
    notes: Optional[str] = None
    purchase_date: Optional[datetime] = None
    last_maintenance_date: Optional[datetime] = None
    rental_start: Optional[datetime] = None
    rental_end: Optional[datetime] = None
    vendor_name: Optional[str] = None
    vendor_contact: Optional[str] = None
    rental_cost: Optional[float] = Field(None, ge=0)


@router.get("")
def list_equipment(status: Optional[EquipmentStatus] = None, condition: Optional[EquipmentCondition] = None):
    q = {}
    if status:
        q["status"] = status
    if condition:
        q["condition"] = condition
    return envelope(get_documents("equipment", q))


@router.get("/{equipment_id}")
def get_equipment(equipment_id: str):
    return envelope(get_document_or_404("equipment", equipment_id, "Equipment"))


@router.post("", status_code=status.HTTP_201_CREATED)
def add_equipment(payload: Equipment):
    return envelope(create_document("equipment", payload), message="Equipment added successfully")


@router.put("/{equipment_id}")
def update_equipment(equipment_id: str, payload: EquipmentUpdate):
    update = {k: v for k, v in payload.model_dump(by_alias=True).items() if v is not None}
    return envelope(update_document("equipment", equipment_id, update, "Equipment"), message="Equipment updated successfully")


@router.delete("/{equipment_id}")
def remove_equipment(equipment_id: str):
    delete_document("equipment", equipment_id, "Equipment")
    return envelope(message="Equipment removed successfully")
