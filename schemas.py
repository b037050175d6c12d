"""
Database Schemas for the Construction Manager

Collections are inferred from Pydantic model class names (lowercased):
- User -> "user"
- Project -> "project"
- Task -> "task"
- Equipment -> "equipment"
- Expense -> "expense"
- LabourAssignment -> "labourassignment"
- Purchase -> "purchase"
- Inquiry -> "inquiry"
- Notification -> "notification"

Field names are snake_case in Python and camelCase on the wire and in MongoDB.
These are used both for validation and to guide DB operations.
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, model_validator
from pydantic.alias_generators import to_camel
from typing import Optional, Literal
from datetime import datetime, timezone


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC, so mixed inputs stay comparable."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


# Users
Role = Literal["GENERAL", "ADMIN"]


class User(CamelModel):
    pro_pic: Optional[str] = None
    f_name: str = Field(..., min_length=1, max_length=100)
    l_name: str = Field(..., min_length=1, max_length=100)
    address: str = Field(..., min_length=1, max_length=500)
    dob: datetime
    gender: str = Field(..., min_length=1, max_length=30)
    email: EmailStr
    password_hash: str
    role: Role = "GENERAL"
    status: str = "Active"


# Projects
ProjectType = Literal["Residential", "Commercial", "Industrial", "Infrastructure"]
ProjectStatus = Literal["Pending", "In Progress", "On Hold", "Completed", "Cancelled"]


class Project(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    type: ProjectType
    location: str = Field(..., min_length=1)
    start_date: datetime
    end_date: datetime
    status: ProjectStatus = "Pending"
    budget: float = Field(..., ge=0)
    manager: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1, max_length=5000)
    completion: float = Field(0, ge=0, le=100)

    @model_validator(mode="after")
    def _check_dates(self):
        if as_utc(self.end_date) < as_utc(self.start_date):
            raise ValueError("endDate must not be before startDate")
        return self


# Tasks
class Task(CamelModel):
    project_code: str = Field(..., min_length=1)
    task_code: str = Field(..., min_length=1)
    task_type: str = Field(..., min_length=1)
    floor: str = Field(..., min_length=1)
    start_date: datetime
    end_date: datetime
    site_name: str = Field(..., min_length=1)


# Equipment
EquipmentStatus = Literal["Stocked", "Rented"]
EquipmentCondition = Literal["Excellent", "Good", "Fair", "Poor", "Under Repair"]


class Equipment(CamelModel):
    name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    manufacturer: Optional[str] = None
    serial_number: Optional[str] = None
    status: EquipmentStatus
    condition: EquipmentCondition
    location: str = Field(..., min_length=1)
    notes: Optional[str] = None
    # Stocked
    purchase_date: Optional[datetime] = None
    last_maintenance_date: Optional[datetime] = None
    # Rented
    rental_start: Optional[datetime] = None
    rental_end: Optional[datetime] = None
    vendor_name: Optional[str] = None
    vendor_contact: Optional[str] = None
    rental_cost: Optional[float] = Field(None, ge=0)


# Expenses
ExpenseCategory = Literal["material", "labor", "equipment", "transport", "utilities", "other"]
PaymentMethod = Literal["cash", "credit", "debit", "check", "transfer"]


class Expense(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    amount: float = Field(..., gt=0)
    category: ExpenseCategory
    date: datetime
    payment_method: PaymentMethod
    project_id: str = Field(..., min_length=1)
    description: Optional[str] = None
    receipt: Optional[str] = None


# Labour
LabourType = Literal["Mason", "Helper", "Carpenter", "Steel Fixer", "Plumber", "Electrician", "Painter"]


class LabourAssignment(CamelModel):
    project_code: str = Field(..., min_length=1)
    task_code: str = Field(..., min_length=1)
    labour_type: LabourType
    number_of_labourers: int = Field(..., ge=1)
    assignment_date: datetime
    site_name: str = Field(..., min_length=1)
    supervisor: str = Field(..., min_length=1)


# Purchases
Unit = Literal["kg", "m3", "bags"]


class Purchase(CamelModel):
    project_code: str = Field(..., min_length=1)
    material_type: str = Field(..., min_length=1)
    quantity: float = Field(..., gt=0)
    unit: Unit
    price: float = Field(..., ge=0)
    description: Optional[str] = None


# Inquiries
PackageType = Literal["Design & Build", "Build Only", "Renovation/Maintenance"]


class Inquiry(CamelModel):
    # the public contact form posts this as selectedPackage
    package_type: PackageType = Field(..., validation_alias=AliasChoices("packageType", "selectedPackage", "package_type"))
    name: str = Field(..., min_length=1, max_length=120)
    email: EmailStr
    message: str = Field(..., min_length=1, max_length=5000)


# Notifications
NotificationType = Literal["inquiry_received", "project_created", "project_updated", "project_deleted"]


class Notification(CamelModel):
    message: str = Field(..., min_length=1)
    type: NotificationType
    is_read: bool = False
    inquiry_id: Optional[str] = None
    project_id: Optional[str] = None
