"""Pydantic documents exchanged with callers.

Two families live here:

* *Documents* are what a client submits.  Hierarchy documents nest
  ``items`` → ``jobs`` → ``job_parts``; every child carries an optional
  identity where ``0``/``None`` means "create" and a positive value points
  at an existing row.  A child collection left as ``None`` means "leave
  this level alone"; an explicit list (even ``[]``) is authoritative.
* *Details* are what the services hand back: the canonical persisted state
  reassembled by the hierarchy reader.  A detail can be fed back as an
  update document unchanged; read-only fields are ignored on the way in.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


def _reject_duplicate_ids(children: Optional[list], attr: str) -> Optional[list]:
    if not children:
        return children
    seen: set[int] = set()
    for child in children:
        ident = getattr(child, attr) or 0
        if ident <= 0:
            continue
        if ident in seen:
            raise ValueError(f"duplicate {attr} {ident}")
        seen.add(ident)
    return children


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive timestamps; convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ---------------------------------------------------------------------------
# Hierarchy documents


class JobPartDocument(BaseModel):
    job_part_id: Optional[int] = Field(default=None, ge=0)
    part_id: Optional[int] = Field(default=None, gt=0)
    quantity: Optional[int] = Field(default=None, ge=0)
    unit_cost: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    is_warranty_part: Optional[bool] = None

    @property
    def identity(self) -> int:
        return self.job_part_id or 0


class JobDocument(BaseModel):
    job_id: Optional[int] = Field(default=None, ge=0)
    service_type_id: Optional[int] = None
    received_date: Optional[datetime] = None
    assigned_to: Optional[int] = Field(default=None, gt=0)
    priority: Optional[str] = None
    estimated_cost: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    diagnosis: Optional[str] = None
    target_completion_date: Optional[date] = None
    notes: Optional[str] = None
    job_status_id: Optional[int] = None
    job_parts: Optional[List[JobPartDocument]] = None

    @property
    def identity(self) -> int:
        return self.job_id or 0

    @field_validator("job_parts")
    @classmethod
    def _unique_job_parts(cls, value):
        return _reject_duplicate_ids(value, "job_part_id")

    @field_validator("received_date")
    @classmethod
    def _received_utc(cls, value):
        return _as_utc(value)


class ItemDocument(BaseModel):
    item_id: Optional[int] = Field(default=None, ge=0)
    device_type_id: Optional[int] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    serial_no: Optional[str] = None
    imei: Optional[str] = None
    accessories: Optional[str] = None
    condition_on_receipt: Optional[str] = None
    inspection_status: Optional[str] = None
    jobs: Optional[List[JobDocument]] = None

    @property
    def identity(self) -> int:
        return self.item_id or 0

    @field_validator("jobs")
    @classmethod
    def _unique_jobs(cls, value):
        return _reject_duplicate_ids(value, "job_id")


class ServiceOrderDocument(BaseModel):
    """Body for creating a service order together with its children."""

    created_by_employee_id: Optional[int] = Field(default=None, gt=0)
    service_type_id: Optional[int] = None
    service_order_number: Optional[str] = None
    notes: Optional[str] = None
    expected_pickup_date: Optional[date] = None
    status_id: Optional[int] = None
    items: Optional[List[ItemDocument]] = None

    @field_validator("items")
    @classmethod
    def _unique_items(cls, value):
        return _reject_duplicate_ids(value, "item_id")


class ServiceOrderUpdateDocument(ServiceOrderDocument):
    """Body for the smart update; the target order is always explicit.

    ``version`` is optional; when present it must match the stored row
    version or the update is refused with a conflict.
    """

    service_order_id: int = Field(gt=0)
    version: Optional[int] = Field(default=None, gt=0)


# ---------------------------------------------------------------------------
# Hierarchy details


class JobPartDetail(BaseModel):
    job_part_id: int
    job_id: int
    part_id: int
    quantity: int
    unit_cost: Decimal
    total_cost: Decimal
    is_warranty_part: bool
    added_at: datetime


class JobDetail(BaseModel):
    job_id: int
    item_id: int
    service_type_id: Optional[int] = None
    received_date: datetime
    assigned_to: Optional[int] = None
    priority: Optional[str] = None
    estimated_cost: Optional[Decimal] = None
    actual_cost: Decimal
    diagnosis: Optional[str] = None
    diagnosis_date: Optional[datetime] = None
    target_completion_date: Optional[date] = None
    completion_date: Optional[datetime] = None
    notes: Optional[str] = None
    job_status_id: Optional[int] = None
    updated_at: Optional[datetime] = None
    job_parts: List[JobPartDetail] = Field(default_factory=list)


class ItemDetail(BaseModel):
    item_id: int
    service_order_id: int
    device_type_id: Optional[int] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    serial_no: Optional[str] = None
    imei: Optional[str] = None
    accessories: Optional[str] = None
    condition_on_receipt: Optional[str] = None
    inspection_status: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    jobs: List[JobDetail] = Field(default_factory=list)


class ServiceOrderDetail(BaseModel):
    service_order_id: int
    customer_id: int
    created_by_employee_id: Optional[int] = None
    service_type_id: Optional[int] = None
    service_order_number: Optional[str] = None
    notes: Optional[str] = None
    expected_pickup_date: Optional[date] = None
    status_id: Optional[int] = None
    version: int
    created_at: datetime
    updated_at: Optional[datetime] = None
    items: List[ItemDetail] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Single-entity updates (non-empty wins)


class ServiceOrderUpdate(BaseModel):
    service_order_number: Optional[str] = None
    notes: Optional[str] = None
    expected_pickup_date: Optional[date] = None
    status_id: Optional[int] = None
    service_type_id: Optional[int] = None


class ItemUpdate(BaseModel):
    device_type_id: Optional[int] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    serial_no: Optional[str] = None
    imei: Optional[str] = None
    accessories: Optional[str] = None
    condition_on_receipt: Optional[str] = None
    inspection_status: Optional[str] = None


class JobUpdate(BaseModel):
    service_type_id: Optional[int] = None
    assigned_to: Optional[int] = Field(default=None, gt=0)
    priority: Optional[str] = None
    estimated_cost: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    diagnosis: Optional[str] = None
    diagnosis_date: Optional[datetime] = None
    target_completion_date: Optional[date] = None
    completion_date: Optional[datetime] = None
    notes: Optional[str] = None
    job_status_id: Optional[int] = None

    @field_validator("diagnosis_date", "completion_date")
    @classmethod
    def _dates_utc(cls, value):
        return _as_utc(value)


class JobPartUpdate(BaseModel):
    quantity: Optional[int] = Field(default=None, gt=0)
    unit_cost: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    is_warranty_part: Optional[bool] = None


# ---------------------------------------------------------------------------
# Customers, employees, parts


class CustomerCreate(BaseModel):
    name: str
    contact_number: str
    customer_type: str
    whatsapp_number: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    gst_number: Optional[str] = None


class CustomerUpdate(BaseModel):
    name: Optional[str] = None
    contact_number: Optional[str] = None
    customer_type: Optional[str] = None
    whatsapp_number: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    gst_number: Optional[str] = None
    is_active: Optional[bool] = None


class CustomerRead(BaseModel):
    id: int
    name: str
    contact_number: str
    customer_type: str
    whatsapp_number: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    gst_number: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None


class CustomerStats(BaseModel):
    total: int
    active: int
    inactive: int
    by_type: Dict[str, int] = Field(default_factory=dict)


class EmployeeCreate(BaseModel):
    name: str
    role: str
    phone: Optional[str] = None
    email: Optional[str] = None


class EmployeeUpdate(BaseModel):
    name: Optional[str] = None
    role: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    is_active: Optional[bool] = None


class EmployeeRead(BaseModel):
    id: int
    name: str
    role: str
    phone: Optional[str] = None
    email: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None


class PartCreate(BaseModel):
    name: str
    sku: Optional[str] = None
    description: Optional[str] = None
    unit_cost: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    selling_price: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    stock_qty: int = Field(default=0, ge=0)
