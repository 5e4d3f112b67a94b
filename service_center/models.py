from __future__ import annotations
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from sqlalchemy import Column, Enum as SAEnum
from sqlmodel import SQLModel, Field

if SQLModel.metadata.tables:
    SQLModel.metadata.clear()


DEFAULT_JOB_PRIORITY = "Normal"
DEFAULT_INSPECTION_STATUS = "Pending"


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


class LifecycleState(str, Enum):
    active = "active"
    deleted = "deleted"


def _state_field() -> Any:
    return Field(
        default=LifecycleState.active,
        sa_column=Column(
            SAEnum(LifecycleState, name="lifecycle_state"),
            nullable=False,
            index=True,
            server_default=LifecycleState.active.value,
        ),
    )


class Customer(SQLModel, table=True):
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    contact_number: str
    whatsapp_number: Optional[str] = None
    email: Optional[str] = Field(default=None, index=True)
    address: Optional[str] = None
    customer_type: str
    gst_number: Optional[str] = None
    is_active: bool = True
    state: LifecycleState = _state_field()
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None


class Employee(SQLModel, table=True):
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    role: str
    phone: Optional[str] = None
    email: Optional[str] = Field(default=None, index=True)
    is_active: bool = True
    state: LifecycleState = _state_field()
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None


class Part(SQLModel, table=True):
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    sku: Optional[str] = Field(default=None, unique=True, index=True)
    description: Optional[str] = None
    unit_cost: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    selling_price: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    stock_qty: int = 0
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)


class ServiceOrder(SQLModel, table=True):
    __tablename__ = "service_order"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    customer_id: int = Field(foreign_key="customer.id", index=True)
    created_by_employee_id: Optional[int] = Field(default=None, foreign_key="employee.id")
    service_type_id: Optional[int] = None
    service_order_number: Optional[str] = Field(default=None, index=True)
    notes: Optional[str] = None
    expected_pickup_date: Optional[date] = None
    status_id: Optional[int] = None
    state: LifecycleState = _state_field()
    version: int = Field(default=1, nullable=False)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None


class Item(SQLModel, table=True):
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    service_order_id: int = Field(foreign_key="service_order.id", index=True)
    device_type_id: Optional[int] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    serial_no: Optional[str] = None
    imei: Optional[str] = None
    accessories: Optional[str] = None
    condition_on_receipt: Optional[str] = None
    inspection_status: Optional[str] = DEFAULT_INSPECTION_STATUS
    state: LifecycleState = _state_field()
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None


class Job(SQLModel, table=True):
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    item_id: int = Field(foreign_key="item.id", index=True)
    service_type_id: Optional[int] = None
    received_date: datetime = Field(default_factory=utcnow)
    assigned_to: Optional[int] = Field(default=None, foreign_key="employee.id")
    priority: Optional[str] = DEFAULT_JOB_PRIORITY
    estimated_cost: Optional[Decimal] = Field(default=None, max_digits=12, decimal_places=2)
    actual_cost: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    diagnosis: Optional[str] = None
    diagnosis_date: Optional[datetime] = None
    target_completion_date: Optional[date] = None
    completion_date: Optional[datetime] = None
    notes: Optional[str] = None
    job_status_id: Optional[int] = None
    state: LifecycleState = _state_field()
    updated_at: Optional[datetime] = Field(default_factory=utcnow)


class JobPart(SQLModel, table=True):
    __tablename__ = "job_part"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    job_id: int = Field(foreign_key="job.id", index=True)
    part_id: int = Field(foreign_key="part.id")
    quantity: int = Field(default=1, nullable=False)
    unit_cost: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    total_cost: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    is_warranty_part: bool = False
    added_at: datetime = Field(default_factory=utcnow)
