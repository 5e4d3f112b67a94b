"""Customer service helpers."""

from __future__ import annotations

from collections import Counter
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from ..models import Customer, LifecycleState, utcnow
from ..persistence import UnitOfWork
from ..schemas import CustomerCreate, CustomerStats, CustomerUpdate
from .errors import ConflictError, NotFoundError, ValidationError, require_positive_id


def list_customers(
    q: str | None, session: Session, *, active_only: bool = False
) -> List[Customer]:
    """Return live customers optionally filtered by a name query.

    Parameters
    ----------
    q:
        Optional case-insensitive substring of the customer name.  ``None``
        returns all customers.
    session:
        Active database session.
    active_only:
        When ``True`` only customers flagged ``is_active`` are returned.
    """

    criteria = []
    if q:
        criteria.append(func.lower(Customer.name).contains(q.strip().lower()))
    if active_only:
        criteria.append(Customer.is_active == True)  # noqa: E712
    rows = UnitOfWork(session).find_live(Customer, *criteria)
    return sorted(rows, key=lambda c: c.name)


def get_customer(customer_id: int, session: Session) -> Customer:
    customer_id = require_positive_id(customer_id, "customer")
    cust = UnitOfWork(session).get_live(Customer, customer_id)
    if cust is None:
        raise NotFoundError("Customer", customer_id)
    return cust


def _check_unique(
    session: Session,
    *,
    email: Optional[str],
    contact_number: Optional[str],
    exclude_id: Optional[int] = None,
) -> None:
    uow = UnitOfWork(session)
    others = [Customer.id != exclude_id] if exclude_id is not None else []
    if email:
        if uow.find_live(Customer, func.lower(Customer.email) == email.lower(), *others):
            raise ConflictError(f'Customer with email "{email}" already exists')
    if contact_number:
        if uow.find_live(Customer, Customer.contact_number == contact_number, *others):
            raise ConflictError(f'Customer with contact number "{contact_number}" already exists')


def create_customer(data: CustomerCreate, session: Session) -> Customer:
    """Create and persist a new :class:`Customer` record.

    Name, contact number and customer type are required; leading/trailing
    whitespace is ignored.  Email (case-insensitive) and contact number
    must be unique among live customers.
    """

    # 1) normalise inputs
    name = (data.name or "").strip()
    contact = (data.contact_number or "").strip()
    customer_type = (data.customer_type or "").strip()
    email = (data.email or "").strip() or None
    if not name:
        raise ValidationError("Customer name is required")
    if not contact:
        raise ValidationError("Contact number is required")
    if not customer_type:
        raise ValidationError("Customer type is required")

    # 2) uniqueness
    _check_unique(session, email=email, contact_number=contact)

    # 3) insert
    cust = Customer(
        name=name,
        contact_number=contact,
        customer_type=customer_type,
        whatsapp_number=data.whatsapp_number,
        email=email,
        address=data.address,
        gst_number=data.gst_number,
        is_active=True,
    )
    session.add(cust)
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise ConflictError(f'Customer "{name}" could not be stored') from e
    session.refresh(cust)
    return cust


def update_customer(customer_id: int, data: CustomerUpdate, session: Session) -> Customer:
    """Apply the non-blank fields of ``data`` to an existing customer."""

    cust = get_customer(customer_id, session)
    email = (data.email or "").strip() or None
    contact = (data.contact_number or "").strip() or None
    _check_unique(session, email=email, contact_number=contact, exclude_id=cust.id)

    for attr in ("name", "customer_type", "whatsapp_number", "address", "gst_number"):
        value = getattr(data, attr)
        if value is not None and value.strip():
            setattr(cust, attr, value.strip())
    if email:
        cust.email = email
    if contact:
        cust.contact_number = contact
    if data.is_active is not None:
        cust.is_active = data.is_active
    cust.updated_at = utcnow()
    session.add(cust)
    session.commit()
    session.refresh(cust)
    return cust


def delete_customer(customer_id: int, session: Session) -> None:
    """Soft-delete a customer.  Existing service orders are kept."""

    cust = get_customer(customer_id, session)
    cust.state = LifecycleState.deleted
    cust.is_active = False
    cust.updated_at = utcnow()
    session.add(cust)
    session.commit()


def customer_stats(session: Session) -> CustomerStats:
    customers = UnitOfWork(session).find_live(Customer)
    active = sum(1 for c in customers if c.is_active)
    by_type = Counter(c.customer_type for c in customers)
    return CustomerStats(
        total=len(customers),
        active=active,
        inactive=len(customers) - active,
        by_type=dict(by_type),
    )
