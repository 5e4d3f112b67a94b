"""Employee service helpers."""

from __future__ import annotations

from typing import List

from sqlalchemy import func
from sqlmodel import Session

from ..models import Employee, LifecycleState, utcnow
from ..persistence import UnitOfWork
from ..schemas import EmployeeCreate, EmployeeUpdate
from .errors import ConflictError, NotFoundError, ValidationError, require_positive_id


def list_employees(
    session: Session, *, q: str | None = None, role: str | None = None
) -> List[Employee]:
    """Return live employees, optionally filtered by name substring or role."""

    criteria = []
    if q:
        criteria.append(func.lower(Employee.name).contains(q.strip().lower()))
    if role:
        criteria.append(func.lower(Employee.role) == role.strip().lower())
    rows = UnitOfWork(session).find_live(Employee, *criteria)
    return sorted(rows, key=lambda e: e.name)


def get_employee(employee_id: int, session: Session) -> Employee:
    employee_id = require_positive_id(employee_id, "employee")
    emp = UnitOfWork(session).get_live(Employee, employee_id)
    if emp is None:
        raise NotFoundError("Employee", employee_id)
    return emp


def _email_taken(session: Session, email: str, exclude_id: int | None = None) -> bool:
    criteria = [func.lower(Employee.email) == email.lower()]
    if exclude_id is not None:
        criteria.append(Employee.id != exclude_id)
    return bool(UnitOfWork(session).find_live(Employee, *criteria))


def create_employee(data: EmployeeCreate, session: Session) -> Employee:
    name = (data.name or "").strip()
    role = (data.role or "").strip()
    email = (data.email or "").strip() or None
    if not name:
        raise ValidationError("Employee name is required")
    if not role:
        raise ValidationError("Employee role is required")
    if email and _email_taken(session, email):
        raise ConflictError(f'Employee with email "{email}" already exists')

    emp = Employee(name=name, role=role, phone=data.phone, email=email)
    session.add(emp)
    session.commit()
    session.refresh(emp)
    return emp


def update_employee(employee_id: int, data: EmployeeUpdate, session: Session) -> Employee:
    emp = get_employee(employee_id, session)
    email = (data.email or "").strip() or None
    if email and _email_taken(session, email, exclude_id=emp.id):
        raise ConflictError(f'Employee with email "{email}" already exists')

    for attr in ("name", "role", "phone"):
        value = getattr(data, attr)
        if value is not None and value.strip():
            setattr(emp, attr, value.strip())
    if email:
        emp.email = email
    if data.is_active is not None:
        emp.is_active = data.is_active
    emp.updated_at = utcnow()
    session.add(emp)
    session.commit()
    session.refresh(emp)
    return emp


def delete_employee(employee_id: int, session: Session) -> None:
    emp = get_employee(employee_id, session)
    emp.state = LifecycleState.deleted
    emp.is_active = False
    emp.updated_at = utcnow()
    session.add(emp)
    session.commit()
