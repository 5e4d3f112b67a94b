from __future__ import annotations

from typing import List

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..models import Part
from ..schemas import PartCreate
from .errors import ConflictError, NotFoundError, ValidationError, require_positive_id


def create_part(data: PartCreate, session: Session) -> Part:
    """Add a catalogue part.  ``sku`` must be unique when given."""

    name = (data.name or "").strip()
    sku = (data.sku or "").strip() or None
    if not name:
        raise ValidationError("Part name is required")
    if sku and session.exec(select(Part).where(Part.sku == sku)).first():
        raise ConflictError(f'Part with SKU "{sku}" already exists')

    part = Part(
        name=name,
        sku=sku,
        description=(data.description or "").strip() or None,
        unit_cost=data.unit_cost,
        selling_price=data.selling_price,
        stock_qty=data.stock_qty,
    )
    session.add(part)
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise ConflictError(f'Part with SKU "{sku}" already exists') from e
    session.refresh(part)
    return part


def get_part(part_id: int, session: Session) -> Part:
    part_id = require_positive_id(part_id, "part")
    part = session.get(Part, part_id)
    if part is None:
        raise NotFoundError("Part", part_id)
    return part


def search_parts(q: str | None, session: Session) -> List[Part]:
    """Return catalogue parts whose name or SKU contains ``q``."""
    stmt = select(Part)
    if q:
        needle = q.strip().lower()
        stmt = stmt.where(
            or_(func.lower(Part.name).contains(needle), func.lower(Part.sku).contains(needle))
        )
    return list(session.exec(stmt.order_by(Part.name)).all())
