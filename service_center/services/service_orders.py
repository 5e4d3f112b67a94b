"""Service-order level helpers outside the composite create/update paths."""

from __future__ import annotations

import logging
from typing import List

from sqlalchemy import func
from sqlmodel import Session

from ..models import LifecycleState, ServiceOrder, utcnow
from ..persistence import UnitOfWork, live_items
from ..schemas import ServiceOrderDetail, ServiceOrderDocument, ServiceOrderUpdate
from .errors import NotFoundError, require_positive_id
from .hierarchy_builder import create_service_order_complete
from .hierarchy_reader import read_service_order, service_order_detail
from .hierarchy_reconciler import claim_version, delete_item, merge_text, merge_value

logger = logging.getLogger(__name__)


def get_service_order(service_order_id: int, session: Session) -> ServiceOrderDetail:
    service_order_id = require_positive_id(service_order_id, "service order")
    return read_service_order(service_order_id, session)


def list_service_orders(session: Session) -> List[ServiceOrderDetail]:
    """Return every live service order without its items."""
    uow = UnitOfWork(session)
    return [service_order_detail(uow, o, with_items=False) for o in uow.find_live(ServiceOrder)]


def search_by_customer(customer_id: int, session: Session) -> List[ServiceOrderDetail]:
    customer_id = require_positive_id(customer_id, "customer")
    uow = UnitOfWork(session)
    orders = uow.find_live(ServiceOrder, ServiceOrder.customer_id == customer_id)
    return [service_order_detail(uow, o, with_items=False) for o in orders]


def search_by_number(number: str, session: Session) -> List[ServiceOrderDetail]:
    """Case-insensitive substring match on ``service_order_number``."""

    needle = (number or "").strip().lower()
    if not needle:
        return []
    uow = UnitOfWork(session)
    orders = uow.find_live(
        ServiceOrder, func.lower(ServiceOrder.service_order_number).contains(needle)
    )
    return [service_order_detail(uow, o, with_items=False) for o in orders]


def create_service_order(
    customer_id: int, document: ServiceOrderDocument, session: Session
) -> ServiceOrderDetail:
    """Create a bare service order (items in ``document`` are created too)."""
    return create_service_order_complete(customer_id, document, session)


def update_service_order(
    service_order_id: int, data: ServiceOrderUpdate, session: Session
) -> ServiceOrderDetail:
    """Merge the non-blank scalar fields of ``data`` into the order."""

    service_order_id = require_positive_id(service_order_id, "service order")
    uow = UnitOfWork(session)
    with uow.transaction():
        order = uow.get_live(ServiceOrder, service_order_id)
        if order is None:
            raise NotFoundError("Service order", service_order_id)
        merge_text(order, "service_order_number", data.service_order_number)
        merge_text(order, "notes", data.notes)
        merge_value(order, "expected_pickup_date", data.expected_pickup_date)
        merge_value(order, "status_id", data.status_id)
        merge_value(order, "service_type_id", data.service_type_id)
        claim_version(uow, order, None)
        order.updated_at = utcnow()
        uow.update(order)
    return read_service_order(service_order_id, session)


def delete_service_order(service_order_id: int, session: Session) -> None:
    """Soft-delete the order, its items and jobs; job parts are removed."""

    service_order_id = require_positive_id(service_order_id, "service order")
    uow = UnitOfWork(session)
    with uow.transaction():
        order = uow.get_live(ServiceOrder, service_order_id)
        if order is None:
            raise NotFoundError("Service order", service_order_id)
        items = live_items(uow, order.id)
        for item in items:
            delete_item(uow, item)
        order.state = LifecycleState.deleted
        order.updated_at = utcnow()
        uow.update(order)
    logger.info("deleted service order %s with %d items", service_order_id, len(items))
