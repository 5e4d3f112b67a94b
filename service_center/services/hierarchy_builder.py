"""Create whole service-order hierarchies in one transaction.

The three public entry points differ only in where the new sub-tree is
rooted: under a customer (a new service order), under an existing service
order (a new item) or under an existing item (a new job).  Each level is
persisted before its children so the children can reference the freshly
assigned id, and every job's cost is derived from its parts once they are
written.  Any failure rolls the whole tree back.

The ``build_*`` helpers are shared with the reconciler, which uses them for
the "add" branch of a smart update.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Sequence

from sqlmodel import Session

from ..models import (
    DEFAULT_INSPECTION_STATUS,
    DEFAULT_JOB_PRIORITY,
    Customer,
    Item,
    Job,
    JobPart,
    Part,
    ServiceOrder,
    utcnow,
)
from ..persistence import PersistencePort, UnitOfWork
from ..schemas import (
    ItemDetail,
    ItemDocument,
    JobDetail,
    JobDocument,
    JobPartDocument,
    ServiceOrderDetail,
    ServiceOrderDocument,
)
from .costing import line_total, recalculate_job_cost, to_money
from .errors import HierarchyValidationError, NotFoundError, require_positive_id
from .hierarchy_reader import load_item, load_job, load_service_order

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Up-front validation of documents that describe brand-new rows


def validate_new_job_part(document: JobPartDocument) -> None:
    if document.identity:
        raise HierarchyValidationError(
            f"job_part_id {document.identity} cannot be used for a new job part"
        )
    if not document.part_id:
        raise HierarchyValidationError("part_id is required for a new job part")
    if document.quantity == 0:
        raise HierarchyValidationError("quantity must be at least 1 for a new job part")


def validate_new_job(document: JobDocument) -> None:
    if document.identity:
        raise HierarchyValidationError(f"job_id {document.identity} cannot be used for a new job")
    for part_doc in document.job_parts or []:
        validate_new_job_part(part_doc)


def validate_new_item(document: ItemDocument) -> None:
    if document.identity:
        raise HierarchyValidationError(f"item_id {document.identity} cannot be used for a new item")
    for job_doc in document.jobs or []:
        validate_new_job(job_doc)


# ---------------------------------------------------------------------------
# Builders


def require_part(uow: PersistencePort, part_id: int) -> Part:
    part = uow.get(Part, part_id)
    if part is None:
        raise NotFoundError("Part", part_id)
    return part


def new_job_part(uow: PersistencePort, job_id: int, document: JobPartDocument) -> JobPart:
    """Return an unsaved :class:`JobPart` after checking the catalogue."""

    part = require_part(uow, document.part_id)
    quantity = document.quantity if document.quantity is not None else 1
    unit_cost = to_money(document.unit_cost if document.unit_cost is not None else part.unit_cost)
    return JobPart(
        job_id=job_id,
        part_id=part.id,
        quantity=quantity,
        unit_cost=unit_cost,
        total_cost=line_total(quantity, unit_cost),
        is_warranty_part=bool(document.is_warranty_part),
        added_at=utcnow(),
    )


def build_job_parts(
    uow: PersistencePort, job_id: int, documents: Iterable[JobPartDocument]
) -> List[JobPart]:
    rows = [new_job_part(uow, job_id, doc) for doc in documents]
    return uow.add_batch(rows)


def build_job(uow: PersistencePort, item_id: int, document: JobDocument) -> Job:
    job = Job(
        item_id=item_id,
        service_type_id=document.service_type_id,
        received_date=document.received_date or utcnow(),
        assigned_to=document.assigned_to,
        priority=document.priority or DEFAULT_JOB_PRIORITY,
        estimated_cost=document.estimated_cost,
        diagnosis=document.diagnosis,
        target_completion_date=document.target_completion_date,
        notes=document.notes,
        job_status_id=document.job_status_id,
        updated_at=utcnow(),
    )
    uow.add(job)
    parts = build_job_parts(uow, job.id, document.job_parts or [])
    recalculate_job_cost(uow, job.id)
    logger.debug("created job %s under item %s with %d parts", job.id, item_id, len(parts))
    return job


def build_item(uow: PersistencePort, service_order_id: int, document: ItemDocument) -> Item:
    item = Item(
        service_order_id=service_order_id,
        device_type_id=document.device_type_id,
        brand=document.brand,
        model=document.model,
        serial_no=document.serial_no,
        imei=document.imei,
        accessories=document.accessories,
        condition_on_receipt=document.condition_on_receipt,
        inspection_status=document.inspection_status or DEFAULT_INSPECTION_STATUS,
        created_at=utcnow(),
    )
    uow.add(item)
    for job_doc in document.jobs or []:
        build_job(uow, item.id, job_doc)
    logger.debug("created item %s under service order %s", item.id, service_order_id)
    return item


def build_service_order(
    uow: PersistencePort, customer_id: int, document: ServiceOrderDocument
) -> ServiceOrder:
    order = ServiceOrder(
        customer_id=customer_id,
        created_by_employee_id=document.created_by_employee_id,
        service_type_id=document.service_type_id,
        service_order_number=document.service_order_number,
        notes=document.notes,
        expected_pickup_date=document.expected_pickup_date,
        status_id=document.status_id,
        created_at=utcnow(),
    )
    uow.add(order)
    for item_doc in document.items or []:
        build_item(uow, order.id, item_doc)
    return order


# ---------------------------------------------------------------------------
# Public operations


def create_service_order_complete(
    customer_id: int, document: ServiceOrderDocument, session: Session
) -> ServiceOrderDetail:
    """Create a service order with all of its items, jobs and job parts.

    Raises
    ------
    HierarchyValidationError
        ``customer_id`` is not positive or the document carries identities
        or lacks a part reference.  Nothing is opened or written.
    NotFoundError
        The customer or a referenced catalogue part does not exist.
    """

    customer_id = require_positive_id(customer_id, "customer")
    for item_doc in document.items or []:
        validate_new_item(item_doc)

    uow = UnitOfWork(session)
    with uow.transaction():
        if uow.get_live(Customer, customer_id) is None:
            raise NotFoundError("Customer", customer_id)
        order = build_service_order(uow, customer_id, document)
        order_id = order.id
    logger.info(
        "created service order %s for customer %s with %d items",
        order_id,
        customer_id,
        len(document.items or []),
    )
    return load_service_order(uow, order_id)


def create_item_complete(
    service_order_id: int, document: ItemDocument, session: Session
) -> ItemDetail:
    """Create an item with its jobs and job parts under an existing order."""

    service_order_id = require_positive_id(service_order_id, "service order")
    validate_new_item(document)

    uow = UnitOfWork(session)
    with uow.transaction():
        if uow.get_live(ServiceOrder, service_order_id) is None:
            raise NotFoundError("Service order", service_order_id)
        item_id = build_item(uow, service_order_id, document).id
    logger.info("created item %s under service order %s", item_id, service_order_id)
    return load_item(uow, item_id)


def create_job_complete(item_id: int, document: JobDocument, session: Session) -> JobDetail:
    """Create a job with its job parts under an existing item."""

    item_id = require_positive_id(item_id, "item")
    validate_new_job(document)

    uow = UnitOfWork(session)
    with uow.transaction():
        if uow.get_live(Item, item_id) is None:
            raise NotFoundError("Item", item_id)
        job_id = build_job(uow, item_id, document).id
    logger.info("created job %s under item %s", job_id, item_id)
    return load_job(uow, job_id)


def add_job_parts(
    job_id: int, documents: Sequence[JobPartDocument], session: Session
) -> JobDetail:
    """Attach one or more new parts to an existing job and refresh its cost."""

    job_id = require_positive_id(job_id, "job")
    for doc in documents:
        validate_new_job_part(doc)

    uow = UnitOfWork(session)
    with uow.transaction():
        if uow.get_live(Job, job_id) is None:
            raise NotFoundError("Job", job_id)
        build_job_parts(uow, job_id, documents)
        recalculate_job_cost(uow, job_id)
    logger.info("added %d parts to job %s", len(documents), job_id)
    return load_job(uow, job_id)
