"""Reassemble persisted hierarchies into detail documents.

Read-only.  Soft-deleted rows are skipped at every level because every
lookup goes through the live helpers of :mod:`service_center.persistence`.
"""

from __future__ import annotations

from typing import List

from sqlmodel import Session

from ..models import Item, Job, JobPart, ServiceOrder
from ..persistence import PersistencePort, UnitOfWork, job_parts, live_items, live_jobs
from ..schemas import ItemDetail, JobDetail, JobPartDetail, ServiceOrderDetail
from .errors import NotFoundError


def job_part_detail(part: JobPart) -> JobPartDetail:
    return JobPartDetail(
        job_part_id=part.id,
        job_id=part.job_id,
        part_id=part.part_id,
        quantity=part.quantity,
        unit_cost=part.unit_cost,
        total_cost=part.total_cost,
        is_warranty_part=part.is_warranty_part,
        added_at=part.added_at,
    )


def job_detail(uow: PersistencePort, job: Job) -> JobDetail:
    return JobDetail(
        job_id=job.id,
        item_id=job.item_id,
        service_type_id=job.service_type_id,
        received_date=job.received_date,
        assigned_to=job.assigned_to,
        priority=job.priority,
        estimated_cost=job.estimated_cost,
        actual_cost=job.actual_cost,
        diagnosis=job.diagnosis,
        diagnosis_date=job.diagnosis_date,
        target_completion_date=job.target_completion_date,
        completion_date=job.completion_date,
        notes=job.notes,
        job_status_id=job.job_status_id,
        updated_at=job.updated_at,
        job_parts=[job_part_detail(p) for p in job_parts(uow, job.id)],
    )


def item_detail(uow: PersistencePort, item: Item) -> ItemDetail:
    return ItemDetail(
        item_id=item.id,
        service_order_id=item.service_order_id,
        device_type_id=item.device_type_id,
        brand=item.brand,
        model=item.model,
        serial_no=item.serial_no,
        imei=item.imei,
        accessories=item.accessories,
        condition_on_receipt=item.condition_on_receipt,
        inspection_status=item.inspection_status,
        created_at=item.created_at,
        updated_at=item.updated_at,
        jobs=[job_detail(uow, j) for j in live_jobs(uow, item.id)],
    )


def service_order_detail(
    uow: PersistencePort, order: ServiceOrder, *, with_items: bool = True
) -> ServiceOrderDetail:
    items: List[ItemDetail] = []
    if with_items:
        items = [item_detail(uow, i) for i in live_items(uow, order.id)]
    return ServiceOrderDetail(
        service_order_id=order.id,
        customer_id=order.customer_id,
        created_by_employee_id=order.created_by_employee_id,
        service_type_id=order.service_type_id,
        service_order_number=order.service_order_number,
        notes=order.notes,
        expected_pickup_date=order.expected_pickup_date,
        status_id=order.status_id,
        version=order.version,
        created_at=order.created_at,
        updated_at=order.updated_at,
        items=items,
    )


def load_service_order(uow: PersistencePort, service_order_id: int) -> ServiceOrderDetail:
    order = uow.get_live(ServiceOrder, service_order_id)
    if order is None:
        raise NotFoundError("Service order", service_order_id)
    return service_order_detail(uow, order)


def load_item(uow: PersistencePort, item_id: int) -> ItemDetail:
    item = uow.get_live(Item, item_id)
    if item is None:
        raise NotFoundError("Item", item_id)
    return item_detail(uow, item)


def load_job(uow: PersistencePort, job_id: int) -> JobDetail:
    job = uow.get_live(Job, job_id)
    if job is None:
        raise NotFoundError("Job", job_id)
    return job_detail(uow, job)


def read_service_order(service_order_id: int, session: Session) -> ServiceOrderDetail:
    """Return the service order with every live item, job and job part."""

    return load_service_order(UnitOfWork(session), service_order_id)


def read_item(item_id: int, session: Session) -> ItemDetail:
    """Return the item with its live jobs and their parts."""

    return load_item(UnitOfWork(session), item_id)


def read_job(job_id: int, session: Session) -> JobDetail:
    """Return the job with its parts."""

    return load_job(UnitOfWork(session), job_id)
