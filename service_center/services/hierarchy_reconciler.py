"""Smart update of a service-order hierarchy.

A submitted :class:`~service_center.schemas.ServiceOrderUpdateDocument` is
diffed against what is stored, one level at a time (items under the order,
jobs under each item, parts under each job).  At every level:

1. the live children of the parent are loaded;
2. submitted children are split into new ones (identity ``0``/``None``)
   and existing ones (positive identity);
3. persisted children that were not resubmitted are deleted; items and
   jobs are soft-deleted with their descendants, job parts are removed;
4. new children are created and their own children built below them;
5. existing children are merged field by field and recursed into.

A job's ``actual_cost`` is recomputed once every part-level change under it
is done.  A child collection that is ``None`` leaves that level untouched;
an explicit ``[]`` removes everything at that level.

Everything happens inside one :meth:`UnitOfWork.transaction`, so any error
leaves the stored hierarchy exactly as it was.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlmodel import Session, SQLModel

from ..models import Item, Job, JobPart, LifecycleState, ServiceOrder, utcnow
from ..persistence import PersistencePort, UnitOfWork, job_parts, live_items, live_jobs
from ..schemas import (
    ItemDocument,
    JobDocument,
    JobPartDocument,
    ServiceOrderDetail,
    ServiceOrderUpdateDocument,
)
from .costing import line_total, recalculate_job_cost, to_money
from .errors import ConflictError, NotFoundError, require_positive_id
from .hierarchy_builder import (
    build_item,
    build_job,
    new_job_part,
    validate_new_item,
    validate_new_job,
    validate_new_job_part,
)
from .hierarchy_reader import load_service_order

logger = logging.getLogger(__name__)


@dataclass
class ReconcileStats:
    """Tally of what one smart update did, per level."""

    items_added: int = 0
    items_updated: int = 0
    items_deleted: int = 0
    jobs_added: int = 0
    jobs_updated: int = 0
    jobs_deleted: int = 0
    job_parts_added: int = 0
    job_parts_updated: int = 0
    job_parts_deleted: int = 0

    @property
    def structural_changes(self) -> int:
        """Number of rows added or deleted at any level."""
        return (
            self.items_added
            + self.items_deleted
            + self.jobs_added
            + self.jobs_deleted
            + self.job_parts_added
            + self.job_parts_deleted
        )

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Non-empty-wins merge


def merge_text(entity: SQLModel, attr: str, value: Optional[str]) -> None:
    if value is not None and value.strip():
        setattr(entity, attr, value)


def merge_value(entity: SQLModel, attr: str, value: Any) -> None:
    if value is not None:
        setattr(entity, attr, value)


def merge_positive(entity: SQLModel, attr: str, value: Any) -> None:
    if value is not None and value > 0:
        setattr(entity, attr, value)


def merge_service_order_fields(order: ServiceOrder, document: ServiceOrderUpdateDocument) -> None:
    merge_text(order, "service_order_number", document.service_order_number)
    merge_text(order, "notes", document.notes)
    merge_value(order, "service_type_id", document.service_type_id)
    merge_value(order, "expected_pickup_date", document.expected_pickup_date)
    merge_value(order, "status_id", document.status_id)


def merge_item_fields(item: Item, document: ItemDocument) -> None:
    merge_value(item, "device_type_id", document.device_type_id)
    for attr in (
        "brand",
        "model",
        "serial_no",
        "imei",
        "accessories",
        "condition_on_receipt",
        "inspection_status",
    ):
        merge_text(item, attr, getattr(document, attr))


def merge_job_fields(job: Job, document: JobDocument) -> None:
    merge_value(job, "service_type_id", document.service_type_id)
    merge_value(job, "received_date", document.received_date)
    merge_value(job, "assigned_to", document.assigned_to)
    merge_text(job, "priority", document.priority)
    merge_value(job, "estimated_cost", document.estimated_cost)
    merge_text(job, "diagnosis", document.diagnosis)
    merge_value(job, "target_completion_date", document.target_completion_date)
    merge_text(job, "notes", document.notes)
    merge_value(job, "job_status_id", document.job_status_id)


def merge_job_part_fields(part: JobPart, document: JobPartDocument) -> None:
    merge_positive(part, "quantity", document.quantity)
    merge_positive(part, "unit_cost", document.unit_cost)
    merge_value(part, "is_warranty_part", document.is_warranty_part)
    part.unit_cost = to_money(part.unit_cost)
    part.total_cost = line_total(part.quantity, part.unit_cost)


# ---------------------------------------------------------------------------
# Row version


def claim_version(uow: PersistencePort, order: ServiceOrder, expected: Optional[int]) -> None:
    """Move ``order`` to the next version or raise :class:`ConflictError`.

    ``expected`` is the version the caller based its change on; ``None``
    means the version just loaded.  The store only advances when it still
    holds that version.
    """

    base = order.version if expected is None else expected
    if expected is not None and expected != order.version:
        raise ConflictError(
            f"Service order {order.id} is at version {order.version}, "
            f"update was based on version {expected}"
        )
    if not uow.bump_version(ServiceOrder, order.id, base):
        raise ConflictError(
            f"Service order {order.id} was changed by another update since version {base}"
        )
    order.version = base + 1


# ---------------------------------------------------------------------------
# Cascading deletes


def delete_job(uow: PersistencePort, job: Job) -> int:
    """Soft-delete ``job`` after removing its parts; returns parts removed."""

    parts = job_parts(uow, job.id)
    for part in parts:
        uow.delete(part)
    recalculate_job_cost(uow, job.id)
    job.state = LifecycleState.deleted
    job.updated_at = utcnow()
    uow.update(job)
    logger.debug("soft-deleted job %s (%d parts removed)", job.id, len(parts))
    return len(parts)


def delete_item(uow: PersistencePort, item: Item) -> tuple[int, int]:
    """Soft-delete ``item`` and its live jobs; returns ``(jobs, parts)`` removed."""

    jobs = live_jobs(uow, item.id)
    parts_removed = sum(delete_job(uow, job) for job in jobs)
    item.state = LifecycleState.deleted
    item.updated_at = utcnow()
    uow.update(item)
    logger.debug("soft-deleted item %s (%d jobs)", item.id, len(jobs))
    return len(jobs), parts_removed


# ---------------------------------------------------------------------------
# Reconciler


def _partition(children: Sequence[Any]) -> tuple[list, list]:
    new = [child for child in children if not child.identity]
    existing = [child for child in children if child.identity]
    return new, existing


class HierarchyReconciler:
    """Walks one update document against the stored hierarchy.

    The reconciler does not manage the transaction itself; callers wrap
    :meth:`reconcile` in ``uow.transaction()``.
    """

    def __init__(self, uow: PersistencePort) -> None:
        self.uow = uow
        self.stats = ReconcileStats()

    def validate(self, document: ServiceOrderUpdateDocument) -> None:
        """Reject new children that carry identities or lack a part reference."""

        require_positive_id(document.service_order_id, "service order")
        for item_doc in document.items or []:
            if not item_doc.identity:
                validate_new_item(item_doc)
                continue
            for job_doc in item_doc.jobs or []:
                if not job_doc.identity:
                    validate_new_job(job_doc)
                    continue
                for part_doc in job_doc.job_parts or []:
                    if not part_doc.identity:
                        validate_new_job_part(part_doc)

    def reconcile(self, document: ServiceOrderUpdateDocument) -> ReconcileStats:
        order = self.uow.get_live(ServiceOrder, document.service_order_id)
        if order is None:
            raise NotFoundError("Service order", document.service_order_id)
        claim_version(self.uow, order, document.version)

        merge_service_order_fields(order, document)
        order.updated_at = utcnow()
        self.uow.update(order)

        if document.items is not None:
            self.reconcile_items(order, document.items)
        return self.stats

    # -- items ------------------------------------------------------------
    def reconcile_items(self, order: ServiceOrder, documents: List[ItemDocument]) -> None:
        persisted = {item.id: item for item in live_items(self.uow, order.id)}
        new_docs, existing_docs = _partition(documents)
        for doc in existing_docs:
            if doc.identity not in persisted:
                raise NotFoundError("Item", doc.identity, f"under service order {order.id}")

        submitted = {doc.identity for doc in existing_docs}
        for item_id in sorted(set(persisted) - submitted):
            jobs, parts = delete_item(self.uow, persisted[item_id])
            self.stats.items_deleted += 1
            self.stats.jobs_deleted += jobs
            self.stats.job_parts_deleted += parts

        for doc in new_docs:
            build_item(self.uow, order.id, doc)
            self.stats.items_added += 1
            for job_doc in doc.jobs or []:
                self.stats.jobs_added += 1
                self.stats.job_parts_added += len(job_doc.job_parts or [])

        for doc in existing_docs:
            item = persisted[doc.identity]
            merge_item_fields(item, doc)
            item.updated_at = utcnow()
            self.uow.update(item)
            self.stats.items_updated += 1
            if doc.jobs is not None:
                self.reconcile_jobs(item, doc.jobs)

    # -- jobs -------------------------------------------------------------
    def reconcile_jobs(self, item: Item, documents: List[JobDocument]) -> None:
        persisted = {job.id: job for job in live_jobs(self.uow, item.id)}
        new_docs, existing_docs = _partition(documents)
        for doc in existing_docs:
            if doc.identity not in persisted:
                raise NotFoundError("Job", doc.identity, f"under item {item.id}")

        submitted = {doc.identity for doc in existing_docs}
        for job_id in sorted(set(persisted) - submitted):
            self.stats.job_parts_deleted += delete_job(self.uow, persisted[job_id])
            self.stats.jobs_deleted += 1

        for doc in new_docs:
            build_job(self.uow, item.id, doc)
            self.stats.jobs_added += 1
            self.stats.job_parts_added += len(doc.job_parts or [])

        for doc in existing_docs:
            job = persisted[doc.identity]
            merge_job_fields(job, doc)
            job.updated_at = utcnow()
            self.uow.update(job)
            self.stats.jobs_updated += 1
            if doc.job_parts is not None:
                self.reconcile_job_parts(job, doc.job_parts)

    # -- job parts --------------------------------------------------------
    def reconcile_job_parts(self, job: Job, documents: List[JobPartDocument]) -> Decimal:
        persisted = {part.id: part for part in job_parts(self.uow, job.id)}
        new_docs, existing_docs = _partition(documents)
        for doc in existing_docs:
            if doc.identity not in persisted:
                raise NotFoundError("Job part", doc.identity, f"under job {job.id}")

        submitted = {doc.identity for doc in existing_docs}
        for part_id in sorted(set(persisted) - submitted):
            self.uow.delete(persisted[part_id])
            self.stats.job_parts_deleted += 1

        if new_docs:
            self.uow.add_batch([new_job_part(self.uow, job.id, doc) for doc in new_docs])
            self.stats.job_parts_added += len(new_docs)

        for doc in existing_docs:
            part = persisted[doc.identity]
            merge_job_part_fields(part, doc)
            self.uow.update(part)
            self.stats.job_parts_updated += 1

        return recalculate_job_cost(self.uow, job.id)


def smart_update_service_order(
    document: ServiceOrderUpdateDocument, session: Session
) -> ServiceOrderDetail:
    """Make the stored hierarchy of ``document.service_order_id`` match ``document``.

    Returns the reassembled hierarchy as stored after the commit.  Raises
    :class:`HierarchyValidationError` before touching storage when the
    document is malformed, :class:`NotFoundError` for unknown or foreign
    identities and missing catalogue parts, and :class:`ConflictError` when
    ``document.version`` is stale.  Nothing is persisted on failure.
    """

    uow = UnitOfWork(session)
    reconciler = HierarchyReconciler(uow)
    reconciler.validate(document)
    with uow.transaction():
        stats = reconciler.reconcile(document)
    logger.info(
        "smart update of service order %s: %s",
        document.service_order_id,
        ", ".join(f"{k}={v}" for k, v in stats.as_dict().items() if v),
    )
    return load_service_order(uow, document.service_order_id)
