"""Job and job-part helpers.

Every mutation of a job's parts ends with :func:`recalculate_job_cost`, so
``Job.actual_cost`` always matches the parts that are stored.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from sqlmodel import Session

from ..models import Job, JobPart, utcnow
from ..persistence import UnitOfWork, job_parts
from ..schemas import (
    JobDetail,
    JobDocument,
    JobPartDetail,
    JobPartDocument,
    JobPartUpdate,
    JobUpdate,
)
from .costing import recalculate_job_cost
from .errors import NotFoundError, require_positive_id
from .hierarchy_builder import add_job_parts, create_job_complete
from .hierarchy_reader import job_part_detail, read_job
from .hierarchy_reconciler import delete_job as cascade_delete_job
from .hierarchy_reconciler import merge_job_fields, merge_job_part_fields, merge_value

logger = logging.getLogger(__name__)


def add_job(item_id: int, document: JobDocument, session: Session) -> JobDetail:
    return create_job_complete(item_id, document, session)


def update_job(job_id: int, data: JobUpdate, session: Session) -> JobDetail:
    """Merge the non-blank fields of ``data`` into the job."""

    job_id = require_positive_id(job_id, "job")
    uow = UnitOfWork(session)
    with uow.transaction():
        job = uow.get_live(Job, job_id)
        if job is None:
            raise NotFoundError("Job", job_id)
        fields = data.model_dump(exclude={"diagnosis_date", "completion_date"})
        merge_job_fields(job, JobDocument(**fields))
        merge_value(job, "diagnosis_date", data.diagnosis_date)
        merge_value(job, "completion_date", data.completion_date)
        job.updated_at = utcnow()
        uow.update(job)
    return read_job(job_id, session)


def delete_job(job_id: int, session: Session) -> None:
    """Soft-delete a job; its parts are removed."""

    job_id = require_positive_id(job_id, "job")
    uow = UnitOfWork(session)
    with uow.transaction():
        job = uow.get_live(Job, job_id)
        if job is None:
            raise NotFoundError("Job", job_id)
        parts = cascade_delete_job(uow, job)
    logger.info("deleted job %s (%d parts)", job_id, parts)


# ---------------------------------------------------------------------------
# Job parts


def list_job_parts(job_id: int, session: Session) -> List[JobPartDetail]:
    job_id = require_positive_id(job_id, "job")
    uow = UnitOfWork(session)
    if uow.get_live(Job, job_id) is None:
        raise NotFoundError("Job", job_id)
    return [job_part_detail(p) for p in job_parts(uow, job_id)]


def add_job_part(job_id: int, document: JobPartDocument, session: Session) -> JobDetail:
    return add_job_parts(job_id, [document], session)


def bulk_add_job_parts(
    job_id: int, documents: Sequence[JobPartDocument], session: Session
) -> JobDetail:
    return add_job_parts(job_id, documents, session)


def _live_job_part(uow: UnitOfWork, job_part_id: int) -> JobPart:
    part = uow.get(JobPart, job_part_id)
    if part is None or uow.get_live(Job, part.job_id) is None:
        raise NotFoundError("Job part", job_part_id)
    return part


def update_job_part(job_part_id: int, data: JobPartUpdate, session: Session) -> JobDetail:
    """Update quantity/unit cost/warranty flag and refresh the totals."""

    job_part_id = require_positive_id(job_part_id, "job part")
    uow = UnitOfWork(session)
    with uow.transaction():
        part = _live_job_part(uow, job_part_id)
        merge_job_part_fields(part, JobPartDocument(**data.model_dump()))
        uow.update(part)
        job_id = part.job_id
        recalculate_job_cost(uow, job_id)
    return read_job(job_id, session)


def delete_job_part(job_part_id: int, session: Session) -> JobDetail:
    job_part_id = require_positive_id(job_part_id, "job part")
    uow = UnitOfWork(session)
    with uow.transaction():
        part = _live_job_part(uow, job_part_id)
        job_id = part.job_id
        uow.delete(part)
        recalculate_job_cost(uow, job_id)
    logger.info("removed job part %s from job %s", job_part_id, job_id)
    return read_job(job_id, session)
