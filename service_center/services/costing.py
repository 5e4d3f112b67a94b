"""Derived cost bookkeeping for jobs and job parts."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal

from ..models import Job, utcnow
from ..persistence import PersistencePort, job_parts

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_money(value: Decimal | None) -> Decimal:
    """Round to whole cents, the precision of every money column."""

    return Decimal(value or ZERO).quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(quantity: int | None, unit_cost: Decimal | None) -> Decimal:
    """Return ``quantity × unit_cost`` in cents, treating missing values as zero."""

    return to_money(Decimal(quantity or 0) * to_money(unit_cost))


def recalculate_job_cost(uow: PersistencePort, job_id: int) -> Decimal:
    """Re-derive ``Job.actual_cost`` from the job's current parts.

    The stored value on the job is never trusted; the sum is taken fresh
    from the part rows every time, so calling this repeatedly is harmless.
    Returns the new cost, or zero when the job does not exist.
    """

    job = uow.get(Job, job_id)
    if job is None:
        return ZERO
    total = to_money(sum((to_money(part.total_cost) for part in job_parts(uow, job_id)), ZERO))
    job.actual_cost = total
    job.updated_at = utcnow()
    uow.update(job)
    logger.debug("job %s actual_cost recalculated to %s", job_id, total)
    return total
