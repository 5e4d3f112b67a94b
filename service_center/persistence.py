"""Persistence port consumed by the hierarchy services.

The services never talk to a ``Session`` directly when walking a hierarchy;
they go through a :class:`PersistencePort`, which keeps reads, writes and
transaction control behind one small interface.  :class:`UnitOfWork` is the
SQLModel implementation: one instance is built per top-level operation and
passed down the call chain.

Lifecycle filtering lives here as well.  ``get_live`` and ``find_live`` are
the only places that know how a soft-deleted row looks, so callers never
repeat the ``state == active`` predicate.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, List, Optional, Protocol, Sequence, Type, TypeVar

from sqlalchemy import update as sa_update
from sqlmodel import Session, SQLModel, select

from .models import Item, Job, JobPart, LifecycleState

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=SQLModel)


class PersistencePort(Protocol):
    """Abstract CRUD + transaction interface."""

    def get(self, model: Type[T], ident: int) -> Optional[T]: ...

    def find(self, model: Type[T], *criteria: Any) -> List[T]: ...

    def get_live(self, model: Type[T], ident: int) -> Optional[T]: ...

    def find_live(self, model: Type[T], *criteria: Any) -> List[T]: ...

    def add(self, entity: T) -> T: ...

    def add_batch(self, entities: Sequence[T]) -> List[T]: ...

    def update(self, entity: T) -> T: ...

    def delete(self, entity: SQLModel) -> None: ...

    def bump_version(self, model: Type[SQLModel], ident: int, expected: int) -> bool: ...

    def begin_transaction(self) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


def is_live(entity: Optional[SQLModel]) -> bool:
    """Return ``True`` for existing rows that are not soft-deleted."""

    if entity is None:
        return False
    state = getattr(entity, "state", None)
    return state is None or LifecycleState(state) is LifecycleState.active


class UnitOfWork:
    """SQLModel-backed :class:`PersistencePort`.

    Writes are flushed immediately so new rows receive their primary key
    before children reference them; nothing becomes visible to other
    connections until :meth:`commit`.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    # ------------------------------------------------------------------ reads
    def get(self, model: Type[T], ident: int) -> Optional[T]:
        return self.session.get(model, ident)

    def find(self, model: Type[T], *criteria: Any) -> List[T]:
        stmt = select(model)
        if criteria:
            stmt = stmt.where(*criteria)
        stmt = stmt.order_by(model.id)  # type: ignore[attr-defined]
        return list(self.session.exec(stmt).all())

    def get_live(self, model: Type[T], ident: int) -> Optional[T]:
        entity = self.get(model, ident)
        return entity if is_live(entity) else None

    def find_live(self, model: Type[T], *criteria: Any) -> List[T]:
        if hasattr(model, "state"):
            criteria = criteria + (model.state == LifecycleState.active,)  # type: ignore[attr-defined]
        return self.find(model, *criteria)

    # ----------------------------------------------------------------- writes
    def add(self, entity: T) -> T:
        self.session.add(entity)
        self.session.flush()
        return entity

    def add_batch(self, entities: Sequence[T]) -> List[T]:
        batch = list(entities)
        if batch:
            self.session.add_all(batch)
            self.session.flush()
        return batch

    def update(self, entity: T) -> T:
        self.session.add(entity)
        self.session.flush()
        return entity

    def delete(self, entity: SQLModel) -> None:
        self.session.delete(entity)
        self.session.flush()

    def bump_version(self, model: Type[SQLModel], ident: int, expected: int) -> bool:
        """Advance ``model.version`` from ``expected`` in a single statement.

        Returns ``False`` when no row matched, i.e. another writer already
        moved the version on.  The comparison and the increment run as one
        UPDATE.
        """
        stmt = (
            sa_update(model)
            .where(model.id == ident, model.version == expected)  # type: ignore[attr-defined]
            .values(version=expected + 1)
        )
        result = self.session.connection().execute(stmt)
        return result.rowcount == 1

    # ----------------------------------------------------------- transactions
    def begin_transaction(self) -> None:
        # Sessions autobegin on first use; only start one explicitly when idle.
        if not self.session.in_transaction():
            self.session.begin()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @contextmanager
    def transaction(self) -> Iterator["UnitOfWork"]:
        """Commit on normal exit, roll back on any exception and re-raise."""

        self.begin_transaction()
        try:
            yield self
            self.commit()
        except BaseException as exc:
            logger.warning("Rolling back transaction after %s", type(exc).__name__)
            self.rollback()
            raise


# ---------------------------------------------------------------------------
# Live-children helpers.  Every hierarchy read goes through these.


def live_items(uow: PersistencePort, service_order_id: int) -> List[Item]:
    return uow.find_live(Item, Item.service_order_id == service_order_id)


def live_jobs(uow: PersistencePort, item_id: int) -> List[Job]:
    return uow.find_live(Job, Job.item_id == item_id)


def job_parts(uow: PersistencePort, job_id: int) -> List[JobPart]:
    return uow.find(JobPart, JobPart.job_id == job_id)


def ids_of(entities: Iterable[SQLModel]) -> List[int]:
    return [entity.id for entity in entities]  # type: ignore[attr-defined]
