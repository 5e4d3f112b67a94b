"""Item helpers."""

from __future__ import annotations

import logging

from sqlmodel import Session

from ..models import Item, utcnow
from ..persistence import UnitOfWork
from ..schemas import ItemDetail, ItemDocument, ItemUpdate
from .errors import NotFoundError, require_positive_id
from .hierarchy_builder import create_item_complete
from .hierarchy_reader import read_item
from .hierarchy_reconciler import delete_item as cascade_delete_item
from .hierarchy_reconciler import merge_item_fields

logger = logging.getLogger(__name__)


def add_item(service_order_id: int, document: ItemDocument, session: Session) -> ItemDetail:
    return create_item_complete(service_order_id, document, session)


def update_item(item_id: int, data: ItemUpdate, session: Session) -> ItemDetail:
    """Merge the non-blank fields of ``data`` into the item."""

    item_id = require_positive_id(item_id, "item")
    uow = UnitOfWork(session)
    with uow.transaction():
        item = uow.get_live(Item, item_id)
        if item is None:
            raise NotFoundError("Item", item_id)
        merge_item_fields(item, ItemDocument(**data.model_dump()))
        item.updated_at = utcnow()
        uow.update(item)
    return read_item(item_id, session)


def delete_item(item_id: int, session: Session) -> None:
    """Soft-delete an item together with its jobs and their parts."""

    item_id = require_positive_id(item_id, "item")
    uow = UnitOfWork(session)
    with uow.transaction():
        item = uow.get_live(Item, item_id)
        if item is None:
            raise NotFoundError("Item", item_id)
        jobs, parts = cascade_delete_item(uow, item)
    logger.info("deleted item %s (%d jobs, %d parts)", item_id, jobs, parts)
