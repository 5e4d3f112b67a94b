from decimal import Decimal

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from service_center.models import Customer, Item, Job, JobPart, LifecycleState, Part, ServiceOrder
from service_center.services import NotFoundError, read_item, read_job, read_service_order


def setup_db():
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    return engine


def populate(session: Session):
    cust = Customer(name="Acme", contact_number="1", customer_type="Business")
    part = Part(name="Fan", unit_cost=Decimal("5"))
    session.add(cust); session.add(part); session.commit()
    order = ServiceOrder(customer_id=cust.id, notes="n")
    session.add(order); session.commit()
    live = Item(service_order_id=order.id, brand="live")
    dead = Item(service_order_id=order.id, brand="dead", state=LifecycleState.deleted)
    session.add(live); session.add(dead); session.commit()
    job = Job(item_id=live.id, actual_cost=Decimal("10"))
    dead_job = Job(item_id=live.id, state=LifecycleState.deleted)
    session.add(job); session.add(dead_job); session.commit()
    session.add(JobPart(job_id=job.id, part_id=part.id, quantity=2, unit_cost=Decimal("5"), total_cost=Decimal("10")))
    session.commit()
    return order.id, live.id, dead.id, job.id, dead_job.id


def test_read_service_order_skips_deleted_rows():
    engine = setup_db()
    with Session(engine) as session:
        order_id, live_id, dead_id, job_id, dead_job_id = populate(session)
        detail = read_service_order(order_id, session)
        assert detail.notes == "n"
        assert [i.item_id for i in detail.items] == [live_id]
        assert [j.job_id for j in detail.items[0].jobs] == [job_id]
        parts = detail.items[0].jobs[0].job_parts
        assert len(parts) == 1
        assert parts[0].total_cost == Decimal("10")


def test_read_item_and_job():
    engine = setup_db()
    with Session(engine) as session:
        order_id, live_id, dead_id, job_id, dead_job_id = populate(session)
        item = read_item(live_id, session)
        assert item.service_order_id == order_id
        assert len(item.jobs) == 1
        job = read_job(job_id, session)
        assert job.actual_cost == Decimal("10")
        assert job.job_parts[0].quantity == 2


def test_deleted_or_missing_roots_are_not_found():
    engine = setup_db()
    with Session(engine) as session:
        order_id, live_id, dead_id, job_id, dead_job_id = populate(session)
        with pytest.raises(NotFoundError):
            read_item(dead_id, session)
        with pytest.raises(NotFoundError):
            read_job(dead_job_id, session)
        with pytest.raises(NotFoundError) as exc:
            read_service_order(order_id + 100, session)
        assert str(exc.value) == f"Service order with ID {order_id + 100} not found"
