from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine, select

from service_center.models import Item, Job, JobPart, LifecycleState, ServiceOrder
from service_center.schemas import (
    CustomerCreate,
    ItemDocument,
    ItemUpdate,
    JobDocument,
    JobPartDocument,
    JobPartUpdate,
    JobUpdate,
    PartCreate,
    ServiceOrderDocument,
    ServiceOrderUpdate,
)
from service_center import services


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
    cust = services.create_customer(
        CustomerCreate(name="Acme", contact_number="555-0100", customer_type="Business"), session
    )
    part = services.create_part(PartCreate(name="Screen", sku="SCR-1", unit_cost=Decimal("50")), session)
    order = services.create_service_order(
        cust.id,
        ServiceOrderDocument(
            service_order_number="SO-2024-001",
            items=[
                ItemDocument(
                    brand="Acme",
                    jobs=[JobDocument(job_parts=[JobPartDocument(part_id=part.id, quantity=2)])],
                )
            ],
        ),
        session,
    )
    return cust, part, order


def test_part_sku_must_be_unique():
    engine = setup_db()
    with Session(engine) as session:
        services.create_part(PartCreate(name="A", sku="X"), session)
        with pytest.raises(services.ConflictError):
            services.create_part(PartCreate(name="B", sku="X"), session)
        with pytest.raises(services.ValidationError):
            services.create_part(PartCreate(name="  ", sku="Y"), session)
        assert [p.name for p in services.search_parts("a", session)] == ["A"]
        with pytest.raises(services.NotFoundError):
            services.get_part(99, session)


def test_service_order_search_and_update():
    engine = setup_db()
    with Session(engine) as session:
        cust, part, order = populate(session)
        assert [o.service_order_id for o in services.search_by_number("so-2024", session)] == [
            order.service_order_id
        ]
        assert services.search_by_number("nope", session) == []
        assert len(services.search_by_customer(cust.id, session)) == 1
        assert services.list_service_orders(session)[0].items == []

        updated = services.update_service_order(
            order.service_order_id,
            ServiceOrderUpdate(notes="ready", expected_pickup_date=date(2030, 1, 2)),
            session,
        )
        assert updated.notes == "ready"
        assert updated.expected_pickup_date == date(2030, 1, 2)
        assert updated.service_order_number == "SO-2024-001"
        assert updated.version == 2


def test_delete_service_order_cascades():
    engine = setup_db()
    with Session(engine) as session:
        cust, part, order = populate(session)
        services.delete_service_order(order.service_order_id, session)

        assert session.get(ServiceOrder, order.service_order_id).state == LifecycleState.deleted
        assert all(i.state == LifecycleState.deleted for i in session.exec(select(Item)).all())
        assert all(j.state == LifecycleState.deleted for j in session.exec(select(Job)).all())
        assert session.exec(select(JobPart)).all() == []
        assert services.list_service_orders(session) == []
        with pytest.raises(services.NotFoundError):
            services.get_service_order(order.service_order_id, session)


def test_item_update_and_delete():
    engine = setup_db()
    with Session(engine) as session:
        cust, part, order = populate(session)
        item_id = order.items[0].item_id
        updated = services.update_item(item_id, ItemUpdate(serial_no="SN1", brand=""), session)
        assert updated.serial_no == "SN1"
        assert updated.brand == "Acme"

        added = services.add_item(order.service_order_id, ItemDocument(brand="Second"), session)
        services.delete_item(item_id, session)
        remaining = services.get_service_order(order.service_order_id, session)
        assert [i.item_id for i in remaining.items] == [added.item_id]
        with pytest.raises(services.NotFoundError):
            services.update_item(item_id, ItemUpdate(brand="x"), session)


def test_job_part_operations_keep_cost_in_sync():
    engine = setup_db()
    with Session(engine) as session:
        cust, part, order = populate(session)
        job_id = order.items[0].jobs[0].job_id
        assert order.items[0].jobs[0].actual_cost == Decimal("100")

        job = services.add_job_part(job_id, JobPartDocument(part_id=part.id, unit_cost=Decimal("10")), session)
        assert job.actual_cost == Decimal("110")

        job = services.bulk_add_job_parts(
            job_id,
            [JobPartDocument(part_id=part.id, quantity=1), JobPartDocument(part_id=part.id, quantity=2, unit_cost=Decimal("1"))],
            session,
        )
        assert job.actual_cost == Decimal("162")
        assert len(services.list_job_parts(job_id, session)) == 4

        first = job.job_parts[0].job_part_id
        job = services.update_job_part(first, JobPartUpdate(quantity=1), session)
        assert job.job_parts[0].total_cost == Decimal("50")
        assert job.actual_cost == Decimal("112")

        job = services.delete_job_part(first, session)
        assert job.actual_cost == Decimal("62")

        with pytest.raises(services.NotFoundError):
            services.add_job_part(job_id, JobPartDocument(part_id=999), session)
        assert services.read_job(job_id, session).actual_cost == Decimal("62")


def test_job_update_add_and_delete():
    engine = setup_db()
    with Session(engine) as session:
        cust, part, order = populate(session)
        item_id = order.items[0].item_id
        job_id = order.items[0].jobs[0].job_id

        job = services.update_job(job_id, JobUpdate(diagnosis="water damage", priority=""), session)
        assert job.diagnosis == "water damage"
        assert job.priority == "Normal"

        new_job = services.add_job(item_id, JobDocument(priority="Low"), session)
        services.delete_job(job_id, session)
        assert session.exec(select(JobPart).where(JobPart.job_id == job_id)).all() == []
        assert [j.job_id for j in services.read_item(item_id, session).jobs] == [new_job.job_id]
        with pytest.raises(services.NotFoundError):
            services.list_job_parts(job_id, session)
