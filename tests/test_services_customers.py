import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from service_center.models import Customer, LifecycleState
from service_center.schemas import CustomerCreate, CustomerUpdate, EmployeeCreate, EmployeeUpdate
from service_center.services import (
    ConflictError,
    HierarchyValidationError,
    NotFoundError,
    ValidationError,
    create_customer,
    create_employee,
    customer_stats,
    delete_customer,
    delete_employee,
    get_customer,
    list_customers,
    list_employees,
    update_customer,
    update_employee,
)


def setup_db():
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    return engine


def new_customer(name="Acme", contact="555-0100", customer_type="Business", email=None):
    return CustomerCreate(name=name, contact_number=contact, customer_type=customer_type, email=email)


def test_create_customer_requires_fields():
    engine = setup_db()
    with Session(engine) as session:
        with pytest.raises(ValidationError):
            create_customer(new_customer(name="  "), session)
        with pytest.raises(ValidationError):
            create_customer(new_customer(contact=""), session)
        with pytest.raises(ValidationError):
            create_customer(new_customer(customer_type=""), session)


def test_email_and_contact_are_unique_among_live_customers():
    engine = setup_db()
    with Session(engine) as session:
        c1 = create_customer(new_customer(email="a@example.com"), session)
        assert c1.id is not None
        with pytest.raises(ConflictError):
            create_customer(new_customer(name="B", contact="2", email="A@example.com"), session)
        with pytest.raises(ConflictError):
            create_customer(new_customer(name="C"), session)

        delete_customer(c1.id, session)
        assert session.get(Customer, c1.id).state == LifecycleState.deleted
        c2 = create_customer(new_customer(email="a@example.com"), session)
        assert c2.id != c1.id


def test_list_update_and_stats():
    engine = setup_db()
    with Session(engine) as session:
        a = create_customer(new_customer(name="Alice", contact="1", customer_type="Individual"), session)
        create_customer(new_customer(name="Bob", contact="2", customer_type="Business"), session)
        create_customer(new_customer(name="Carol", contact="3", customer_type="Business"), session)

        assert [c.name for c in list_customers("al", session)] == ["Alice"]

        updated = update_customer(a.id, CustomerUpdate(name=" ", address="Main St", is_active=False), session)
        assert updated.name == "Alice"
        assert updated.address == "Main St"
        assert [c.name for c in list_customers(None, session, active_only=True)] == ["Bob", "Carol"]

        with pytest.raises(ConflictError):
            update_customer(a.id, CustomerUpdate(contact_number="2"), session)

        stats = customer_stats(session)
        assert stats.total == 3
        assert stats.active == 2
        assert stats.inactive == 1
        assert stats.by_type == {"Individual": 1, "Business": 2}


def test_field_errors_share_one_base():
    assert issubclass(HierarchyValidationError, ValidationError)
    assert issubclass(ValidationError, ValueError)
    assert not issubclass(ConflictError, ValidationError)


def test_get_missing_customer():
    engine = setup_db()
    with Session(engine) as session:
        with pytest.raises(NotFoundError):
            get_customer(5, session)
        with pytest.raises(HierarchyValidationError):
            get_customer(0, session)


def test_employee_lifecycle():
    engine = setup_db()
    with Session(engine) as session:
        tech = create_employee(EmployeeCreate(name="Tess", role="Technician", email="t@example.com"), session)
        create_employee(EmployeeCreate(name="Max", role="Manager"), session)
        with pytest.raises(ConflictError):
            create_employee(EmployeeCreate(name="Tom", role="Technician", email="T@example.com"), session)
        with pytest.raises(ValidationError):
            create_employee(EmployeeCreate(name="Nobody", role=" "), session)

        assert [e.name for e in list_employees(session, role="technician")] == ["Tess"]
        updated = update_employee(tech.id, EmployeeUpdate(phone="555"), session)
        assert updated.phone == "555"
        assert updated.role == "Technician"

        delete_employee(tech.id, session)
        assert [e.name for e in list_employees(session)] == ["Max"]
