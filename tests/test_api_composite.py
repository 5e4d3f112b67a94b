from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from service_center.api import app, get_session


def setup_test_db():
    engine = create_engine("sqlite://", echo=False, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    return engine


def make_client():
    engine = setup_test_db()

    def session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = session_override
    return TestClient(app)


def seed(client: TestClient):
    resp = client.post(
        "/api/customers",
        json={"name": "Acme", "contact_number": "555-0100", "customer_type": "Business"},
    )
    assert resp.status_code == 201
    cust_id = resp.json()["id"]
    resp = client.post("/api/parts", json={"name": "Screen", "sku": "SCR-1", "unit_cost": "50"})
    assert resp.status_code == 201
    part_id = resp.json()["id"]
    return cust_id, part_id


def test_composite_create_then_smart_update():
    client = make_client()
    cust_id, part_id = seed(client)

    body = {
        "notes": "walk-in",
        "items": [
            {
                "brand": "Acme",
                "jobs": [{"job_parts": [{"part_id": part_id, "quantity": 2, "unit_cost": "50"}]}],
            }
        ],
    }
    resp = client.post(f"/api/composite/customers/{cust_id}/serviceorders", json=body)
    assert resp.status_code == 201
    order = resp.json()
    job = order["items"][0]["jobs"][0]
    assert Decimal(job["actual_cost"]) == Decimal("100")

    update = {
        "service_order_id": order["service_order_id"],
        "items": [
            {
                "item_id": order["items"][0]["item_id"],
                "jobs": [
                    {
                        "job_id": job["job_id"],
                        "job_parts": [{"part_id": part_id, "quantity": 3, "unit_cost": "50"}],
                    }
                ],
            }
        ],
    }
    resp = client.put("/api/composite/serviceorder/smart-update", json=update)
    assert resp.status_code == 200
    updated_job = resp.json()["items"][0]["jobs"][0]
    assert Decimal(updated_job["actual_cost"]) == Decimal("150")
    assert updated_job["job_parts"][0]["job_part_id"] != job["job_parts"][0]["job_part_id"]

    fetched = client.get(f"/api/jobs/{job['job_id']}").json()
    assert Decimal(fetched["actual_cost"]) == Decimal("150")

    # a read can be sent back unchanged
    current = client.get(f"/api/serviceorders/{order['service_order_id']}").json()
    resp = client.put("/api/composite/serviceorder/smart-update", json=current)
    assert resp.status_code == 200
    resubmitted = resp.json()
    assert resubmitted["version"] == current["version"] + 1
    assert [i["item_id"] for i in resubmitted["items"]] == [i["item_id"] for i in current["items"]]
    again_job = resubmitted["items"][0]["jobs"][0]
    assert again_job["job_parts"][0]["job_part_id"] == updated_job["job_parts"][0]["job_part_id"]
    assert Decimal(again_job["actual_cost"]) == Decimal("150")
    app.dependency_overrides.clear()


def test_composite_item_and_job_endpoints():
    client = make_client()
    cust_id, part_id = seed(client)
    order = client.post(f"/api/composite/customers/{cust_id}/serviceorders", json={}).json()

    resp = client.post(
        f"/api/composite/serviceorders/{order['service_order_id']}/items",
        json={"brand": "Acme", "jobs": [{"priority": "High"}]},
    )
    assert resp.status_code == 201
    item = resp.json()
    assert item["inspection_status"] == "Pending"

    resp = client.post(
        f"/api/composite/items/{item['item_id']}/jobs",
        json={"job_parts": [{"part_id": part_id}]},
    )
    assert resp.status_code == 201
    assert Decimal(resp.json()["actual_cost"]) == Decimal("50")
    assert len(client.get(f"/api/items/{item['item_id']}").json()["jobs"]) == 2
    app.dependency_overrides.clear()


def test_error_mapping():
    client = make_client()
    cust_id, part_id = seed(client)

    assert client.post("/api/composite/customers/0/serviceorders", json={}).status_code == 400
    assert client.post("/api/composite/customers/999/serviceorders", json={}).status_code == 404
    assert client.get("/api/serviceorders/999").status_code == 404
    resp = client.put("/api/composite/serviceorder/smart-update", json={"service_order_id": 42})
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Service order with ID 42 not found"

    dup = {"service_order_id": 1, "items": [{"item_id": 3}, {"item_id": 3}]}
    assert client.put("/api/composite/serviceorder/smart-update", json=dup).status_code == 422

    again = {"name": "Other", "contact_number": "555-0100", "customer_type": "Business"}
    assert client.post("/api/customers", json=again).status_code == 409
    blank = {"name": " ", "contact_number": "555-0199", "customer_type": "Business"}
    resp = client.post("/api/customers", json=blank)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Customer name is required"
    assert client.post("/api/employees", json={"name": "Tess", "role": ""}).status_code == 400

    order = client.post(f"/api/composite/customers/{cust_id}/serviceorders", json={}).json()
    stale = {"service_order_id": order["service_order_id"], "version": 5}
    assert client.put("/api/composite/serviceorder/smart-update", json=stale).status_code == 409
    app.dependency_overrides.clear()


def test_customer_and_employee_listing():
    client = make_client()
    seed(client)
    assert client.post("/api/employees", json={"name": "Tess", "role": "Technician"}).status_code == 201
    assert [c["name"] for c in client.get("/api/customers").json()] == ["Acme"]
    assert client.get("/api/customers/stats").json()["total"] == 1
    assert [e["role"] for e in client.get("/api/employees", params={"role": "technician"}).json()] == ["Technician"]
    app.dependency_overrides.clear()


def test_schema_is_ensured_by_the_entrypoint_only():
    from service_center import main

    assert main.app is app
    assert main.app.router.on_startup == [main._startup]
