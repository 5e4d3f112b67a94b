from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from sqlmodel import Session

from .database import get_session
from .schemas import (
    CustomerCreate,
    CustomerRead,
    CustomerStats,
    EmployeeCreate,
    EmployeeRead,
    ItemDetail,
    ItemDocument,
    JobDetail,
    JobDocument,
    PartCreate,
    ServiceOrderDetail,
    ServiceOrderDocument,
    ServiceOrderUpdateDocument,
)
from .models import Part
from .services import (
    ConflictError,
    NotFoundError,
    ValidationError,
    create_customer as svc_create_customer,
    create_employee as svc_create_employee,
    create_item_complete,
    create_job_complete,
    create_part as svc_create_part,
    create_service_order_complete,
    customer_stats,
    list_customers as svc_list_customers,
    list_employees as svc_list_employees,
    read_item,
    read_job,
    read_service_order,
    smart_update_service_order,
)


app = FastAPI(title="Service Center")


@app.exception_handler(ValidationError)
def _validation_error(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
def _not_found(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ConflictError)
def _conflict(request: Request, exc: ConflictError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


# ---------------------------------------------------------------------------
# Composite hierarchy endpoints

composite = APIRouter(prefix="/api/composite", tags=["composite"])


@composite.post(
    "/customers/{customer_id}/serviceorders",
    response_model=ServiceOrderDetail,
    status_code=201,
)
def create_service_order(
    customer_id: int,
    document: ServiceOrderDocument,
    session: Session = Depends(get_session),
):
    return create_service_order_complete(customer_id, document, session)


@composite.post(
    "/serviceorders/{service_order_id}/items", response_model=ItemDetail, status_code=201
)
def create_item(
    service_order_id: int,
    document: ItemDocument,
    session: Session = Depends(get_session),
):
    return create_item_complete(service_order_id, document, session)


@composite.post("/items/{item_id}/jobs", response_model=JobDetail, status_code=201)
def create_job(item_id: int, document: JobDocument, session: Session = Depends(get_session)):
    return create_job_complete(item_id, document, session)


@composite.put("/serviceorder/smart-update", response_model=ServiceOrderDetail)
def smart_update(
    document: ServiceOrderUpdateDocument, session: Session = Depends(get_session)
):
    return smart_update_service_order(document, session)


# ---------------------------------------------------------------------------
# Reads and reference data

api = APIRouter(prefix="/api", tags=["service-center"])


@api.get("/serviceorders/{service_order_id}", response_model=ServiceOrderDetail)
def get_service_order(service_order_id: int, session: Session = Depends(get_session)):
    return read_service_order(service_order_id, session)


@api.get("/items/{item_id}", response_model=ItemDetail)
def get_item(item_id: int, session: Session = Depends(get_session)):
    return read_item(item_id, session)


@api.get("/jobs/{job_id}", response_model=JobDetail)
def get_job(job_id: int, session: Session = Depends(get_session)):
    return read_job(job_id, session)


@api.get("/customers", response_model=List[CustomerRead])
def list_customers(
    q: Optional[str] = None,
    active_only: bool = False,
    session: Session = Depends(get_session),
):
    return svc_list_customers(q, session, active_only=active_only)


@api.get("/customers/stats", response_model=CustomerStats)
def get_customer_stats(session: Session = Depends(get_session)):
    return customer_stats(session)


@api.post("/customers", response_model=CustomerRead, status_code=201)
def create_customer(data: CustomerCreate, session: Session = Depends(get_session)):
    return svc_create_customer(data, session)


@api.get("/employees", response_model=List[EmployeeRead])
def list_employees(
    q: Optional[str] = None,
    role: Optional[str] = None,
    session: Session = Depends(get_session),
):
    return svc_list_employees(session, q=q, role=role)


@api.post("/employees", response_model=EmployeeRead, status_code=201)
def create_employee(data: EmployeeCreate, session: Session = Depends(get_session)):
    return svc_create_employee(data, session)


@api.post("/parts", response_model=Part, status_code=201)
def create_part(data: PartCreate, session: Session = Depends(get_session)):
    return svc_create_part(data, session)


app.include_router(composite)
app.include_router(api)
