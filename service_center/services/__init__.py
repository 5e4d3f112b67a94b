"""Service layer for business logic.

Each function is transport agnostic and operates on a SQLModel ``Session``
(the hierarchy helpers wrap it in a :class:`~service_center.persistence.UnitOfWork`).
The most commonly used functions are re-exported here so callers can write
``from service_center.services import smart_update_service_order``.
"""

from .errors import (
    ConflictError,
    HierarchyValidationError,
    NotFoundError,
    ValidationError,
)
from .costing import line_total, recalculate_job_cost
from .hierarchy_reader import read_item, read_job, read_service_order
from .hierarchy_builder import (
    add_job_parts,
    create_item_complete,
    create_job_complete,
    create_service_order_complete,
)
from .hierarchy_reconciler import (
    HierarchyReconciler,
    ReconcileStats,
    smart_update_service_order,
)
from .customers import (
    list_customers,
    get_customer,
    create_customer,
    update_customer,
    delete_customer,
    customer_stats,
)
from .employees import (
    list_employees,
    get_employee,
    create_employee,
    update_employee,
    delete_employee,
)
from .parts import create_part, get_part, search_parts
from .service_orders import (
    get_service_order,
    list_service_orders,
    search_by_customer,
    search_by_number,
    create_service_order,
    update_service_order,
    delete_service_order,
)
from .items import add_item, update_item, delete_item
from .jobs import (
    add_job,
    update_job,
    delete_job,
    list_job_parts,
    add_job_part,
    bulk_add_job_parts,
    update_job_part,
    delete_job_part,
)

__all__ = [
    "ConflictError",
    "HierarchyValidationError",
    "NotFoundError",
    "ValidationError",
    "line_total",
    "recalculate_job_cost",
    "read_item",
    "read_job",
    "read_service_order",
    "add_job_parts",
    "create_item_complete",
    "create_job_complete",
    "create_service_order_complete",
    "HierarchyReconciler",
    "ReconcileStats",
    "smart_update_service_order",
    "list_customers",
    "get_customer",
    "create_customer",
    "update_customer",
    "delete_customer",
    "customer_stats",
    "list_employees",
    "get_employee",
    "create_employee",
    "update_employee",
    "delete_employee",
    "create_part",
    "get_part",
    "search_parts",
    "get_service_order",
    "list_service_orders",
    "search_by_customer",
    "search_by_number",
    "create_service_order",
    "update_service_order",
    "delete_service_order",
    "add_item",
    "update_item",
    "delete_item",
    "add_job",
    "update_job",
    "delete_job",
    "list_job_parts",
    "add_job_part",
    "bulk_add_job_parts",
    "update_job_part",
    "delete_job_part",
]
