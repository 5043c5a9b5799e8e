"""
org/models.py -- Domain dataclasses for the tenant-scoped business records.

Pure data containers with zero logic. Queries, referential guards and tenant
filtering live in org/store.py and the routes.

An Enterprise is the tenant. Employees and products always belong to exactly
one enterprise; a product may additionally name the employee responsible
for it.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Enterprise:
    """A tenant. id is None before the record is written to the database."""

    name: str
    location: Optional[str] = None
    contact_info: dict = field(default_factory=dict)
    status: str = "active"  # "active" | "inactive"
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    # Populated by get_enterprise()/list_enterprises() only.
    user_count: int = 0
    employee_count: int = 0
    product_count: int = 0


@dataclass
class Employee:
    name: str
    enterprise_id: int
    department: Optional[str] = None
    role: Optional[str] = None  # job title, unrelated to access-control roles
    salary: Optional[float] = None
    status: str = "active"
    id: Optional[int] = None
    created_at: str = ""
    enterprise_name: Optional[str] = None


@dataclass
class Product:
    name: str
    enterprise_id: int
    sku: Optional[str] = None
    price: Optional[float] = None
    category: Optional[str] = None
    employee_id: Optional[int] = None
    status: str = "active"
    id: Optional[int] = None
    created_at: str = ""
    enterprise_name: Optional[str] = None
    employee_name: Optional[str] = None
