"""
org/store.py -- SQLAlchemy-backed persistence for enterprises, employees and products.

Uses SQLAlchemy Core (not ORM) so the dataclasses in org/models.py remain the
authoritative domain representation. Tables come from core/schema.py and
share a database with the auth tables.

Pattern: Repository + Data Mapper. OrgStore is the repository; the
_row_to_* functions are the mappers. Route handlers never touch SQL directly.

Tenant scoping: every list/get method takes an optional enterprise_id. The
routes pass the caller's enterprise for non-admin identities, so a row from
another tenant is simply "not found". The store itself has no notion of who
is asking.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = OrgStore("sqlite:///orgadmin.db")
    ent_id = store.create_enterprise(Enterprise(name="Acme"))
    emp_id = store.create_employee(Employee(name="Ana", enterprise_id=ent_id))
    store.list_products(enterprise_id=ent_id)
    store.close()
"""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.engine import Engine

from core.schema import employees, enterprises, make_engine, products, users
from org.models import Employee, Enterprise, Product

logger = logging.getLogger("orgadmin.store")

_ENTERPRISE_FIELDS = frozenset({"name", "location", "contact_info", "status"})
_EMPLOYEE_FIELDS = frozenset({"name", "department", "role", "salary", "status", "enterprise_id"})
_PRODUCT_FIELDS = frozenset({"name", "sku", "price", "category", "status", "enterprise_id", "employee_id"})


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _checked(fields: dict, allowed: frozenset) -> dict:
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unknown fields: {unknown!r}")
    return fields


def _count_of(table):
    """Correlated COUNT(*) of table rows belonging to the outer enterprise row."""
    return (
        select(func.count())
        .select_from(table)
        .where(table.c.enterprise_id == enterprises.c.id)
        .scalar_subquery()
    )


class OrgStore:
    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)

    # ------------------------------------------------------------------
    # Enterprises
    # ------------------------------------------------------------------

    def _enterprise_select(self):
        return select(
            enterprises,
            _count_of(users).label("user_count"),
            _count_of(employees).label("employee_count"),
            _count_of(products).label("product_count"),
        )

    def create_enterprise(self, enterprise: Enterprise) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(
                enterprises.insert().values(
                    name=enterprise.name,
                    location=enterprise.location,
                    contact_info=json.dumps(enterprise.contact_info or {}),
                    status=enterprise.status,
                    created_at=_now_iso(),
                )
            )
            enterprise_id = result.inserted_primary_key[0]
        logger.info("Created enterprise id=%s name=%s", enterprise_id, enterprise.name)
        return enterprise_id

    def get_enterprise(self, enterprise_id: int) -> Optional[Enterprise]:
        """Return the enterprise with user/employee/product counts, or None."""
        with self.engine.connect() as conn:
            row = conn.execute(self._enterprise_select().where(enterprises.c.id == enterprise_id)).fetchone()
        return _row_to_enterprise(row) if row is not None else None

    def enterprise_exists(self, enterprise_id: int) -> bool:
        with self.engine.connect() as conn:
            row = conn.execute(select(enterprises.c.id).where(enterprises.c.id == enterprise_id)).fetchone()
        return row is not None

    def list_enterprises(self, enterprise_id: Optional[int] = None) -> list[Enterprise]:
        stmt = self._enterprise_select().order_by(enterprises.c.created_at.desc(), enterprises.c.id.desc())
        if enterprise_id is not None:
            stmt = stmt.where(enterprises.c.id == enterprise_id)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_enterprise(r) for r in rows]

    def enterprise_name_taken(self, name: str, exclude_id: Optional[int] = None) -> bool:
        stmt = select(enterprises.c.id).where(enterprises.c.name == name)
        if exclude_id is not None:
            stmt = stmt.where(enterprises.c.id != exclude_id)
        with self.engine.connect() as conn:
            return conn.execute(stmt.limit(1)).fetchone() is not None

    def update_enterprise(self, enterprise_id: int, **fields) -> bool:
        _checked(fields, _ENTERPRISE_FIELDS)
        if "contact_info" in fields:
            fields["contact_info"] = json.dumps(fields["contact_info"] or {})
        if not fields:
            return self.enterprise_exists(enterprise_id)
        with self.engine.begin() as conn:
            result = conn.execute(enterprises.update().where(enterprises.c.id == enterprise_id).values(**fields))
        return result.rowcount > 0

    def delete_enterprise(self, enterprise_id: int) -> bool:
        """Delete an enterprise with its employees and products.

        Callers must refuse the delete while users still belong to it.
        """
        with self.engine.begin() as conn:
            conn.execute(products.delete().where(products.c.enterprise_id == enterprise_id))
            conn.execute(employees.delete().where(employees.c.enterprise_id == enterprise_id))
            result = conn.execute(enterprises.delete().where(enterprises.c.id == enterprise_id))
        if result.rowcount > 0:
            logger.info("Deleted enterprise id=%s", enterprise_id)
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Employees
    # ------------------------------------------------------------------

    def _employee_select(self):
        return select(employees, enterprises.c.name.label("enterprise_name")).select_from(
            employees.outerjoin(enterprises, employees.c.enterprise_id == enterprises.c.id)
        )

    def create_employee(self, employee: Employee) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(
                employees.insert().values(
                    name=employee.name,
                    department=employee.department,
                    role=employee.role,
                    salary=employee.salary,
                    status=employee.status,
                    enterprise_id=employee.enterprise_id,
                    created_at=_now_iso(),
                )
            )
            return result.inserted_primary_key[0]

    def get_employee(self, employee_id: int, enterprise_id: Optional[int] = None) -> Optional[Employee]:
        stmt = self._employee_select().where(employees.c.id == employee_id)
        if enterprise_id is not None:
            stmt = stmt.where(employees.c.enterprise_id == enterprise_id)
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return _row_to_employee(row) if row is not None else None

    def list_employees(self, enterprise_id: Optional[int] = None) -> list[Employee]:
        stmt = self._employee_select().order_by(employees.c.created_at.desc(), employees.c.id.desc())
        if enterprise_id is not None:
            stmt = stmt.where(employees.c.enterprise_id == enterprise_id)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_employee(r) for r in rows]

    def update_employee(self, employee_id: int, **fields) -> bool:
        _checked(fields, _EMPLOYEE_FIELDS)
        if not fields:
            return self.get_employee(employee_id) is not None
        with self.engine.begin() as conn:
            result = conn.execute(employees.update().where(employees.c.id == employee_id).values(**fields))
        return result.rowcount > 0

    def count_products_for_employee(self, employee_id: int) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                select(func.count()).select_from(products).where(products.c.employee_id == employee_id)
            ).scalar()
        return result or 0

    def delete_employee(self, employee_id: int) -> bool:
        """Delete an employee. Callers must refuse while products reference it."""
        with self.engine.begin() as conn:
            result = conn.execute(employees.delete().where(employees.c.id == employee_id))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def _product_select(self):
        joined = products.outerjoin(enterprises, products.c.enterprise_id == enterprises.c.id).outerjoin(
            employees, products.c.employee_id == employees.c.id
        )
        return select(
            products,
            enterprises.c.name.label("enterprise_name"),
            employees.c.name.label("employee_name"),
        ).select_from(joined)

    def create_product(self, product: Product) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(
                products.insert().values(
                    name=product.name,
                    sku=product.sku,
                    price=product.price,
                    category=product.category,
                    status=product.status,
                    enterprise_id=product.enterprise_id,
                    employee_id=product.employee_id,
                    created_at=_now_iso(),
                )
            )
            return result.inserted_primary_key[0]

    def get_product(self, product_id: int, enterprise_id: Optional[int] = None) -> Optional[Product]:
        stmt = self._product_select().where(products.c.id == product_id)
        if enterprise_id is not None:
            stmt = stmt.where(products.c.enterprise_id == enterprise_id)
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return _row_to_product(row) if row is not None else None

    def list_products(self, enterprise_id: Optional[int] = None, employee_id: Optional[int] = None) -> list[Product]:
        stmt = self._product_select().order_by(products.c.created_at.desc(), products.c.id.desc())
        if enterprise_id is not None:
            stmt = stmt.where(products.c.enterprise_id == enterprise_id)
        if employee_id is not None:
            stmt = stmt.where(products.c.employee_id == employee_id)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_product(r) for r in rows]

    def update_product(self, product_id: int, **fields) -> bool:
        _checked(fields, _PRODUCT_FIELDS)
        if not fields:
            return self.get_product(product_id) is not None
        with self.engine.begin() as conn:
            result = conn.execute(products.update().where(products.c.id == product_id).values(**fields))
        return result.rowcount > 0

    def sku_taken(self, sku: str, exclude_id: Optional[int] = None) -> bool:
        stmt = select(products.c.id).where(products.c.sku == sku)
        if exclude_id is not None:
            stmt = stmt.where(products.c.id != exclude_id)
        with self.engine.connect() as conn:
            return conn.execute(stmt.limit(1)).fetchone() is not None

    def delete_product(self, product_id: int) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(products.delete().where(products.c.id == product_id))
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_enterprise(row) -> Enterprise:
    try:
        contact_info = json.loads(row.contact_info) if row.contact_info else {}
    except (json.JSONDecodeError, TypeError):
        contact_info = {}
    return Enterprise(
        id=row.id,
        name=row.name,
        location=row.location,
        contact_info=contact_info,
        status=row.status,
        created_at=row.created_at,
        user_count=row.user_count or 0,
        employee_count=row.employee_count or 0,
        product_count=row.product_count or 0,
    )


def _row_to_employee(row) -> Employee:
    return Employee(
        id=row.id,
        name=row.name,
        department=row.department,
        role=row.role,
        salary=row.salary,
        status=row.status,
        enterprise_id=row.enterprise_id,
        created_at=row.created_at,
        enterprise_name=row.enterprise_name,
    )


def _row_to_product(row) -> Product:
    return Product(
        id=row.id,
        name=row.name,
        sku=row.sku,
        price=row.price,
        category=row.category,
        status=row.status,
        enterprise_id=row.enterprise_id,
        employee_id=row.employee_id,
        created_at=row.created_at,
        enterprise_name=row.enterprise_name,
        employee_name=row.employee_name,
    )
