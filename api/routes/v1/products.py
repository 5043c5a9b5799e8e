"""
api/routes/v1/products.py -- Product catalogue.

Routes:
  GET    /products                             -- list                  products:read
  GET    /products/enterprise/{enterprise_id}  -- list for one tenant    products:read
  GET    /products/employee/{employee_id}      -- list for one employee  products:read
  GET    /products/{product_id}                -- one product            products:read
  POST   /products                             -- create                 products:create
  PUT    /products/{product_id}                -- partial update         products:update
  DELETE /products/{product_id}                -- delete                 products:delete

SKUs are unique across all enterprises. A product's employee must belong to
the product's enterprise.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError

from api.models import MessageResponse, ProductCreate, ProductResponse, ProductUpdate
from api.tenancy import check_enterprise_access, target_enterprise, tenant_scope
from auth.dependencies import can_create, can_delete, can_read, can_update
from auth.models import Identity, Module
from org.models import Product
from org.store import OrgStore

logger = logging.getLogger("orgadmin.api")

router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail={"code": "not_found", "message": "Product not found"})


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=400, detail={"code": "bad_request", "message": message})


def _sku_conflict() -> HTTPException:
    return HTTPException(status_code=409, detail={"code": "conflict", "message": "SKU already exists"})


def _check_owner(org_store: OrgStore, enterprise_id: int | None, employee_id: int | None) -> None:
    if enterprise_id is None:
        raise _bad_request("Product name and enterprise ID are required")
    if not org_store.enterprise_exists(enterprise_id):
        raise _bad_request("Enterprise not found")
    if employee_id is not None and org_store.get_employee(employee_id, enterprise_id=enterprise_id) is None:
        raise _bad_request("Employee not found")


@router.get("/products", response_model=list[ProductResponse])
def list_products(
    request: Request,
    identity: Identity = Depends(can_read(Module.products)),
) -> list[ProductResponse]:
    org_store: OrgStore = request.app.state.org_store
    return [ProductResponse.from_product(p) for p in org_store.list_products(enterprise_id=tenant_scope(identity))]


@router.get("/products/enterprise/{enterprise_id}", response_model=list[ProductResponse])
def list_products_by_enterprise(
    request: Request,
    enterprise_id: int,
    identity: Identity = Depends(can_read(Module.products)),
) -> list[ProductResponse]:
    check_enterprise_access(identity, enterprise_id)
    org_store: OrgStore = request.app.state.org_store
    return [ProductResponse.from_product(p) for p in org_store.list_products(enterprise_id=enterprise_id)]


@router.get("/products/employee/{employee_id}", response_model=list[ProductResponse])
def list_products_by_employee(
    request: Request,
    employee_id: int,
    identity: Identity = Depends(can_read(Module.products)),
) -> list[ProductResponse]:
    org_store: OrgStore = request.app.state.org_store
    scope = tenant_scope(identity)
    if org_store.get_employee(employee_id, enterprise_id=scope) is None:
        raise HTTPException(status_code=404, detail={"code": "not_found", "message": "Employee not found"})
    rows = org_store.list_products(enterprise_id=scope, employee_id=employee_id)
    return [ProductResponse.from_product(p) for p in rows]


@router.get("/products/{product_id}", response_model=ProductResponse)
def get_product(
    request: Request,
    product_id: int,
    identity: Identity = Depends(can_read(Module.products)),
) -> ProductResponse:
    org_store: OrgStore = request.app.state.org_store
    product = org_store.get_product(product_id, enterprise_id=tenant_scope(identity))
    if product is None:
        raise _not_found()
    return ProductResponse.from_product(product)


@router.post("/products", response_model=ProductResponse, status_code=201)
def create_product(
    request: Request,
    body: ProductCreate,
    identity: Identity = Depends(can_create(Module.products)),
) -> ProductResponse:
    org_store: OrgStore = request.app.state.org_store
    enterprise_id = target_enterprise(identity, body.enterprise_id)
    _check_owner(org_store, enterprise_id, body.employee_id)
    if body.sku and org_store.sku_taken(body.sku):
        raise _sku_conflict()
    try:
        product_id = org_store.create_product(
            Product(
                name=body.name,
                enterprise_id=enterprise_id,
                sku=body.sku,
                price=body.price,
                category=body.category,
                employee_id=body.employee_id,
            )
        )
    except IntegrityError as exc:
        raise _sku_conflict() from exc
    logger.info("Product id=%s created by user id=%s", product_id, identity.id)
    return ProductResponse.from_product(org_store.get_product(product_id))


@router.put("/products/{product_id}", response_model=ProductResponse)
def update_product(
    request: Request,
    product_id: int,
    body: ProductUpdate,
    identity: Identity = Depends(can_update(Module.products)),
) -> ProductResponse:
    org_store: OrgStore = request.app.state.org_store
    current = org_store.get_product(product_id, enterprise_id=tenant_scope(identity))
    if current is None:
        raise _not_found()

    fields = body.model_dump(exclude_unset=True)
    for key in ("name", "status"):
        if key in fields and fields[key] is None:
            del fields[key]
    if "enterprise_id" in fields:
        fields["enterprise_id"] = target_enterprise(identity, fields["enterprise_id"])
    if "enterprise_id" in fields or "employee_id" in fields:
        _check_owner(
            org_store,
            fields.get("enterprise_id", current.enterprise_id),
            fields.get("employee_id", current.employee_id),
        )
    if fields.get("sku") and org_store.sku_taken(fields["sku"], exclude_id=product_id):
        raise _sku_conflict()
    try:
        org_store.update_product(product_id, **fields)
    except IntegrityError as exc:
        raise _sku_conflict() from exc
    logger.info("Product id=%s updated by user id=%s", product_id, identity.id)
    return ProductResponse.from_product(org_store.get_product(product_id))


@router.delete("/products/{product_id}", response_model=MessageResponse)
def delete_product(
    request: Request,
    product_id: int,
    identity: Identity = Depends(can_delete(Module.products)),
) -> MessageResponse:
    org_store: OrgStore = request.app.state.org_store
    if org_store.get_product(product_id, enterprise_id=tenant_scope(identity)) is None:
        raise _not_found()
    org_store.delete_product(product_id)
    logger.info("Product id=%s deleted by user id=%s", product_id, identity.id)
    return MessageResponse(message="Product deleted successfully")
