"""
api/routes/v1/employees.py -- Employee records.

Routes:
  GET    /employees                             -- list                 employees:read
  GET    /employees/enterprise/{enterprise_id}  -- list for one tenant   employees:read
  GET    /employees/{employee_id}               -- one employee          employees:read
  POST   /employees                             -- create                employees:create
  PUT    /employees/{employee_id}               -- partial update        employees:update
  DELETE /employees/{employee_id}               -- delete                employees:delete

Deleting the employee, or moving it to another enterprise, is refused while
products still reference it.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from api.models import EmployeeCreate, EmployeeResponse, EmployeeUpdate, MessageResponse
from api.tenancy import check_enterprise_access, target_enterprise, tenant_scope
from auth.dependencies import can_create, can_delete, can_read, can_update
from auth.models import Identity, Module
from org.models import Employee
from org.store import OrgStore

logger = logging.getLogger("orgadmin.api")

router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail={"code": "not_found", "message": "Employee not found"})


def _require_enterprise(org_store: OrgStore, enterprise_id: int | None) -> int:
    if enterprise_id is None:
        raise HTTPException(
            status_code=400,
            detail={"code": "bad_request", "message": "Employee name and enterprise ID are required"},
        )
    if not org_store.enterprise_exists(enterprise_id):
        raise HTTPException(status_code=400, detail={"code": "bad_request", "message": "Enterprise not found"})
    return enterprise_id


@router.get("/employees", response_model=list[EmployeeResponse])
def list_employees(
    request: Request,
    identity: Identity = Depends(can_read(Module.employees)),
) -> list[EmployeeResponse]:
    org_store: OrgStore = request.app.state.org_store
    return [EmployeeResponse.from_employee(e) for e in org_store.list_employees(enterprise_id=tenant_scope(identity))]


@router.get("/employees/enterprise/{enterprise_id}", response_model=list[EmployeeResponse])
def list_employees_by_enterprise(
    request: Request,
    enterprise_id: int,
    identity: Identity = Depends(can_read(Module.employees)),
) -> list[EmployeeResponse]:
    check_enterprise_access(identity, enterprise_id)
    org_store: OrgStore = request.app.state.org_store
    return [EmployeeResponse.from_employee(e) for e in org_store.list_employees(enterprise_id=enterprise_id)]


@router.get("/employees/{employee_id}", response_model=EmployeeResponse)
def get_employee(
    request: Request,
    employee_id: int,
    identity: Identity = Depends(can_read(Module.employees)),
) -> EmployeeResponse:
    org_store: OrgStore = request.app.state.org_store
    employee = org_store.get_employee(employee_id, enterprise_id=tenant_scope(identity))
    if employee is None:
        raise _not_found()
    return EmployeeResponse.from_employee(employee)


@router.post("/employees", response_model=EmployeeResponse, status_code=201)
def create_employee(
    request: Request,
    body: EmployeeCreate,
    identity: Identity = Depends(can_create(Module.employees)),
) -> EmployeeResponse:
    org_store: OrgStore = request.app.state.org_store
    enterprise_id = _require_enterprise(org_store, target_enterprise(identity, body.enterprise_id))
    employee_id = org_store.create_employee(
        Employee(
            name=body.name,
            enterprise_id=enterprise_id,
            department=body.department,
            role=body.role,
            salary=body.salary,
        )
    )
    logger.info("Employee id=%s created by user id=%s", employee_id, identity.id)
    return EmployeeResponse.from_employee(org_store.get_employee(employee_id))


@router.put("/employees/{employee_id}", response_model=EmployeeResponse)
def update_employee(
    request: Request,
    employee_id: int,
    body: EmployeeUpdate,
    identity: Identity = Depends(can_update(Module.employees)),
) -> EmployeeResponse:
    org_store: OrgStore = request.app.state.org_store
    current = org_store.get_employee(employee_id, enterprise_id=tenant_scope(identity))
    if current is None:
        raise _not_found()

    fields = body.model_dump(exclude_unset=True)
    for key in ("name", "status"):
        if key in fields and fields[key] is None:
            del fields[key]
    if "enterprise_id" in fields:
        fields["enterprise_id"] = _require_enterprise(org_store, target_enterprise(identity, fields["enterprise_id"]))
        if fields["enterprise_id"] != current.enterprise_id and org_store.count_products_for_employee(employee_id) > 0:
            raise HTTPException(
                status_code=400,
                detail={"code": "in_use", "message": "Cannot move employee that has associated products"},
            )
    org_store.update_employee(employee_id, **fields)
    logger.info("Employee id=%s updated by user id=%s", employee_id, identity.id)
    return EmployeeResponse.from_employee(org_store.get_employee(employee_id))


@router.delete("/employees/{employee_id}", response_model=MessageResponse)
def delete_employee(
    request: Request,
    employee_id: int,
    identity: Identity = Depends(can_delete(Module.employees)),
) -> MessageResponse:
    org_store: OrgStore = request.app.state.org_store
    if org_store.get_employee(employee_id, enterprise_id=tenant_scope(identity)) is None:
        raise _not_found()
    if org_store.count_products_for_employee(employee_id) > 0:
        raise HTTPException(
            status_code=400,
            detail={"code": "in_use", "message": "Cannot delete employee that has associated products"},
        )
    org_store.delete_employee(employee_id)
    logger.info("Employee id=%s deleted by user id=%s", employee_id, identity.id)
    return MessageResponse(message="Employee deleted successfully")
