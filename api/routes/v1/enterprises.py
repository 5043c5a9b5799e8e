"""
api/routes/v1/enterprises.py -- Enterprise (tenant) management.

Routes:
  GET    /enterprises                  -- list with user/employee/product counts  enterprises:read
  GET    /enterprises/{enterprise_id}  -- one enterprise                          enterprises:read
  POST   /enterprises                  -- create                                  enterprises:create
  PUT    /enterprises/{enterprise_id}  -- partial update                          enterprises:update
  DELETE /enterprises/{enterprise_id}  -- delete with employees and products      enterprises:delete

A non-Admin caller only ever sees its own enterprise. Deleting is refused
while any user still belongs to the enterprise.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError

from api.models import EnterpriseCreate, EnterpriseResponse, EnterpriseUpdate, MessageResponse
from api.tenancy import check_enterprise_access, tenant_scope
from auth.dependencies import can_create, can_delete, can_read, can_update
from auth.models import Identity, Module
from auth.store import UserStore
from org.models import Enterprise
from org.store import OrgStore

logger = logging.getLogger("orgadmin.api")

router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail={"code": "not_found", "message": "Enterprise not found"})


def _name_conflict() -> HTTPException:
    return HTTPException(status_code=409, detail={"code": "conflict", "message": "Enterprise name already exists"})


def _load_scoped(org_store: OrgStore, identity: Identity, enterprise_id: int) -> Enterprise:
    check_enterprise_access(identity, enterprise_id)
    enterprise = org_store.get_enterprise(enterprise_id)
    if enterprise is None:
        raise _not_found()
    return enterprise


@router.get("/enterprises", response_model=list[EnterpriseResponse])
def list_enterprises(
    request: Request,
    identity: Identity = Depends(can_read(Module.enterprises)),
) -> list[EnterpriseResponse]:
    org_store: OrgStore = request.app.state.org_store
    rows = org_store.list_enterprises(enterprise_id=tenant_scope(identity))
    return [EnterpriseResponse.from_enterprise(e) for e in rows]


@router.get("/enterprises/{enterprise_id}", response_model=EnterpriseResponse)
def get_enterprise(
    request: Request,
    enterprise_id: int,
    identity: Identity = Depends(can_read(Module.enterprises)),
) -> EnterpriseResponse:
    return EnterpriseResponse.from_enterprise(_load_scoped(request.app.state.org_store, identity, enterprise_id))


@router.post("/enterprises", response_model=EnterpriseResponse, status_code=201)
def create_enterprise(
    request: Request,
    body: EnterpriseCreate,
    identity: Identity = Depends(can_create(Module.enterprises)),
) -> EnterpriseResponse:
    org_store: OrgStore = request.app.state.org_store
    if org_store.enterprise_name_taken(body.name):
        raise _name_conflict()
    try:
        enterprise_id = org_store.create_enterprise(
            Enterprise(name=body.name, location=body.location, contact_info=body.contact_info)
        )
    except IntegrityError as exc:
        raise _name_conflict() from exc
    logger.info("Enterprise %s created by user id=%s", body.name, identity.id)
    return EnterpriseResponse.from_enterprise(org_store.get_enterprise(enterprise_id))


@router.put("/enterprises/{enterprise_id}", response_model=EnterpriseResponse)
def update_enterprise(
    request: Request,
    enterprise_id: int,
    body: EnterpriseUpdate,
    identity: Identity = Depends(can_update(Module.enterprises)),
) -> EnterpriseResponse:
    org_store: OrgStore = request.app.state.org_store
    _load_scoped(org_store, identity, enterprise_id)

    fields = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None or k == "location"}
    if "name" in fields and org_store.enterprise_name_taken(fields["name"], exclude_id=enterprise_id):
        raise _name_conflict()
    try:
        org_store.update_enterprise(enterprise_id, **fields)
    except IntegrityError as exc:
        raise _name_conflict() from exc
    logger.info("Enterprise id=%s updated by user id=%s", enterprise_id, identity.id)
    return EnterpriseResponse.from_enterprise(org_store.get_enterprise(enterprise_id))


@router.delete("/enterprises/{enterprise_id}", response_model=MessageResponse)
def delete_enterprise(
    request: Request,
    enterprise_id: int,
    identity: Identity = Depends(can_delete(Module.enterprises)),
) -> MessageResponse:
    org_store: OrgStore = request.app.state.org_store
    user_store: UserStore = request.app.state.user_store
    _load_scoped(org_store, identity, enterprise_id)
    if user_store.count_users_in_enterprise(enterprise_id) > 0:
        raise HTTPException(
            status_code=400,
            detail={"code": "in_use", "message": "Cannot delete enterprise that has associated users"},
        )
    org_store.delete_enterprise(enterprise_id)
    logger.info("Enterprise id=%s deleted by user id=%s", enterprise_id, identity.id)
    return MessageResponse(message="Enterprise deleted successfully")
