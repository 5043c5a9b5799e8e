"""
api/routes/v1/roles.py -- Role and permission-grant management.

Routes (in registration order to avoid FastAPI path capture conflicts):
  GET    /roles            -- list roles (no grants)                    roles:read
  GET    /roles/modules    -- the fixed list of grantable modules       roles:read
  GET    /roles/{role_id}  -- role with its effective grants            roles:read
  POST   /roles            -- create role + grants                      roles:create
  PUT    /roles/{role_id}  -- update; permissions replace the grant set roles:update
  DELETE /roles/{role_id}  -- delete; refused while users hold the role roles:delete

Grant display drops rows whose four flags are all false -- such a row means
"no access" exactly like a missing one.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError

from api.models import MessageResponse, RoleCreate, RoleResponse, RoleUpdate
from auth.dependencies import can_create, can_delete, can_read, can_update
from auth.models import SUPER_ROLE, Identity, Module, Role
from auth.store import UserStore

logger = logging.getLogger("orgadmin.api")

router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail={"code": "not_found", "message": "Role not found"})


def _name_conflict() -> HTTPException:
    return HTTPException(status_code=409, detail={"code": "conflict", "message": "Role name already exists"})


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=400, detail={"code": "bad_request", "message": message})


def _role_in_use() -> HTTPException:
    return HTTPException(
        status_code=400,
        detail={"code": "in_use", "message": "Cannot delete role that is assigned to users"},
    )


@router.get("/roles", response_model=list[RoleResponse])
def list_roles(request: Request, identity: Identity = Depends(can_read(Module.roles))) -> list[RoleResponse]:
    user_store: UserStore = request.app.state.user_store
    return [RoleResponse.from_role(r) for r in user_store.list_roles()]


@router.get("/roles/modules", response_model=list[str])
def list_modules(identity: Identity = Depends(can_read(Module.roles))) -> list[str]:
    """Return the modules a grant may name."""
    return [m.value for m in Module]


@router.get("/roles/{role_id}", response_model=RoleResponse)
def get_role(request: Request, role_id: int, identity: Identity = Depends(can_read(Module.roles))) -> RoleResponse:
    user_store: UserStore = request.app.state.user_store
    role = user_store.get_role(role_id)
    if role is None:
        raise _not_found()
    return RoleResponse.from_role(role)


@router.post("/roles", response_model=RoleResponse, status_code=201)
def create_role(
    request: Request,
    body: RoleCreate,
    identity: Identity = Depends(can_create(Module.roles)),
) -> RoleResponse:
    """Create a role. Requires a name and at least one grant with a flag set."""
    user_store: UserStore = request.app.state.user_store

    if not body.name:
        raise _bad_request("Role name is required")
    if not body.permissions:
        raise _bad_request("At least one permission must be selected")
    grants = [p.to_grant() for p in body.permissions]
    if all(g.is_empty for g in grants):
        raise _bad_request("At least one permission must be selected for the role")
    if len({g.module for g in grants}) != len(grants):
        raise _bad_request("Each module may appear only once")
    if user_store.role_name_taken(body.name):
        raise _name_conflict()

    try:
        role_id = user_store.create_role(Role(name=body.name, description=body.description, permissions=grants))
    except IntegrityError as exc:
        raise _name_conflict() from exc
    logger.info("Role %s created by user id=%s", body.name, identity.id)
    return RoleResponse.from_role(user_store.get_role(role_id))


@router.put("/roles/{role_id}", response_model=RoleResponse)
def update_role(
    request: Request,
    role_id: int,
    body: RoleUpdate,
    identity: Identity = Depends(can_update(Module.roles)),
) -> RoleResponse:
    """Update name/description; a permissions list replaces every existing grant atomically."""
    user_store: UserStore = request.app.state.user_store

    existing = user_store.get_role(role_id)
    if existing is None:
        raise _not_found()
    if existing.name == SUPER_ROLE and body.name is not None and body.name != SUPER_ROLE:
        raise _bad_request("The Admin role cannot be renamed")
    if body.name is not None and user_store.role_name_taken(body.name, exclude_id=role_id):
        raise _name_conflict()

    grants = None
    if body.permissions is not None:
        grants = [p.to_grant() for p in body.permissions]
        if len({g.module for g in grants}) != len(grants):
            raise _bad_request("Each module may appear only once")

    try:
        user_store.update_role(role_id, name=body.name, description=body.description, grants=grants)
    except IntegrityError as exc:
        raise _name_conflict() from exc
    logger.info("Role id=%s updated by user id=%s", role_id, identity.id)
    return RoleResponse.from_role(user_store.get_role(role_id))


@router.delete("/roles/{role_id}", response_model=MessageResponse)
def delete_role(
    request: Request,
    role_id: int,
    identity: Identity = Depends(can_delete(Module.roles)),
) -> MessageResponse:
    """Delete a role and its grants. Refused while any user is assigned to it."""
    user_store: UserStore = request.app.state.user_store

    role = user_store.get_role(role_id)
    if role is None:
        raise _not_found()
    if role.name == SUPER_ROLE:
        raise _bad_request("The Admin role cannot be deleted")
    if user_store.count_users_with_role(role_id) > 0:
        raise _role_in_use()
    try:
        user_store.delete_role(role_id)
    except IntegrityError as exc:
        # A user was assigned between the count and the delete.
        raise _role_in_use() from exc
    logger.info("Role id=%s deleted by user id=%s", role_id, identity.id)
    return MessageResponse(message="Role deleted successfully")
