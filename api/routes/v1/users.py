"""
api/routes/v1/users.py -- User account management.

Routes:
  GET    /users                              -- list users            users:read
  GET    /users/enterprise/{enterprise_id}   -- users of one tenant   users:read
  GET    /users/{user_id}                    -- one user              users:read
  POST   /users                              -- create user           users:create
  PUT    /users/{user_id}                    -- partial update        users:update
  PATCH  /users/{user_id}/status             -- lock / unlock         users:update
  DELETE /users/{user_id}                    -- delete user           users:delete

Non-Admin callers only see and touch users of their own enterprise (see
api/tenancy.py) and may not hand out the Admin role.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError

from api.models import IdentityResponse, MessageResponse, UserCreate, UserStatusUpdate, UserUpdate
from api.tenancy import check_enterprise_access, target_enterprise, tenant_scope
from auth.dependencies import can_create, can_delete, can_read, can_update
from auth.models import SUPER_ROLE, Identity, Module, User, UserStatus
from auth.passwords import hash_password
from auth.store import UserStore
from org.store import OrgStore

logger = logging.getLogger("orgadmin.api")

router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail={"code": "not_found", "message": "User not found"})


def _conflict(message: str) -> HTTPException:
    return HTTPException(status_code=409, detail={"code": "conflict", "message": message})


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=400, detail={"code": "bad_request", "message": message})


def _load_scoped(user_store: UserStore, identity: Identity, user_id: int) -> User:
    user = user_store.get_by_id(user_id)
    if user is None:
        raise _not_found()
    scope = tenant_scope(identity)
    if scope is not None and user.enterprise_id != scope:
        raise _not_found()
    return user


def _check_references(request: Request, identity: Identity, role_id: int | None, enterprise_id: int | None) -> None:
    """Validate role/enterprise ids named in a create or update body."""
    user_store: UserStore = request.app.state.user_store
    org_store: OrgStore = request.app.state.org_store
    if role_id is not None:
        role = user_store.get_role(role_id)
        if role is None:
            raise _bad_request("Role not found")
        if role.name == SUPER_ROLE and not identity.is_super:
            raise HTTPException(
                status_code=403,
                detail={"code": "forbidden", "message": "Only an Admin may assign the Admin role"},
            )
    if enterprise_id is not None and not org_store.enterprise_exists(enterprise_id):
        raise _bad_request("Enterprise not found")


@router.get("/users", response_model=list[IdentityResponse])
def list_users(request: Request, identity: Identity = Depends(can_read(Module.users))) -> list[IdentityResponse]:
    user_store: UserStore = request.app.state.user_store
    rows = user_store.list_users(enterprise_id=tenant_scope(identity))
    return [IdentityResponse.from_identity(u) for u in rows]


@router.get("/users/enterprise/{enterprise_id}", response_model=list[IdentityResponse])
def list_users_by_enterprise(
    request: Request,
    enterprise_id: int,
    identity: Identity = Depends(can_read(Module.users)),
) -> list[IdentityResponse]:
    check_enterprise_access(identity, enterprise_id)
    user_store: UserStore = request.app.state.user_store
    return [IdentityResponse.from_identity(u) for u in user_store.list_users(enterprise_id=enterprise_id)]


@router.get("/users/{user_id}", response_model=IdentityResponse)
def get_user(request: Request, user_id: int, identity: Identity = Depends(can_read(Module.users))) -> IdentityResponse:
    user = _load_scoped(request.app.state.user_store, identity, user_id)
    return IdentityResponse.from_identity(user.to_identity())


@router.post("/users", response_model=IdentityResponse, status_code=201)
def create_user(
    request: Request,
    body: UserCreate,
    identity: Identity = Depends(can_create(Module.users)),
) -> IdentityResponse:
    """Create an account. The password is hashed here and never stored or echoed in clear."""
    user_store: UserStore = request.app.state.user_store

    enterprise_id = target_enterprise(identity, body.enterprise_id)
    _check_references(request, identity, body.role_id, enterprise_id)
    if user_store.username_taken(body.username):
        raise _conflict("Username already exists")
    if user_store.email_taken(body.email):
        raise _conflict("Email already exists")

    user = User(
        username=body.username,
        email=body.email,
        hashed_password=hash_password(body.password, rounds=request.app.state.settings.bcrypt_rounds),
        role_id=body.role_id,
        enterprise_id=enterprise_id,
    )
    try:
        user_id = user_store.create_user(user)
    except IntegrityError as exc:
        raise _conflict("Username or email already exists") from exc
    logger.info("User %s created by user id=%s", body.username, identity.id)
    return IdentityResponse.from_identity(user_store.get_by_id(user_id).to_identity())


@router.put("/users/{user_id}", response_model=IdentityResponse)
def update_user(
    request: Request,
    user_id: int,
    body: UserUpdate,
    identity: Identity = Depends(can_update(Module.users)),
) -> IdentityResponse:
    """Update only the fields present in the body."""
    user_store: UserStore = request.app.state.user_store
    _load_scoped(user_store, identity, user_id)

    fields = body.model_dump(exclude_unset=True)
    if "enterprise_id" in fields:
        fields["enterprise_id"] = target_enterprise(identity, fields["enterprise_id"])
    if "status" in fields:
        if fields["status"] is None:
            raise _bad_request("Status cannot be empty")
        fields["status"] = UserStatus(fields["status"]).value
        if user_id == identity.id and fields["status"] != UserStatus.active.value:
            raise _bad_request("You cannot lock or deactivate your own account")
    _check_references(request, identity, fields.get("role_id"), fields.get("enterprise_id"))
    if fields.get("username") and user_store.username_taken(fields["username"], exclude_id=user_id):
        raise _conflict("Username already exists")
    if fields.get("email") and user_store.email_taken(fields["email"], exclude_id=user_id):
        raise _conflict("Email already exists")
    for key in ("username", "email"):
        if key in fields and fields[key] is None:
            del fields[key]

    try:
        user_store.update_user(user_id, **fields)
    except IntegrityError as exc:
        raise _conflict("Username or email already exists") from exc
    logger.info("User id=%s updated by user id=%s (fields=%s)", user_id, identity.id, sorted(fields))
    return IdentityResponse.from_identity(user_store.get_by_id(user_id).to_identity())


@router.patch("/users/{user_id}/status", response_model=MessageResponse)
def set_user_status(
    request: Request,
    user_id: int,
    body: UserStatusUpdate,
    identity: Identity = Depends(can_update(Module.users)),
) -> MessageResponse:
    """Lock, deactivate or reactivate an account. Takes effect on the target's next request."""
    user_store: UserStore = request.app.state.user_store
    _load_scoped(user_store, identity, user_id)
    if user_id == identity.id and body.status is not UserStatus.active:
        raise _bad_request("You cannot lock or deactivate your own account")
    user_store.update_user(user_id, status=body.status.value)
    logger.info("User id=%s set to %s by user id=%s", user_id, body.status.value, identity.id)
    return MessageResponse(message=f"User {body.status.value} successfully")


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(
    request: Request,
    user_id: int,
    identity: Identity = Depends(can_delete(Module.users)),
) -> MessageResponse:
    user_store: UserStore = request.app.state.user_store
    _load_scoped(user_store, identity, user_id)
    if user_id == identity.id:
        raise _bad_request("You cannot delete your own account")
    user_store.delete_user(user_id)
    logger.info("User id=%s deleted by user id=%s", user_id, identity.id)
    return MessageResponse(message="User deleted successfully")
