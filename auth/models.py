"""
auth/models.py -- Domain dataclasses and enums for the access-control core.

Pattern: Data class (pure data container, zero logic). Stores and the
resolver/evaluator do the work; these types only own the domain shape.

Results are plain values, not exceptions: the resolver returns an Identity
or Unauthenticated, the evaluator returns Allowed or Denied, the login flow
returns a LoginSuccess or LoginFailure. Only auth/dependencies.py and the
route layer turn the failure values into HTTP errors.

Layer rule: no imports from api/ or org/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

SUPER_ROLE = "Admin"


class Module(str, Enum):
    """Protected resource groups. Grants are stored per (role, module)."""

    dashboard = "dashboard"
    users = "users"
    roles = "roles"
    enterprises = "enterprises"
    employees = "employees"
    products = "products"


class Action(str, Enum):
    """The four grantable operations. Each maps to one flag on a grant row."""

    read = "read"
    create = "create"
    update = "update"
    delete = "delete"


class UserStatus(str, Enum):
    active = "active"
    inactive = "inactive"
    locked = "locked"


@dataclass(frozen=True)
class Identity:
    """The authenticated actor for one request.

    Built by UserStore from the users row joined with roles and enterprises.
    Deliberately has no password field: an Identity is what leaves the auth
    core, so the digest cannot leak through it.

    enterprise_id is None for unaffiliated accounts (typically admins).
    """

    id: int
    username: str
    email: str
    status: str
    role_id: int | None = None
    role_name: str | None = None
    enterprise_id: int | None = None
    enterprise_name: str | None = None
    last_login: str | None = None
    created_at: str | None = None

    @property
    def is_super(self) -> bool:
        return self.role_name == SUPER_ROLE


@dataclass
class User:
    """Persistence record for an account, including the bcrypt digest.

    Only UserStore and auth/login.py handle this type. to_identity() is the
    single place the digest is dropped.
    """

    username: str
    email: str
    hashed_password: str
    status: str = UserStatus.active.value
    role_id: int | None = None
    enterprise_id: int | None = None
    id: int | None = None
    role_name: str | None = None
    enterprise_name: str | None = None
    last_login: str | None = None
    created_at: str | None = None

    def to_identity(self) -> Identity:
        return Identity(
            id=self.id,
            username=self.username,
            email=self.email,
            status=self.status,
            role_id=self.role_id,
            role_name=self.role_name,
            enterprise_id=self.enterprise_id,
            enterprise_name=self.enterprise_name,
            last_login=self.last_login,
            created_at=self.created_at,
        )


@dataclass(frozen=True)
class PermissionGrant:
    """A role's permitted actions on one module.

    A grant with every flag False means "no access" and is treated exactly
    like a missing row.
    """

    module: str
    can_read: bool = False
    can_create: bool = False
    can_update: bool = False
    can_delete: bool = False
    role_id: int | None = None

    def allows(self, action: Action) -> bool:
        if action is Action.read:
            return self.can_read
        if action is Action.create:
            return self.can_create
        if action is Action.update:
            return self.can_update
        if action is Action.delete:
            return self.can_delete
        raise ValueError(f"unhandled action {action!r}")

    @property
    def is_empty(self) -> bool:
        return not (self.can_read or self.can_create or self.can_update or self.can_delete)

    def flags(self) -> dict[str, bool]:
        return {
            "can_read": self.can_read,
            "can_create": self.can_create,
            "can_update": self.can_update,
            "can_delete": self.can_delete,
        }


@dataclass
class Role:
    name: str
    description: str | None = None
    id: int | None = None
    created_at: str | None = None
    permissions: list[PermissionGrant] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Session token claims
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TokenClaims:
    """Verified claims of a session token.

    role_id and enterprise_id are denormalized copies taken at login. They are
    informational only; authorization always re-reads the user row.
    """

    subject: int
    role_id: int | None
    enterprise_id: int | None
    issued_at: int
    expires_at: int
    username: str = ""


# ---------------------------------------------------------------------------
# Pipeline outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Unauthenticated:
    reason: str


@dataclass(frozen=True)
class Allowed:
    pass


@dataclass(frozen=True)
class Denied:
    reason: str


@dataclass(frozen=True)
class LoginSuccess:
    token: str
    identity: Identity
    expires_in: int


@dataclass(frozen=True)
class LoginFailure:
    """Why a login attempt was refused.

    code is machine-readable ("bad_request", "bad_credentials",
    "account_inactive"); status is the HTTP status the route should use.
    """

    code: str
    message: str
    status: int = 401
