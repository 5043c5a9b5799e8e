"""
API request and response models for OrgAdmin REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
org/models.py, which own the internal domain representation. Route handlers
map between the two.

Separation of concerns: auth/ and org/ models = domain truth; api/ models = API contract.

Login and password-reset bodies accept missing fields on purpose: the login
flow answers those with its own 400 ("Username and password are required")
rather than a generic 422, and never touches the store for them.

Password fields are never whitespace-stripped: the CLI stores what was typed,
so the API must compare exactly that. They are capped at 72 UTF-8 bytes, the
most bcrypt accepts.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import Identity, Module, PermissionGrant, Role, UserStatus
from auth.passwords import MAX_PASSWORD_BYTES
from org.models import Employee, Enterprise, Product

# Shape check only; deliverability is not our concern.
_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


def _strip(value):
    return value.strip() if isinstance(value, str) else value


def _check_password_bytes(value: Optional[str]) -> Optional[str]:
    # bcrypt refuses input over 72 bytes; multibyte characters count per byte.
    if value is not None and len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded")
    return value


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    username: Optional[str] = Field(default=None, max_length=100)
    password: Optional[str] = Field(default=None, max_length=72)

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, value):
        return _strip(value)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: Optional[str]) -> Optional[str]:
        return _check_password_bytes(value)


class PasswordResetRequest(BaseModel):
    """Request body for POST /api/v1/auth/reset-password.

    Passwords are taken exactly as sent; only the email is stripped.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = Field(default=None, max_length=255)
    new_password: Optional[str] = Field(default=None, max_length=72, alias="newPassword")

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, value):
        return _strip(value)

    @field_validator("new_password")
    @classmethod
    def password_fits_bcrypt(cls, value: Optional[str]) -> Optional[str]:
        return _check_password_bytes(value)


class IdentityResponse(BaseModel):
    """Public view of an account. Never includes the password digest."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    email: str
    status: str
    role_id: Optional[int] = None
    role_name: Optional[str] = None
    enterprise_id: Optional[int] = None
    enterprise_name: Optional[str] = None
    last_login: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_identity(cls, identity: Identity) -> "IdentityResponse":
        return cls(
            id=identity.id,
            username=identity.username,
            email=identity.email,
            status=identity.status,
            role_id=identity.role_id,
            role_name=identity.role_name,
            enterprise_id=identity.enterprise_id,
            enterprise_name=identity.enterprise_name,
            last_login=identity.last_login,
            created_at=identity.created_at,
        )


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"  # noqa: S105 -- OAuth token type, not a password
    expires_in: int
    user: IdentityResponse


# ---------------------------------------------------------------------------
# Roles and permissions
# ---------------------------------------------------------------------------


class PermissionIn(BaseModel):
    """One grant in a role create/update body."""

    module: Module
    can_read: bool = False
    can_create: bool = False
    can_update: bool = False
    can_delete: bool = False

    def to_grant(self) -> PermissionGrant:
        return PermissionGrant(
            module=self.module.value,
            can_read=self.can_read,
            can_create=self.can_create,
            can_update=self.can_update,
            can_delete=self.can_delete,
        )


class PermissionOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    module: str
    can_read: bool
    can_create: bool
    can_update: bool
    can_delete: bool

    @classmethod
    def from_grant(cls, grant: PermissionGrant) -> "PermissionOut":
        return cls(module=grant.module, **grant.flags())


class EffectivePermissionsResponse(BaseModel):
    """Response for GET /api/v1/dashboard/permissions."""

    model_config = ConfigDict(frozen=True)

    user: IdentityResponse
    permissions: dict[str, dict[str, bool]]


class RoleCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    permissions: list[PermissionIn] = Field(default_factory=list)


class RoleUpdate(BaseModel):
    """PUT /roles/{id}. permissions=None keeps the current grants."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    permissions: Optional[list[PermissionIn]] = None


class RoleResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[str] = None
    permissions: list[PermissionOut] = Field(default_factory=list)

    @classmethod
    def from_role(cls, role: Role) -> "RoleResponse":
        return cls(
            id=role.id,
            name=role.name,
            description=role.description,
            created_at=role.created_at,
            permissions=[PermissionOut.from_grant(g) for g in role.permissions],
        )


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(min_length=1, max_length=100)
    email: str = Field(max_length=255, pattern=_EMAIL_PATTERN)
    password: str = Field(min_length=8, max_length=72)
    role_id: Optional[int] = Field(default=None, alias="roleId")
    enterprise_id: Optional[int] = Field(default=None, alias="enterpriseId")

    @field_validator("username", "email", mode="before")
    @classmethod
    def strip_names(cls, value):
        return _strip(value)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


class UserUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    username: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, max_length=255, pattern=_EMAIL_PATTERN)
    role_id: Optional[int] = Field(default=None, alias="roleId")
    enterprise_id: Optional[int] = Field(default=None, alias="enterpriseId")
    status: Optional[UserStatus] = None


class UserStatusUpdate(BaseModel):
    status: UserStatus


# ---------------------------------------------------------------------------
# Enterprises, employees, products
# ---------------------------------------------------------------------------


class EnterpriseCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    name: str = Field(min_length=1, max_length=255)
    location: Optional[str] = Field(default=None, max_length=255)
    contact_info: dict = Field(default_factory=dict, alias="contactInfo")


class EnterpriseUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    location: Optional[str] = Field(default=None, max_length=255)
    contact_info: Optional[dict] = Field(default=None, alias="contactInfo")
    status: Optional[str] = Field(default=None, pattern="^(active|inactive)$")


class EnterpriseResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    location: Optional[str]
    contact_info: dict
    status: str
    created_at: str
    user_count: int
    employee_count: int
    product_count: int

    @classmethod
    def from_enterprise(cls, e: Enterprise) -> "EnterpriseResponse":
        return cls(
            id=e.id,
            name=e.name,
            location=e.location,
            contact_info=e.contact_info,
            status=e.status,
            created_at=e.created_at,
            user_count=e.user_count,
            employee_count=e.employee_count,
            product_count=e.product_count,
        )


class EmployeeCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    name: str = Field(min_length=1, max_length=255)
    department: Optional[str] = Field(default=None, max_length=100)
    role: Optional[str] = Field(default=None, max_length=100)
    salary: Optional[float] = Field(default=None, ge=0)
    enterprise_id: Optional[int] = Field(default=None, alias="enterpriseId")


class EmployeeUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    department: Optional[str] = Field(default=None, max_length=100)
    role: Optional[str] = Field(default=None, max_length=100)
    salary: Optional[float] = Field(default=None, ge=0)
    status: Optional[str] = Field(default=None, pattern="^(active|inactive)$")
    enterprise_id: Optional[int] = Field(default=None, alias="enterpriseId")


class EmployeeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    department: Optional[str]
    role: Optional[str]
    salary: Optional[float]
    status: str
    enterprise_id: int
    enterprise_name: Optional[str]
    created_at: str

    @classmethod
    def from_employee(cls, e: Employee) -> "EmployeeResponse":
        return cls(
            id=e.id,
            name=e.name,
            department=e.department,
            role=e.role,
            salary=e.salary,
            status=e.status,
            enterprise_id=e.enterprise_id,
            enterprise_name=e.enterprise_name,
            created_at=e.created_at,
        )


class ProductCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    name: str = Field(min_length=1, max_length=255)
    sku: Optional[str] = Field(default=None, max_length=100)
    price: Optional[float] = Field(default=None, ge=0)
    category: Optional[str] = Field(default=None, max_length=100)
    enterprise_id: Optional[int] = Field(default=None, alias="enterpriseId")
    employee_id: Optional[int] = Field(default=None, alias="employeeId")


class ProductUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    sku: Optional[str] = Field(default=None, max_length=100)
    price: Optional[float] = Field(default=None, ge=0)
    category: Optional[str] = Field(default=None, max_length=100)
    status: Optional[str] = Field(default=None, pattern="^(active|inactive)$")
    enterprise_id: Optional[int] = Field(default=None, alias="enterpriseId")
    employee_id: Optional[int] = Field(default=None, alias="employeeId")


class ProductResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    sku: Optional[str]
    price: Optional[float]
    category: Optional[str]
    status: str
    enterprise_id: int
    enterprise_name: Optional[str]
    employee_id: Optional[int]
    employee_name: Optional[str]
    created_at: str

    @classmethod
    def from_product(cls, p: Product) -> "ProductResponse":
        return cls(
            id=p.id,
            name=p.name,
            sku=p.sku,
            price=p.price,
            category=p.category,
            status=p.status,
            enterprise_id=p.enterprise_id,
            enterprise_name=p.enterprise_name,
            employee_id=p.employee_id,
            employee_name=p.employee_name,
            created_at=p.created_at,
        )
