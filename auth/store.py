"""
auth/store.py -- SQLAlchemy Core persistence layer for users, roles and grants.

Pattern: Repository + Data Mapper. UserStore is the repository;
_row_to_user / _row_to_role / _row_to_grant are the mappers. Route,
resolver and evaluator code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  get_active_identity() filters on status = 'active' in SQL. An inactive or
  locked account therefore looks exactly like a missing one to the resolver,
  which is what keeps the mid-session 401 message generic.

  Grant replacement (update_role with grants=) deletes and reinserts a
  role's rows inside one engine.begin() transaction, so concurrent readers see
  either the old set or the new set, never an empty window.

Tables are defined once in core/schema.py; this module owns the queries for
users, roles and permissions.

Layer rule: no imports from api/ or org/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.engine import Connection, Engine

from auth.models import SUPER_ROLE, Identity, Module, PermissionGrant, Role, User, UserStatus
from core.schema import enterprises, make_engine, permissions, roles, users

logger = logging.getLogger("orgadmin.store")

# Columns update_user() accepts. Anything else is a programming error.
_USER_MUTABLE_FIELDS = frozenset({"username", "email", "role_id", "enterprise_id", "status", "hashed_password"})

_DEFAULT_ROLES: tuple[tuple[str, str], ...] = (
    (SUPER_ROLE, "Full access to every module"),
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _user_select():
    """users LEFT JOIN roles LEFT JOIN enterprises, with the joined names labelled."""
    joined = users.outerjoin(roles, users.c.role_id == roles.c.id).outerjoin(
        enterprises, users.c.enterprise_id == enterprises.c.id
    )
    return select(
        users,
        roles.c.name.label("role_name"),
        enterprises.c.name.label("enterprise_name"),
    ).select_from(joined)


def _grant_values(role_id: int, grant: PermissionGrant) -> dict:
    return {
        "role_id": role_id,
        "module": Module(grant.module).value,
        "can_read": 1 if grant.can_read else 0,
        "can_create": 1 if grant.can_create else 0,
        "can_update": 1 if grant.can_update else 0,
        "can_delete": 1 if grant.can_delete else 0,
    }


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User, Role and PermissionGrant entities.

    Usage:
        store = UserStore("sqlite:///orgadmin.db")
        admin_role_id = store.ensure_default_roles()
        store.create_user(User(username="admin", email="a@x.io", hashed_password=..., role_id=admin_role_id))
        identity = store.get_active_identity(1)
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def has_users(self) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(users)).scalar()
        return (result or 0) > 0

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the username or email already
        exists. Routes check username_taken()/email_taken() first so the
        caller gets a precise 409; the constraint is the backstop for races.
        """
        with self.engine.begin() as conn:
            result = conn.execute(
                users.insert().values(
                    username=user.username,
                    email=user.email,
                    hashed_password=user.hashed_password,
                    status=UserStatus(user.status).value,
                    role_id=user.role_id,
                    enterprise_id=user.enterprise_id,
                    created_at=_now_iso(),
                )
            )
            user_id = result.inserted_primary_key[0]
        logger.info("Created user id=%s username=%s", user_id, user.username)
        return user_id

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key regardless of status."""
        with self.engine.connect() as conn:
            row = conn.execute(_user_select().where(users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive), regardless of status.

        The login flow needs inactive and locked rows too so it can report the
        account state once the password has verified.
        """
        with self.engine.connect() as conn:
            row = conn.execute(_user_select().where(users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_active_identity(self, user_id: int) -> Identity | None:
        """Return the Identity for user_id if, and only if, the account is active.

        Single read: users joined with role name and enterprise name, filtered
        to status = 'active'. Called by the resolver on every request.
        """
        with self.engine.connect() as conn:
            row = conn.execute(
                _user_select().where((users.c.id == user_id) & (users.c.status == UserStatus.active.value))
            ).fetchone()
        return _row_to_user(row).to_identity() if row is not None else None

    def list_users(self, enterprise_id: int | None = None) -> list[Identity]:
        """Return users newest first, optionally limited to one enterprise."""
        stmt = _user_select().order_by(users.c.created_at.desc(), users.c.id.desc())
        if enterprise_id is not None:
            stmt = stmt.where(users.c.enterprise_id == enterprise_id)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_user(r).to_identity() for r in rows]

    def username_taken(self, username: str, exclude_id: int | None = None) -> bool:
        return self._exists(users, users.c.username == username, exclude_id)

    def email_taken(self, email: str, exclude_id: int | None = None) -> bool:
        return self._exists(users, users.c.email == email, exclude_id)

    def update_user(self, user_id: int, **fields) -> bool:
        """Update mutable fields on an existing user.

        Accepted fields: username, email, role_id, enterprise_id, status,
        hashed_password. Unknown keys raise ValueError -- column names must
        never come from request data.

        Returns True if a row was updated, False if user_id was not found.
        """
        unknown = set(fields) - _USER_MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {unknown!r}")
        if "status" in fields:
            fields["status"] = UserStatus(fields["status"]).value
        if not fields:
            return self.get_by_id(user_id) is not None
        with self.engine.begin() as conn:
            result = conn.execute(users.update().where(users.c.id == user_id).values(**fields))
        return result.rowcount > 0

    def delete_user(self, user_id: int) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(users.delete().where(users.c.id == user_id))
        return result.rowcount > 0

    def update_last_login(self, user_id: int) -> None:
        """Stamp the current UTC timestamp as last_login. Called by the login flow only."""
        with self.engine.begin() as conn:
            conn.execute(users.update().where(users.c.id == user_id).values(last_login=_now_iso()))

    def set_password_by_email(self, email: str, hashed_password: str) -> bool:
        """Overwrite the digest of the account with this email. False if no such account."""
        with self.engine.begin() as conn:
            result = conn.execute(users.update().where(users.c.email == email).values(hashed_password=hashed_password))
        return result.rowcount > 0

    def set_password_by_username(self, username: str, hashed_password: str) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(
                users.update().where(users.c.username == username).values(hashed_password=hashed_password)
            )
        return result.rowcount > 0

    def count_users_with_role(self, role_id: int) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(users).where(users.c.role_id == role_id)).scalar()
        return result or 0

    def count_users_in_enterprise(self, enterprise_id: int) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                select(func.count()).select_from(users).where(users.c.enterprise_id == enterprise_id)
            ).scalar()
        return result or 0

    # ------------------------------------------------------------------
    # Role queries
    # ------------------------------------------------------------------

    def ensure_default_roles(self) -> int:
        """Create the built-in roles if missing and return the Admin role id.

        Idempotent -- safe to call on every startup.
        """
        for name, description in _DEFAULT_ROLES:
            if self.get_role_by_name(name) is None:
                self.create_role(Role(name=name, description=description))
                logger.info("Seeded built-in role %s", name)
        admin = self.get_role_by_name(SUPER_ROLE)
        return admin.id

    def create_role(self, role: Role) -> int:
        """Insert a role together with its grants in one transaction.

        Raises sqlalchemy.exc.IntegrityError on a duplicate name or a repeated
        module in role.permissions.
        """
        with self.engine.begin() as conn:
            result = conn.execute(
                roles.insert().values(name=role.name, description=role.description, created_at=_now_iso())
            )
            role_id = result.inserted_primary_key[0]
            _insert_grants(conn, role_id, role.permissions)
        logger.info("Created role id=%s name=%s grants=%d", role_id, role.name, len(role.permissions))
        return role_id

    def get_role(self, role_id: int) -> Role | None:
        """Return the role with its effective grants (all-false rows dropped)."""
        with self.engine.connect() as conn:
            row = conn.execute(roles.select().where(roles.c.id == role_id)).fetchone()
        if row is None:
            return None
        role = _row_to_role(row)
        role.permissions = [g for g in self.list_grants(role_id) if not g.is_empty]
        return role

    def get_role_by_name(self, name: str) -> Role | None:
        with self.engine.connect() as conn:
            row = conn.execute(roles.select().where(roles.c.name == name)).fetchone()
        return _row_to_role(row) if row is not None else None

    def list_roles(self) -> list[Role]:
        """Return all roles newest first, without grants."""
        with self.engine.connect() as conn:
            rows = conn.execute(roles.select().order_by(roles.c.created_at.desc(), roles.c.id.desc())).fetchall()
        return [_row_to_role(r) for r in rows]

    def role_name_taken(self, name: str, exclude_id: int | None = None) -> bool:
        return self._exists(roles, roles.c.name == name, exclude_id)

    def update_role(
        self,
        role_id: int,
        name: str | None = None,
        description: str | None = None,
        grants: Iterable[PermissionGrant] | None = None,
    ) -> bool:
        """Update name/description and, when grants is given, replace the grant set.

        Everything happens in one transaction. grants=None leaves the existing
        grants alone; grants=[] removes them all.

        Returns False if the role does not exist.
        """
        values: dict = {}
        if name is not None:
            values["name"] = name
        if description is not None:
            values["description"] = description
        with self.engine.begin() as conn:
            exists = conn.execute(select(roles.c.id).where(roles.c.id == role_id)).fetchone()
            if exists is None:
                return False
            if values:
                conn.execute(roles.update().where(roles.c.id == role_id).values(**values))
            if grants is not None:
                grants = list(grants)
                conn.execute(permissions.delete().where(permissions.c.role_id == role_id))
                _insert_grants(conn, role_id, grants)
        logger.info("Updated role id=%s", role_id)
        return True

    def delete_role(self, role_id: int) -> bool:
        """Delete a role and its grants. Callers must check count_users_with_role() first."""
        with self.engine.begin() as conn:
            conn.execute(permissions.delete().where(permissions.c.role_id == role_id))
            result = conn.execute(roles.delete().where(roles.c.id == role_id))
        if result.rowcount > 0:
            logger.info("Deleted role id=%s", role_id)
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Grant queries
    # ------------------------------------------------------------------

    def get_grant(self, role_id: int, module: str) -> PermissionGrant | None:
        """Return the grant row for (role_id, module), or None. One indexed read."""
        with self.engine.connect() as conn:
            row = conn.execute(
                permissions.select().where((permissions.c.role_id == role_id) & (permissions.c.module == module))
            ).fetchone()
        return _row_to_grant(row) if row is not None else None

    def list_grants(self, role_id: int) -> list[PermissionGrant]:
        """Return every stored grant row for the role, including all-false rows."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                permissions.select().where(permissions.c.role_id == role_id).order_by(permissions.c.id)
            ).fetchall()
        return [_row_to_grant(r) for r in rows]

    # ------------------------------------------------------------------

    def _exists(self, table, condition, exclude_id: int | None) -> bool:
        stmt = select(table.c.id).where(condition)
        if exclude_id is not None:
            stmt = stmt.where(table.c.id != exclude_id)
        with self.engine.connect() as conn:
            return conn.execute(stmt.limit(1)).fetchone() is not None

    def close(self) -> None:
        self.engine.dispose()


def _insert_grants(conn: Connection, role_id: int, grants: Iterable[PermissionGrant]) -> None:
    rows = [_grant_values(role_id, g) for g in grants]
    if rows:
        conn.execute(permissions.insert(), rows)


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        hashed_password=row.hashed_password,
        status=row.status,
        role_id=row.role_id,
        role_name=row.role_name,
        enterprise_id=row.enterprise_id,
        enterprise_name=row.enterprise_name,
        last_login=row.last_login,
        created_at=row.created_at,
    )


def _row_to_role(row) -> Role:
    return Role(
        id=row.id,
        name=row.name,
        description=row.description,
        created_at=row.created_at,
    )


def _row_to_grant(row) -> PermissionGrant:
    return PermissionGrant(
        role_id=row.role_id,
        module=row.module,
        can_read=bool(row.can_read),
        can_create=bool(row.can_create),
        can_update=bool(row.can_update),
        can_delete=bool(row.can_delete),
    )
