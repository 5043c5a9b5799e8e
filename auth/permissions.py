"""
auth/permissions.py -- Module/action permission evaluation.

authorize() is the single place the super-role rule lives: an identity whose
role is "Admin" is allowed everything without reading the permission table.
Every other identity needs a grant row for (role, module) with the flag for
the requested action set.

The evaluator answers "may this role perform this action on this module".
It does not decide which rows a caller may see -- tenant scoping is applied
by the org routes using Identity.enterprise_id.

Layer rule: no imports from api/ or org/.
"""

from __future__ import annotations

import logging
from typing import Protocol

from auth.models import Action, Allowed, Denied, Identity, Module, PermissionGrant

logger = logging.getLogger("orgadmin.auth")

AUTH_REQUIRED = "Authentication required"
NO_MODULE_ACCESS = "No permissions for this module"


class GrantLookup(Protocol):
    def get_grant(self, role_id: int, module: str) -> PermissionGrant | None: ...

    def list_grants(self, role_id: int) -> list[PermissionGrant]: ...


class PermissionEvaluator:
    """Decide allow/deny for (identity, module, action).

    Usage:
        evaluator = PermissionEvaluator(user_store)
        outcome = evaluator.authorize(identity, Module.products, Action.delete)
        if isinstance(outcome, Denied): ...
    """

    def __init__(self, grants: GrantLookup) -> None:
        self._grants = grants

    def authorize(self, identity: Identity | None, module: Module | str, action: Action | str) -> Allowed | Denied:
        if identity is None:
            return Denied(AUTH_REQUIRED)

        if identity.is_super:
            return Allowed()

        module_name = module.value if isinstance(module, Module) else str(module)
        try:
            wanted = Action(action)
        except ValueError:
            return Denied(f"Unsupported action: {action}")

        if identity.role_id is None:
            return Denied(NO_MODULE_ACCESS)
        grant = self._grants.get_grant(identity.role_id, module_name)
        if grant is None or grant.is_empty:
            return Denied(NO_MODULE_ACCESS)

        if not grant.allows(wanted):
            logger.info(
                "Denied %s on %s for user id=%s (role id=%s)",
                wanted.value,
                module_name,
                identity.id,
                identity.role_id,
            )
            return Denied(f"No {wanted.value} permission for {module_name}")
        return Allowed()

    def effective_permissions(self, identity: Identity) -> dict[str, dict[str, bool]]:
        """Return {module: {can_read, can_create, can_update, can_delete}} for the identity.

        Admin gets every module with every flag. Other roles get only their
        non-empty grants; modules without access are simply absent.
        """
        if identity.is_super:
            full = {"can_read": True, "can_create": True, "can_update": True, "can_delete": True}
            return {m.value: dict(full) for m in Module}
        if identity.role_id is None:
            return {}
        return {g.module: g.flags() for g in self._grants.list_grants(identity.role_id) if not g.is_empty}
