"""
api/tenancy.py -- Enterprise scoping for non-Admin callers.

Admin identities see every enterprise. Any other identity is confined to its
own enterprise_id: list handlers filter by it, create handlers force it, and
rows belonging to another enterprise are reported as 404 by the stores'
scoped lookups. A non-Admin account without an enterprise has no tenant and
is refused outright on tenant-scoped routes.
"""

from typing import Optional

from fastapi import HTTPException

from auth.models import Identity


def tenant_scope(identity: Identity) -> Optional[int]:
    """Return the enterprise_id the caller is confined to, or None when unrestricted."""
    if identity.is_super:
        return None
    if identity.enterprise_id is None:
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "No enterprise assigned to this account"},
        )
    return identity.enterprise_id


def target_enterprise(identity: Identity, requested: Optional[int]) -> Optional[int]:
    """Pick the enterprise a new or moved row belongs to.

    Non-Admin callers always get their own enterprise, whatever the body said.
    """
    scope = tenant_scope(identity)
    return requested if scope is None else scope


def check_enterprise_access(identity: Identity, enterprise_id: int) -> None:
    """Raise 404 when a scoped caller asks for an enterprise other than its own."""
    scope = tenant_scope(identity)
    if scope is not None and scope != enterprise_id:
        raise HTTPException(status_code=404, detail={"code": "not_found", "message": "Enterprise not found"})
