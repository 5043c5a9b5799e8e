"""
api/routes/v1/dashboard.py -- The caller's effective permission map.

Drives which navigation entries and buttons a client shows. Read-only.
"""

from fastapi import APIRouter, Depends, Request

from api.models import EffectivePermissionsResponse, IdentityResponse
from auth.dependencies import can_read
from auth.models import Identity, Module
from auth.permissions import PermissionEvaluator

# Auth policy:
# - GET /api/v1/dashboard/permissions: dashboard:read
router = APIRouter()


@router.get("/dashboard/permissions", response_model=EffectivePermissionsResponse)
def get_permissions(
    request: Request,
    identity: Identity = Depends(can_read(Module.dashboard)),
) -> EffectivePermissionsResponse:
    """Return {module: {can_read, can_create, can_update, can_delete}} for the caller.

    Admin gets every module with every flag. For other roles, modules without
    any granted action are absent.
    """
    evaluator: PermissionEvaluator = request.app.state.evaluator
    return EffectivePermissionsResponse(
        user=IdentityResponse.from_identity(identity),
        permissions=evaluator.effective_permissions(identity),
    )
