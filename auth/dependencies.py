"""
auth/dependencies.py -- FastAPI Depends() helpers: the two-stage request gate.

Every protected route declares the module and action it needs:

    @router.delete("/products/{product_id}")
    def delete_product(identity: Identity = Depends(require_permission(Module.products, Action.delete))): ...

The dependency then runs:
  Stage 1 -- authenticate: IdentityResolver.resolve() on the Authorization
             header. Unauthenticated -> HTTP 401, handler never runs.
  Stage 2 -- authorize: PermissionEvaluator.authorize() for the declared
             (module, action). Denied -> HTTP 403, handler never runs.
Only when both pass does the handler run, receiving the resolved Identity.

The resolver and evaluator live on app.state (built once in the lifespan).
Nothing is remembered between requests.

Layer rule: no imports from org/. auth/dependencies.py may import from
fastapi because it is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from fastapi import HTTPException, Request

from auth.models import Action, Denied, Identity, Module, Unauthenticated
from auth.permissions import PermissionEvaluator
from auth.resolver import IdentityResolver

logger = logging.getLogger("orgadmin.auth")


def get_current_identity(request: Request) -> Identity:
    """Stage 1 only. Raises HTTP 401 if the request is not authenticated.

    Use directly for routes any signed-in user may call (profile, logout).
    """
    resolver: IdentityResolver = request.app.state.resolver
    outcome = resolver.resolve(request.headers.get("Authorization"))
    if isinstance(outcome, Unauthenticated):
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": outcome.reason},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return outcome


def require_permission(module: Module | str, action: Action | str) -> Callable[[Request], Identity]:
    """Build the stage 1 + stage 2 dependency for a statically declared (module, action).

    module and action are validated here, at route-definition time, so a typo
    in a route declaration fails on import rather than denying every request.
    """
    module = Module(module)
    action = Action(action)

    def dependency(request: Request) -> Identity:
        identity = get_current_identity(request)
        evaluator: PermissionEvaluator = request.app.state.evaluator
        outcome = evaluator.authorize(identity, module, action)
        if isinstance(outcome, Denied):
            raise HTTPException(
                status_code=403,
                detail={"code": "forbidden", "message": outcome.reason},
            )
        return identity

    dependency.__name__ = f"require_{action.value}_{module.value}"
    return dependency


def can_read(module: Module | str) -> Callable[[Request], Identity]:
    return require_permission(module, Action.read)


def can_create(module: Module | str) -> Callable[[Request], Identity]:
    return require_permission(module, Action.create)


def can_update(module: Module | str) -> Callable[[Request], Identity]:
    return require_permission(module, Action.update)


def can_delete(module: Module | str) -> Callable[[Request], Identity]:
    return require_permission(module, Action.delete)
