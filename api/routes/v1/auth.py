"""
api/routes/v1/auth.py -- Login, logout, password reset and profile endpoints.

Routes:
  POST /api/v1/auth/login            -- password login; returns Bearer token + user
  POST /api/v1/auth/logout           -- requires auth; tokens are not revoked server-side
  POST /api/v1/auth/reset-password   -- re-hash and overwrite the password for an email
  GET  /api/v1/auth/profile          -- current user (requires auth)

Security:
  POST /login and POST /reset-password are rate-limited per IP (LOGIN_RATE_LIMIT).
  auth.login.login() provides timing equalization -- use it, never inline
  get_by_username() + verify_password().
  Cache-Control: no-store on login responses so tokens are not cached by proxies.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_rate_limit
from api.models import IdentityResponse, LoginRequest, LoginResponse, MessageResponse, PasswordResetRequest
from auth.dependencies import get_current_identity
from auth.login import login as login_flow
from auth.login import reset_password as reset_password_flow
from auth.models import Identity, LoginFailure
from auth.store import UserStore
from auth.tokens import TokenService

# Auth policy:
# - POST /api/v1/auth/login:           public -- login endpoint must be unauthenticated
# - POST /api/v1/auth/reset-password:  public
# - POST /api/v1/auth/logout:          requires auth (get_current_identity)
# - GET  /api/v1/auth/profile:         requires auth (get_current_identity)
router = APIRouter()


def _failure_response(failure: LoginFailure) -> JSONResponse:
    resp = JSONResponse(
        status_code=failure.status,
        content={"error": {"code": failure.code, "message": failure.message, "detail": None}},
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@limiter.limit(login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password and return a session token.

    Unknown username and wrong password both answer "Invalid credentials".
    "Account is locked or inactive" is only reported after the password
    verified.
    """
    user_store: UserStore = request.app.state.user_store
    tokens: TokenService = request.app.state.tokens
    outcome = login_flow(user_store, tokens, body.username, body.password)
    if isinstance(outcome, LoginFailure):
        return _failure_response(outcome)

    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=outcome.token,
            expires_in=outcome.expires_in,
            user=IdentityResponse.from_identity(outcome.identity),
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout", response_model=MessageResponse)
def logout(identity: Identity = Depends(get_current_identity)) -> MessageResponse:
    """Acknowledge logout. The client discards its token; there is no server-side denylist."""
    return MessageResponse(message="Logout successful")


@limiter.limit(login_rate_limit)
@router.post("/auth/reset-password", response_model=MessageResponse)
def reset_password(request: Request, body: PasswordResetRequest) -> MessageResponse:
    """Overwrite the password of the account registered under body.email."""
    user_store: UserStore = request.app.state.user_store
    failure = reset_password_flow(
        user_store,
        body.email,
        body.new_password,
        rounds=request.app.state.settings.bcrypt_rounds,
    )
    if failure is not None:
        raise HTTPException(
            status_code=failure.status,
            detail={"code": failure.code, "message": failure.message},
        )
    return MessageResponse(message="Password reset successful")


@router.get("/auth/profile", response_model=IdentityResponse)
def profile(identity: Identity = Depends(get_current_identity)) -> IdentityResponse:
    """Return the current user as resolved for this request."""
    return IdentityResponse.from_identity(identity)
