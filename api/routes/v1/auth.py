"""
api/routes/v1/auth.py -- Registration, login state and role endpoints.

Routes:
  POST /api/v1/auth/register    -- create account; 201 {user_id}
  POST /api/v1/auth/login       -- verify credentials; sets session cookie,
                                   returns LoginView + X-Capability-Token header
  POST /api/v1/auth/logout      -- clear login state in both session stores
  GET  /api/v1/auth/current     -- LoginView of the re-resolved current user
  GET  /api/v1/auth/is-admin    -- bool for the current user
  GET  /api/v1/auth/capability  -- principal behind a capability token

Security:
  POST /login is rate-limited per IP (LOGIN_RATE_LIMIT).
  Cache-Control: no-store on login responses.
  Wrong password and unknown account return the same authentication_failed
  error -- AuthService guarantees this; do not add a distinguishing branch here.

Handlers are plain `def`: every one blocks on the user store or the session
stores, so FastAPI runs them in its thread pool.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_rate_limit
from api.models import CapabilityResponse, LoginRequest, LogoutResponse, RegisterRequest, RegisterResponse
from auth.dependencies import get_auth_service, get_capability_user, get_current_user, get_session_key
from auth.models import User
from auth.roles import is_admin
from auth.service import AuthService
from auth.tokens import CAPABILITY_HEADER, clear_session_cookie, set_session_cookie
from auth.views import LoginView, to_login_view

# Auth policy:
# - POST /api/v1/auth/register:    public
# - POST /api/v1/auth/login:       public, rate-limited
# - POST /api/v1/auth/logout:      session cookie required (not_logged_in otherwise)
# - GET  /api/v1/auth/current:     session cookie required (get_current_user)
# - GET  /api/v1/auth/is-admin:    session cookie required (get_current_user)
# - GET  /api/v1/auth/capability:  capability token required (get_capability_user)
router = APIRouter()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
def register(body: RegisterRequest, service: AuthService = Depends(get_auth_service)) -> RegisterResponse:
    """Create an account with the default role. Returns the new user id."""
    user_id = service.register(body.account, body.password, body.confirm_password)
    return RegisterResponse(user_id=user_id)


@limiter.limit(login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=LoginView)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Verify credentials and establish login state.

    The body carries only the desensitized LoginView. The primary session key
    goes into the httpOnly cookie; the capability token goes into the
    X-Capability-Token header.
    """
    service = get_auth_service(request)
    result = service.login(body.account, body.password)
    resp = JSONResponse(status_code=200, content=result.view.model_dump())
    set_session_cookie(resp, result.session.session_key)
    resp.headers[CAPABILITY_HEADER] = result.capability_token
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Session endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/logout", response_model=LogoutResponse)
def logout(request: Request) -> JSONResponse:
    """End the session. Raises not_logged_in when there is nothing to end."""
    success = get_auth_service(request).logout(get_session_key(request))
    resp = JSONResponse(content=LogoutResponse(success=success).model_dump())
    clear_session_cookie(resp)
    return resp


@router.get("/auth/current", response_model=LoginView)
def current(current_user: User = Depends(get_current_user)) -> LoginView:
    return to_login_view(current_user)


@router.get("/auth/is-admin", response_model=bool)
def check_admin(current_user: User = Depends(get_current_user)) -> bool:
    return is_admin(current_user)


@router.get("/auth/capability", response_model=CapabilityResponse)
def capability(user: User = Depends(get_capability_user)) -> CapabilityResponse:
    """Resolve the caller through the token session store rather than the cookie."""
    return CapabilityResponse(user_id=user.id, account=user.account, role=user.role, is_admin=is_admin(user))
