"""
api/routes/v1/auth.py -- Registration and login REST endpoints.

Routes:
  POST /api/v1/auth/signup  -- create an account; 409 on duplicate username/email
  POST /api/v1/auth/login   -- password login; returns a bearer token

Both are public. Login failures (user not found, invalid password, banned,
admin approval pending) all answer 401 with a distinct error code.

Security:
  POST /login and /signup are rate-limited per IP (LOGIN_RATE_LIMIT).
  Cache-Control: no-store on login responses so tokens are never cached.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_rate_limit
from api.models import LoginRequest, LoginResponse, MessageResponse, RoleEnum, SignupRequest
from auth.dependencies import get_account_service
from auth.models import Role
from auth.service import AccountService

# Auth policy:
# - POST /api/v1/auth/signup: public
# - POST /api/v1/auth/login:  public
router = APIRouter()


@limiter.limit(login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/signup", response_model=MessageResponse)
def signup(
    request: Request,
    body: SignupRequest,
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    """Register a new account.

    Admin signups are stored pending owner approval and cannot log in until
    approved.
    """
    role = Role(body.role.value) if body.role is not None else None
    account = service.register(
        body.username,
        body.email,
        body.password,
        role=role,
        first_name=body.first_name,
        last_name=body.last_name,
    )
    if not account.admin_approved and account.role == Role.ADMIN:
        return MessageResponse(message="Admin account registered; awaiting owner approval.")
    return MessageResponse(message="User registered successfully!")


@limiter.limit(login_rate_limit)
@router.post("/auth/login", response_model=LoginResponse)
def login(
    request: Request,
    body: LoginRequest,
    service: AccountService = Depends(get_account_service),
) -> JSONResponse:
    """Authenticate with username and password; return a bearer token.

    Send the token on later requests as: Authorization: Bearer <access_token>
    """
    account, token = service.login(body.username, body.password)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=request.app.state.token_service.expire_seconds,
            username=account.username,
            role=RoleEnum(account.role.value),
        ).model_dump(mode="json"),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp
