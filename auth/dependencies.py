"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The gate middleware in api/main.py runs auth.gate.AuthenticationGate once per
request and stores the result on request.state.identity (an
AuthenticatedIdentity, or None for anonymous). These helpers hand that value
to route handlers as an explicit parameter, so services receive the caller's
identity as an argument rather than reading ambient state.

get_identity() is the soft variant (returns None for anonymous).
require_identity() wraps it and raises AuthenticationError (401) if anonymous.

Admin routes use get_identity(): AdminWorkflow itself decides, and answers
403 for anonymous callers as well as for under-privileged ones.

Layer rule: no imports from api/ or forum/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.admin import AdminWorkflow
from auth.errors import AuthenticationError
from auth.models import AuthenticatedIdentity
from auth.service import AccountService


def get_identity(request: Request) -> AuthenticatedIdentity | None:
    """Return the identity the gate established for this request, or None."""
    return getattr(request.state, "identity", None)


def require_identity(request: Request) -> AuthenticatedIdentity:
    """Require authentication. Raises AuthenticationError (401) for anonymous requests.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(identity: AuthenticatedIdentity = Depends(require_identity)): ...
    """
    identity = get_identity(request)
    if identity is None:
        raise AuthenticationError()
    return identity


def get_account_service(request: Request) -> AccountService:
    return request.app.state.account_service


def get_admin_workflow(request: Request) -> AdminWorkflow:
    return request.app.state.admin_workflow
