"""
api/routes/v1/admin.py -- Account administration REST endpoints.

Routes:
  GET  /api/v1/admin/users                              -- list accounts (admin or owner)
  POST /api/v1/admin/users/{id}/ban                     -- ban (admin or owner)
  POST /api/v1/admin/users/{id}/unban                   -- unban (admin or owner)
  GET  /api/v1/admin/admin-requests                     -- pending admins (admin or owner)
  POST /api/v1/admin/admin-requests/{id}/approve        -- approve admin (owner only)
  POST /api/v1/admin/admin-requests/{id}/revoke         -- revoke admin (owner only)

None of these require a token up front: AdminWorkflow answers 403 for
anonymous callers and for callers without the role alike. Unknown ids are 404.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from api.models import AccountResponse
from auth.admin import AdminWorkflow
from auth.dependencies import get_admin_workflow, get_identity
from auth.models import AuthenticatedIdentity

router = APIRouter()


@router.get("/admin/users", response_model=list[AccountResponse])
def list_users(
    identity: AuthenticatedIdentity | None = Depends(get_identity),
    admin: AdminWorkflow = Depends(get_admin_workflow),
) -> list[AccountResponse]:
    return [AccountResponse.from_account(a) for a in admin.list_users(identity)]


@router.post("/admin/users/{account_id}/ban", response_model=AccountResponse)
def ban_user(
    account_id: int,
    identity: AuthenticatedIdentity | None = Depends(get_identity),
    admin: AdminWorkflow = Depends(get_admin_workflow),
) -> AccountResponse:
    return AccountResponse.from_account(admin.ban(identity, account_id))


@router.post("/admin/users/{account_id}/unban", response_model=AccountResponse)
def unban_user(
    account_id: int,
    identity: AuthenticatedIdentity | None = Depends(get_identity),
    admin: AdminWorkflow = Depends(get_admin_workflow),
) -> AccountResponse:
    return AccountResponse.from_account(admin.unban(identity, account_id))


@router.get("/admin/admin-requests", response_model=list[AccountResponse])
def list_admin_requests(
    identity: AuthenticatedIdentity | None = Depends(get_identity),
    admin: AdminWorkflow = Depends(get_admin_workflow),
) -> list[AccountResponse]:
    return [AccountResponse.from_account(a) for a in admin.list_pending_admin_requests(identity)]


@router.post("/admin/admin-requests/{account_id}/approve", response_model=AccountResponse)
def approve_admin(
    account_id: int,
    identity: AuthenticatedIdentity | None = Depends(get_identity),
    admin: AdminWorkflow = Depends(get_admin_workflow),
) -> AccountResponse:
    return AccountResponse.from_account(admin.approve_admin(identity, account_id))


@router.post("/admin/admin-requests/{account_id}/revoke", response_model=AccountResponse)
def revoke_admin(
    account_id: int,
    identity: AuthenticatedIdentity | None = Depends(get_identity),
    admin: AdminWorkflow = Depends(get_admin_workflow),
) -> AccountResponse:
    return AccountResponse.from_account(admin.revoke_admin(identity, account_id))
