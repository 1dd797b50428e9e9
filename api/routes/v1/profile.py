"""
api/routes/v1/profile.py -- Self-service profile endpoints.

Routes:
  GET /api/v1/profile  -- the caller's own profile (requires auth)
  PUT /api/v1/profile  -- update budget fields / names / username (requires auth)

404 if the account disappeared after the gate loaded it; 400 if the requested
username belongs to someone else.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from api.models import ProfileResponse, ProfileUpdate
from auth.dependencies import get_account_service, require_identity
from auth.models import AuthenticatedIdentity
from auth.service import AccountService

router = APIRouter()


@router.get("/profile", response_model=ProfileResponse)
def get_profile(
    identity: AuthenticatedIdentity = Depends(require_identity),
    service: AccountService = Depends(get_account_service),
) -> ProfileResponse:
    return ProfileResponse.from_account(service.get_profile(identity))


@router.put("/profile", response_model=ProfileResponse)
def update_profile(
    body: ProfileUpdate,
    identity: AuthenticatedIdentity = Depends(require_identity),
    service: AccountService = Depends(get_account_service),
) -> ProfileResponse:
    """Overwrite the caller's profile.

    When the username changes, the response carries a new access_token; the
    token used for this request stops working because its subject no longer
    exists.
    """
    account, token = service.update_profile(
        identity,
        username=body.username,
        monthly_income=body.monthly_income,
        savings=body.savings,
        target_expenses=body.target_expenses,
        first_name=body.first_name,
        last_name=body.last_name,
    )
    return ProfileResponse.from_account(account, access_token=token)
