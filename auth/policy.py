"""
auth/policy.py -- Access policy: pure decision functions, no I/O.

Every authorization decision in BudgetTracker is one of the functions below.
Call sites pass in the account/identity they already hold; nothing here reads
a store, a request or global state, so the rules can be unit tested as plain
functions.

Approval state machine (role x admin_approved, ban ignored):

    MEMBER (USER)                                   -- terminal for normal users
    PENDING_ADMIN (ADMIN, approved=False) --approve--> APPROVED_ADMIN (ADMIN, approved=True)
    APPROVED_ADMIN                        --revoke---> MEMBER (USER, approved=False)

The two stored columns are kept for compatibility with persisted rows, but
decisions go through approval_state() and the transitions are defined once
here (APPROVE_ADMIN / REVOKE_ADMIN) instead of being re-derived per call site.

Ban is an orthogonal axis (Active <-> Banned) checked at login and at every
authenticated request by the gate.
"""

from __future__ import annotations

from typing import Protocol

from auth.models import Account, ApprovalState, Role
from core.config import NO_OWNER


class _HasRole(Protocol):
    username: str
    role: Role


# ---------------------------------------------------------------------------
# Approval axis
# ---------------------------------------------------------------------------

# Field updates applied by AdminWorkflow for each transition.
APPROVE_ADMIN: dict = {"role": Role.ADMIN, "admin_approved": True}
REVOKE_ADMIN: dict = {"role": Role.USER, "admin_approved": False}


def approval_state(account: Account) -> ApprovalState:
    """Collapse the stored (role, admin_approved) pair into its derived state."""
    if account.role == Role.OWNER:
        return ApprovalState.OWNER
    if account.role == Role.ADMIN:
        return ApprovalState.APPROVED_ADMIN if account.admin_approved else ApprovalState.PENDING_ADMIN
    return ApprovalState.MEMBER


def initial_approval(role: Role) -> bool:
    """admin_approved value for a freshly registered account.

    An ADMIN registration starts pending the owner's approval; every other
    role starts approved.
    """
    return role != Role.ADMIN


def blocks_login(account: Account, configured_owner_id: int) -> bool:
    """True when approval gating forbids this account from signing in.

    A pending admin may not sign in unless it is the configured owner or
    carries the OWNER role.
    """
    if approval_state(account) != ApprovalState.PENDING_ADMIN:
        return False
    return not is_owner(account, configured_owner_id)


# ---------------------------------------------------------------------------
# Role checks
# ---------------------------------------------------------------------------


def is_admin_or_owner(account: _HasRole) -> bool:
    return account.role in (Role.ADMIN, Role.OWNER)


def is_owner(account, configured_owner_id: int) -> bool:
    """Owner-level authority: the configured owner id, or the OWNER role.

    account may be an Account or an AuthenticatedIdentity. The NO_OWNER
    sentinel never matches an id.
    """
    account_id = getattr(account, "id", None)
    if account_id is None:
        account_id = getattr(account, "account_id", None)
    if configured_owner_id != NO_OWNER and account_id == configured_owner_id:
        return True
    return account.role == Role.OWNER


# ---------------------------------------------------------------------------
# Resource ownership
# ---------------------------------------------------------------------------


def can_mutate_resource(actor: _HasRole | None, resource_author: _HasRole | None) -> bool:
    """Author or ADMIN may edit/delete a forum post or comment.

    The OWNER role alone does not qualify: an owner who is neither the author
    nor an ADMIN is denied. Anonymous actors are always denied.
    """
    if actor is None:
        return False
    if resource_author is not None and actor.username == resource_author.username:
        return True
    return actor.role == Role.ADMIN
