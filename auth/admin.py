"""
auth/admin.py -- Privileged account administration.

AdminWorkflow implements the admin endpoints on top of auth.policy and
AccountStore. Every method takes the acting identity as its first argument
and authorizes before touching the store:

  list_users / ban / unban / list_pending_admin_requests -- admin or owner
  approve_admin / revoke_admin                           -- owner only

Anonymous actors (None) are refused with Forbidden like any other caller
without the role; the routes do not require a token up front.

Ban and unban are idempotent: banning an already-banned account rewrites the
same value and still succeeds. A ban racing an in-flight login may let that
one login complete with the pre-ban state. The next request through the gate
sees the ban, so the race is accepted rather than serialized.
"""

from __future__ import annotations

import logging

from auth.errors import Forbidden, NotFoundError, OwnerOnly
from auth.models import Account, AuthenticatedIdentity
from auth.policy import APPROVE_ADMIN, REVOKE_ADMIN, is_admin_or_owner, is_owner
from auth.store import AccountStore

logger = logging.getLogger("budgettracker.admin")


class AdminWorkflow:
    def __init__(self, store: AccountStore, owner_id: int) -> None:
        self._store = store
        self._owner_id = owner_id

    # ------------------------------------------------------------------
    # Authorization helpers
    # ------------------------------------------------------------------

    def _require_admin_or_owner(self, actor: AuthenticatedIdentity | None) -> AuthenticatedIdentity:
        if actor is None or not is_admin_or_owner(actor):
            raise Forbidden()
        return actor

    def _require_owner(self, actor: AuthenticatedIdentity | None, action: str) -> AuthenticatedIdentity:
        if actor is None or not is_owner(actor, self._owner_id):
            raise OwnerOnly(f"Only owner can {action} admins.")
        return actor

    def _apply(self, actor: AuthenticatedIdentity, account_id: int, action: str, **fields) -> Account:
        if not self._store.update_account(account_id, **fields):
            raise NotFoundError("User not found.")
        updated = self._store.get_by_id(account_id)
        if updated is None:
            raise NotFoundError("User not found.")
        logger.info("%s: %s -> account id=%s (%s)", action, actor.username, account_id, updated.username)
        return updated

    # ------------------------------------------------------------------
    # Admin or owner
    # ------------------------------------------------------------------

    def list_users(self, actor: AuthenticatedIdentity | None) -> list[Account]:
        self._require_admin_or_owner(actor)
        return self._store.list_accounts()

    def ban(self, actor: AuthenticatedIdentity | None, account_id: int) -> Account:
        actor = self._require_admin_or_owner(actor)
        return self._apply(actor, account_id, "ban", banned=True)

    def unban(self, actor: AuthenticatedIdentity | None, account_id: int) -> Account:
        actor = self._require_admin_or_owner(actor)
        return self._apply(actor, account_id, "unban", banned=False)

    def list_pending_admin_requests(self, actor: AuthenticatedIdentity | None) -> list[Account]:
        self._require_admin_or_owner(actor)
        return self._store.list_pending_admins()

    # ------------------------------------------------------------------
    # Owner only
    # ------------------------------------------------------------------

    def approve_admin(self, actor: AuthenticatedIdentity | None, account_id: int) -> Account:
        actor = self._require_owner(actor, "approve")
        return self._apply(actor, account_id, "approve_admin", **APPROVE_ADMIN)

    def revoke_admin(self, actor: AuthenticatedIdentity | None, account_id: int) -> Account:
        actor = self._require_owner(actor, "revoke")
        return self._apply(actor, account_id, "revoke_admin", **REVOKE_ADMIN)
