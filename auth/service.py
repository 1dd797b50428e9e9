"""
auth/service.py -- Registration, login and profile workflows.

AccountService owns the business rules that decide whether an account may be
created or may sign in:

  register(): username uniqueness (exact match, case-sensitive), email
      uniqueness, password hashing, default role USER, ADMIN registrations
      start pending owner approval.

  login(): checks run in a fixed order -- existence, password, ban, approval
      gating. Because existence is checked first, "user not found" and
      "invalid password" are distinguishable to the caller. That mirrors the
      behaviour this service replaced and is kept on purpose (see DESIGN.md).

The caller's identity is always an explicit argument; nothing here reads a
request or global state.

Layer rule: no imports from api/ or forum/.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from auth.errors import (
    AccountBanned,
    AdminApprovalPending,
    DuplicateEmail,
    DuplicateUsername,
    InvalidCredential,
    NotFoundError,
    UserNotFound,
    ValidationError,
)
from auth.models import Account, AuthenticatedIdentity, Role
from auth.policy import blocks_login, initial_approval
from auth.store import AccountStore
from auth.tokens import TokenService, hash_password, verify_password

logger = logging.getLogger("budgettracker.auth")

# Profile attributes a user may overwrite on their own account.
PROFILE_FIELDS = ("monthly_income", "savings", "target_expenses", "first_name", "last_name")


class AccountService:
    """Registration, login and self-service profile operations.

    Usage:
        service = AccountService(store, tokens, owner_id=settings.owner_id)
        service.register("alice", "alice@example.com", "pw1")
        account, token = service.login("alice", "pw1")
    """

    def __init__(self, store: AccountStore, tokens: TokenService, owner_id: int) -> None:
        self._store = store
        self._tokens = tokens
        self._owner_id = owner_id

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        username: str,
        email: str,
        password: str,
        role: Role | None = None,
        **profile,
    ) -> Account:
        """Create a new account and return it as stored.

        Raises DuplicateUsername if the username is taken, whatever the other
        fields are, and DuplicateEmail if only the email is taken.
        """
        if self._store.username_exists(username):
            raise DuplicateUsername()
        if self._store.email_exists(email):
            raise DuplicateEmail()

        resolved_role = Role(role) if role is not None else Role.USER
        account = Account(
            username=username,
            email=email,
            password_hash=hash_password(password),
            role=resolved_role,
            admin_approved=initial_approval(resolved_role),
            **{k: v for k, v in profile.items() if k in PROFILE_FIELDS},
        )
        try:
            account_id = self._store.create_account(account)
        except IntegrityError as exc:
            # A concurrent signup won the race between the check and the insert.
            if self._store.username_exists(username):
                raise DuplicateUsername() from exc
            raise DuplicateEmail() from exc

        logger.info(
            "Registered account %s (id=%s role=%s approved=%s)",
            username,
            account_id,
            resolved_role.value,
            account.admin_approved,
        )
        created = self._store.get_by_id(account_id)
        if created is None:
            raise NotFoundError("Account not found after write.")
        return created

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def login(self, username: str, password: str) -> tuple[Account, str]:
        """Check credentials and account state, then issue a bearer token.

        Returns (account, token) so callers can report the role alongside the
        token.

        Order: UserNotFound -> InvalidCredential -> AccountBanned ->
        AdminApprovalPending. The approval gate is bypassed for the configured
        owner id and for the OWNER role.
        """
        account = self._store.get_by_username(username)
        if account is None:
            logger.info("Login rejected for %s: user not found", username)
            raise UserNotFound()
        if not verify_password(password, account.password_hash):
            logger.info("Login rejected for %s: invalid password", username)
            raise InvalidCredential()
        if account.banned:
            logger.warning("Login rejected for %s: account is banned", username)
            raise AccountBanned()
        if blocks_login(account, self._owner_id):
            logger.info("Login rejected for %s: admin approval pending", username)
            raise AdminApprovalPending()

        logger.info("Login succeeded for %s", username)
        return account, self._tokens.issue(account.username)

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def get_profile(self, identity: AuthenticatedIdentity) -> Account:
        """Return the caller's own account, re-read from the store."""
        account = self._store.get_by_id(identity.account_id)
        if account is None:
            raise NotFoundError("Account not found.")
        return account

    def update_profile(
        self,
        identity: AuthenticatedIdentity,
        username: str | None = None,
        **profile,
    ) -> tuple[Account, str | None]:
        """Overwrite the caller's profile attributes and optionally rename them.

        Role, approval, ban and email never change through this path.

        Returns (account, token). token is a freshly issued bearer token when
        the username changed -- tokens minted for the old username stop
        resolving -- and None otherwise.

        Raises ValidationError (400) if the new username is already taken.
        """
        account = self.get_profile(identity)
        updates: dict = {field: profile.get(field) for field in PROFILE_FIELDS}

        renamed = username is not None and username != account.username
        if renamed:
            if self._store.username_exists(username):
                raise ValidationError("Username already taken.")
            updates["username"] = username

        try:
            found = self._store.update_account(account.id, **updates)
        except IntegrityError as exc:
            raise ValidationError("Username already taken.") from exc
        if not found:
            raise NotFoundError("Account not found.")

        updated = self.get_profile(identity)
        token = None
        if renamed:
            logger.info("Account %s renamed to %s", account.username, updated.username)
            token = self._tokens.issue(updated.username)
        return updated, token
