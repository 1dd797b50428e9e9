"""Unit tests for auth/service.py -- AccountService register/login/profile.

Covers:
- register(): defaults, ADMIN starts pending, duplicate username vs email precedence
- login(): check order UserNotFound -> InvalidCredential -> AccountBanned ->
  AdminApprovalPending, and both owner bypasses of the approval gate
- get_profile() / update_profile(): overwrite semantics, rename token, collisions
"""

import pytest
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
from auth.models import AuthenticatedIdentity, Role
from auth.service import AccountService
from auth.store import AccountStore
from auth.tokens import TokenService


def _identity(account) -> AuthenticatedIdentity:
    return AuthenticatedIdentity(account_id=account.id, username=account.username, role=account.role)


# ---------------------------------------------------------------------------
# register()
# ---------------------------------------------------------------------------


class TestRegister:
    def test_defaults_to_approved_user(self, account_service: AccountService) -> None:
        account = account_service.register("alice", "a@x.io", "pw1")
        assert account.id is not None
        assert account.role == Role.USER
        assert account.admin_approved is True
        assert account.banned is False

    def test_password_is_hashed(self, account_service: AccountService) -> None:
        account = account_service.register("alice", "a@x.io", "pw1")
        assert account.password_hash != "pw1"

    def test_admin_registration_starts_pending(self, account_service: AccountService) -> None:
        account = account_service.register("bob", "b@x.io", "pw2", role=Role.ADMIN)
        assert account.role == Role.ADMIN
        assert account.admin_approved is False

    def test_role_accepts_plain_string(self, account_service: AccountService) -> None:
        assert account_service.register("root", "r@x.io", "pw", role="OWNER").role == Role.OWNER

    def test_profile_fields_are_stored(self, account_service: AccountService) -> None:
        account = account_service.register("alice", "a@x.io", "pw1", first_name="Alice", savings=10.5)
        assert account.first_name == "Alice"
        assert account.savings == 10.5

    def test_duplicate_username(self, account_service: AccountService) -> None:
        account_service.register("alice", "a@x.io", "pw1")
        with pytest.raises(DuplicateUsername):
            account_service.register("alice", "other@x.io", "pw1")

    def test_duplicate_email(self, account_service: AccountService) -> None:
        account_service.register("alice", "a@x.io", "pw1")
        with pytest.raises(DuplicateEmail):
            account_service.register("alice2", "a@x.io", "pw1")

    def test_username_conflict_wins_when_both_collide(self, account_service: AccountService) -> None:
        account_service.register("alice", "a@x.io", "pw1")
        with pytest.raises(DuplicateUsername):
            account_service.register("alice", "a@x.io", "pw1")

    def test_duplicate_username_regardless_of_role(
        self, account_service: AccountService, account_store: AccountStore
    ) -> None:
        account_service.register("alice", "a@x.io", "pw1")
        with pytest.raises(DuplicateUsername):
            account_service.register("alice", "admin@x.io", "pw9", role=Role.ADMIN, first_name="Eve")
        stored = account_store.get_by_username("alice")
        assert (stored.role, stored.email) == (Role.USER, "a@x.io")

    def test_concurrent_duplicate_username_is_translated(
        self, account_service: AccountService, account_store: AccountStore, monkeypatch
    ) -> None:
        """A signup that loses the race to the UNIQUE constraint still reports DuplicateUsername."""
        account_service.register("alice", "a@x.io", "pw1")
        real_exists = account_store.username_exists
        calls = []

        def stale_then_real(username: str) -> bool:
            calls.append(username)
            return False if len(calls) == 1 else real_exists(username)

        monkeypatch.setattr(account_store, "username_exists", stale_then_real)
        with pytest.raises(DuplicateUsername) as exc_info:
            account_service.register("alice", "other@x.io", "pw1")
        assert isinstance(exc_info.value.__cause__, IntegrityError)

    def test_concurrent_duplicate_email_is_translated(
        self, account_service: AccountService, account_store: AccountStore, monkeypatch
    ) -> None:
        account_service.register("alice", "a@x.io", "pw1")
        monkeypatch.setattr(account_store, "email_exists", lambda email: False)
        with pytest.raises(DuplicateEmail) as exc_info:
            account_service.register("alice2", "a@x.io", "pw1")
        assert isinstance(exc_info.value.__cause__, IntegrityError)

    def test_usernames_are_case_sensitive(self, account_service: AccountService) -> None:
        account_service.register("alice", "a@x.io", "pw1")
        assert account_service.register("Alice", "A2@x.io", "pw1").username == "Alice"


# ---------------------------------------------------------------------------
# login()
# ---------------------------------------------------------------------------


class TestLogin:
    def test_success_returns_token_for_username(self, account_service: AccountService, tokens: TokenService) -> None:
        account_service.register("alice", "a@x.io", "pw1")
        account, token = account_service.login("alice", "pw1")
        assert tokens.validate(token) == "alice"
        assert account.role == Role.USER

    def test_unknown_user(self, account_service: AccountService) -> None:
        with pytest.raises(UserNotFound):
            account_service.login("ghost", "pw")

    def test_wrong_password(self, account_service: AccountService) -> None:
        account_service.register("alice", "a@x.io", "pw1")
        with pytest.raises(InvalidCredential):
            account_service.login("alice", "wrong")

    def test_password_checked_before_ban(self, account_service: AccountService, account_store: AccountStore) -> None:
        account = account_service.register("alice", "a@x.io", "pw1")
        account_store.update_account(account.id, banned=True)
        with pytest.raises(InvalidCredential):
            account_service.login("alice", "wrong")
        with pytest.raises(AccountBanned):
            account_service.login("alice", "pw1")

    def test_ban_checked_before_approval(self, account_service: AccountService, account_store: AccountStore) -> None:
        account = account_service.register("bob", "b@x.io", "pw2", role=Role.ADMIN)
        account_store.update_account(account.id, banned=True)
        with pytest.raises(AccountBanned):
            account_service.login("bob", "pw2")

    def test_pending_admin_is_rejected(self, account_service: AccountService) -> None:
        account_service.register("bob", "b@x.io", "pw2", role=Role.ADMIN)
        with pytest.raises(AdminApprovalPending):
            account_service.login("bob", "pw2")

    def test_approved_admin_logs_in(self, account_service: AccountService, account_store: AccountStore) -> None:
        account = account_service.register("bob", "b@x.io", "pw2", role=Role.ADMIN)
        account_store.update_account(account.id, admin_approved=True)
        assert account_service.login("bob", "pw2")

    def test_revoked_admin_logs_in_as_user(self, account_service: AccountService, account_store: AccountStore) -> None:
        account = account_service.register("bob", "b@x.io", "pw2", role=Role.ADMIN)
        account_store.update_account(account.id, role=Role.USER, admin_approved=False)
        assert account_service.login("bob", "pw2")

    def test_owner_role_bypasses_approval(self, account_service: AccountService, account_store: AccountStore) -> None:
        account = account_service.register("root", "r@x.io", "pw", role=Role.OWNER)
        account_store.update_account(account.id, admin_approved=False)
        assert account_service.login("root", "pw")

    def test_configured_owner_id_bypasses_approval(self, account_store: AccountStore, tokens: TokenService) -> None:
        service = AccountService(account_store, tokens, owner_id=2)
        service.register("alice", "a@x.io", "pw1")
        boss = service.register("boss", "boss@x.io", "pw", role=Role.ADMIN)
        assert boss.id == 2
        assert boss.admin_approved is False
        assert service.login("boss", "pw")

    def test_other_pending_admin_is_still_blocked(self, account_store: AccountStore, tokens: TokenService) -> None:
        service = AccountService(account_store, tokens, owner_id=1)
        service.register("alice", "a@x.io", "pw1")
        service.register("bob", "b@x.io", "pw2", role=Role.ADMIN)
        with pytest.raises(AdminApprovalPending):
            service.login("bob", "pw2")

    def test_ban_does_not_touch_approval(self, account_service: AccountService, account_store: AccountStore) -> None:
        account = account_service.register("alice", "a@x.io", "pw1")
        account_store.update_account(account.id, banned=True)
        account_store.update_account(account.id, banned=False)
        assert account_service.login("alice", "pw1")


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


class TestProfile:
    def test_get_profile(self, account_service: AccountService) -> None:
        account = account_service.register("alice", "a@x.io", "pw1", first_name="Alice")
        assert account_service.get_profile(_identity(account)).first_name == "Alice"

    def test_get_profile_for_deleted_account(self, account_service: AccountService) -> None:
        ghost = AuthenticatedIdentity(account_id=404, username="ghost", role=Role.USER)
        with pytest.raises(NotFoundError):
            account_service.get_profile(ghost)

    def test_update_overwrites_profile_fields(self, account_service: AccountService) -> None:
        account = account_service.register("alice", "a@x.io", "pw1", first_name="Alice", savings=5.0)
        updated, token = account_service.update_profile(_identity(account), monthly_income=3000.0)
        assert token is None
        assert updated.monthly_income == 3000.0
        # Omitted fields are overwritten with None.
        assert updated.first_name is None
        assert updated.savings is None

    def test_update_never_touches_policy_fields(self, account_service: AccountService) -> None:
        account = account_service.register("bob", "b@x.io", "pw2", role=Role.ADMIN)
        updated, _ = account_service.update_profile(_identity(account), first_name="Bob")
        assert updated.role == Role.ADMIN
        assert updated.admin_approved is False
        assert updated.email == "b@x.io"

    def test_rename_issues_new_token(self, account_service: AccountService, tokens: TokenService) -> None:
        account = account_service.register("alice", "a@x.io", "pw1")
        updated, token = account_service.update_profile(_identity(account), username="alicia")
        assert updated.username == "alicia"
        assert tokens.validate(token) == "alicia"

    def test_same_username_is_not_a_rename(self, account_service: AccountService) -> None:
        account = account_service.register("alice", "a@x.io", "pw1")
        _, token = account_service.update_profile(_identity(account), username="alice")
        assert token is None

    def test_rename_to_taken_username(self, account_service: AccountService) -> None:
        account_service.register("alice", "a@x.io", "pw1")
        bob = account_service.register("bob", "b@x.io", "pw2")
        with pytest.raises(ValidationError):
            account_service.update_profile(_identity(bob), username="alice")
