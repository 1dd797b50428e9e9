"""Unit tests for auth/gate.py -- AuthenticationGate.

Covers:
- absent, malformed, invalid and expired credentials degrade to anonymous
- tokens for deleted or renamed accounts degrade to anonymous
- banned accounts are rejected with AccountBanned, even with a pre-ban token
- the identity reflects the account as stored now, not when the token was issued
"""

from datetime import datetime, timedelta, timezone

import pytest

from auth.errors import AccountBanned
from auth.gate import AuthenticationGate
from auth.models import Account, Role
from auth.store import AccountStore
from auth.tokens import TokenService


@pytest.fixture
def alice(account_store: AccountStore) -> Account:
    account_id = account_store.create_account(Account(username="alice", email="a@x.io", password_hash="h"))
    return account_store.get_by_id(account_id)


def _bearer(token: str) -> str:
    return f"Bearer {token}"


class TestAnonymous:
    @pytest.mark.parametrize("header", [None, "", "Basic YWxpY2U6cHcx", "Bearer", "Bearer   ", "bearer abc"])
    def test_missing_or_malformed_header(self, gate: AuthenticationGate, header) -> None:
        assert gate.authenticate(header) is None

    def test_garbage_token(self, gate: AuthenticationGate) -> None:
        assert gate.authenticate(_bearer("not.a.jwt")) is None

    def test_expired_token(self, gate: AuthenticationGate, tokens: TokenService, alice: Account) -> None:
        token = tokens.issue("alice", issued_at=datetime.now(timezone.utc) - timedelta(days=1))
        assert gate.authenticate(_bearer(token)) is None

    def test_foreign_signature(self, gate: AuthenticationGate, alice: Account) -> None:
        token = TokenService("some-other-secret-0123456789abcdef012", 3600).issue("alice")
        assert gate.authenticate(_bearer(token)) is None

    def test_unknown_subject(self, gate: AuthenticationGate, tokens: TokenService) -> None:
        assert gate.authenticate(_bearer(tokens.issue("ghost"))) is None

    def test_old_token_after_rename(
        self, gate: AuthenticationGate, tokens: TokenService, account_store: AccountStore, alice: Account
    ) -> None:
        token = tokens.issue("alice")
        account_store.update_account(alice.id, username="alicia")
        assert gate.authenticate(_bearer(token)) is None


class TestAuthenticated:
    def test_valid_token_establishes_identity(self, gate: AuthenticationGate, tokens: TokenService, alice: Account) -> None:
        identity = gate.authenticate(_bearer(tokens.issue("alice")))
        assert identity is not None
        assert identity.account_id == alice.id
        assert identity.username == "alice"
        assert identity.role == Role.USER
        assert identity.banned is False

    def test_role_is_read_per_request(
        self, gate: AuthenticationGate, tokens: TokenService, account_store: AccountStore, alice: Account
    ) -> None:
        token = tokens.issue("alice")
        account_store.update_account(alice.id, role=Role.ADMIN, admin_approved=True)
        assert gate.authenticate(_bearer(token)).role == Role.ADMIN

    def test_ban_rejects_pre_ban_token(
        self, gate: AuthenticationGate, tokens: TokenService, account_store: AccountStore, alice: Account
    ) -> None:
        token = tokens.issue("alice")
        assert gate.authenticate(_bearer(token)) is not None
        account_store.update_account(alice.id, banned=True)
        with pytest.raises(AccountBanned):
            gate.authenticate(_bearer(token))

    def test_unban_restores_same_token(
        self, gate: AuthenticationGate, tokens: TokenService, account_store: AccountStore, alice: Account
    ) -> None:
        token = tokens.issue("alice")
        account_store.update_account(alice.id, banned=True)
        account_store.update_account(alice.id, banned=False)
        assert gate.authenticate(_bearer(token)).username == "alice"

    def test_stage_order(self, gate: AuthenticationGate) -> None:
        assert [s.__name__ for s in gate.stages] == ["extract", "validate", "load", "ban_check", "establish"]
