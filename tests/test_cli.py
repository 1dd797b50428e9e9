"""Tests for main.py -- the operator CLI.

Commands run through run() against the in-memory account_store fixture, so
no database file is touched. --password skips the interactive prompt.
"""

import pytest

from auth.models import Account, Role
from auth.store import AccountStore
from main import build_parser, run


def _run(store: AccountStore, *argv: str) -> int:
    return run(build_parser().parse_args(list(argv)), store)


@pytest.fixture
def pending_admin(account_store: AccountStore) -> Account:
    account_id = account_store.create_account(
        Account(username="bob", email="bob@x.io", password_hash="h", role=Role.ADMIN, admin_approved=False)
    )
    return account_store.get_by_id(account_id)


def test_create_owner(account_store, capsys):
    assert _run(account_store, "create-user", "root", "root@x.io", "--role", "owner", "--password", "pw") == 0
    created = account_store.get_by_username("root")
    assert created.role == Role.OWNER
    assert "Created root" in capsys.readouterr().out


def test_create_admin_starts_pending(account_store):
    assert _run(account_store, "create-user", "bob", "bob@x.io", "--role", "admin", "--password", "pw") == 0
    assert account_store.get_by_username("bob").admin_approved is False


def test_create_duplicate_fails(account_store, capsys):
    _run(account_store, "create-user", "alice", "a@x.io", "--password", "pw")
    assert _run(account_store, "create-user", "alice", "b@x.io", "--password", "pw") == 1
    assert "already" in capsys.readouterr().err.lower()


def test_list_pending(account_store, pending_admin, capsys):
    assert _run(account_store, "list-pending") == 0
    assert "bob" in capsys.readouterr().out


def test_list_pending_empty(account_store, capsys):
    assert _run(account_store, "list-pending") == 0
    assert "No pending admin requests." in capsys.readouterr().out


def test_approve_and_revoke(account_store, pending_admin):
    assert _run(account_store, "approve", str(pending_admin.id)) == 0
    approved = account_store.get_by_id(pending_admin.id)
    assert (approved.role, approved.admin_approved) == (Role.ADMIN, True)

    assert _run(account_store, "revoke", str(pending_admin.id)) == 0
    revoked = account_store.get_by_id(pending_admin.id)
    assert (revoked.role, revoked.admin_approved) == (Role.USER, False)


def test_ban_and_unban(account_store, pending_admin):
    assert _run(account_store, "ban", str(pending_admin.id)) == 0
    assert account_store.get_by_id(pending_admin.id).banned is True
    assert _run(account_store, "unban", str(pending_admin.id)) == 0
    assert account_store.get_by_id(pending_admin.id).banned is False


def test_unknown_id(account_store, capsys):
    assert _run(account_store, "ban", "404") == 1
    assert "No account with id 404" in capsys.readouterr().err


def test_role_choices_enforced():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["create-user", "x", "x@x.io", "--role", "root"])
