#!/usr/bin/env python3
"""
BudgetTracker operator CLI -- manage accounts without going through HTTP.

The first OWNER account cannot be created over the API in a way anyone trusts,
so it is bootstrapped here. The same commands cover the admin approval queue
and bans for operators with shell access.

Usage:
  python main.py create-user alice alice@example.com
  python main.py create-user root root@example.com --role owner
  python main.py list-pending
  python main.py approve 7
  python main.py revoke 7
  python main.py ban 12
  python main.py unban 12

Environment variables:
  DATABASE_URL  SQLAlchemy URL of the account database (default: ./budgettracker.db)
  SECRET_KEY    Required unless DEBUG=true (settings are validated on start)
"""

import argparse
import getpass
import sys

from auth.errors import ConflictError
from auth.models import Role
from auth.policy import APPROVE_ADMIN, REVOKE_ADMIN
from auth.service import AccountService
from auth.store import AccountStore
from auth.tokens import TokenService
from core.config import get_settings


def _read_password() -> str:
    password = getpass.getpass("Password: ")
    if not password:
        print("  [!] Password must not be empty.", file=sys.stderr)
        sys.exit(1)
    if password != getpass.getpass("Repeat password: "):
        print("  [!] Passwords do not match.", file=sys.stderr)
        sys.exit(1)
    return password


def _update(store: AccountStore, account_id: int, label: str, **fields) -> int:
    if not store.update_account(account_id, **fields):
        print(f"  [!] No account with id {account_id}.", file=sys.stderr)
        return 1
    account = store.get_by_id(account_id)
    print(f"  {label}: {account.username} (id={account.id}, role={account.role.value})")
    return 0


def run(args: argparse.Namespace, store: AccountStore) -> int:
    """Execute one parsed command against store. Returns the process exit code."""
    if args.command == "create-user":
        settings = get_settings()
        service = AccountService(store, TokenService(settings.secret_key, settings.token_expire_seconds), settings.owner_id)
        password = args.password if args.password is not None else _read_password()
        try:
            account = service.register(args.username, args.email, password, role=Role(args.role.upper()))
        except ConflictError as exc:
            print(f"  [!] {exc.message}", file=sys.stderr)
            return 1
        print(f"  Created {account.username} (id={account.id}, role={account.role.value}, approved={account.admin_approved})")
        return 0

    if args.command == "list-pending":
        pending = store.list_pending_admins()
        if not pending:
            print("  No pending admin requests.")
        for account in pending:
            print(f"  {account.id:>5}  {account.username:<24} {account.email}")
        return 0

    if args.command == "approve":
        return _update(store, args.id, "Approved", **APPROVE_ADMIN)
    if args.command == "revoke":
        return _update(store, args.id, "Revoked", **REVOKE_ADMIN)
    if args.command == "ban":
        return _update(store, args.id, "Banned", banned=True)
    if args.command == "unban":
        return _update(store, args.id, "Unbanned", banned=False)
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="budgettracker",
        description="Operator commands for BudgetTracker accounts.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-user", help="Create an account (prompts for the password)")
    create.add_argument("username")
    create.add_argument("email")
    create.add_argument(
        "--role",
        choices=["user", "admin", "owner"],
        default="user",
        help="Account role (default: user). Admin accounts start pending approval.",
    )
    # Hidden: lets scripts and tests skip the interactive prompt.
    create.add_argument("--password", default=None, help=argparse.SUPPRESS)

    sub.add_parser("list-pending", help="List admin accounts awaiting owner approval")
    for name, text in (
        ("approve", "Approve a pending admin"),
        ("revoke", "Revoke admin rights (account becomes USER)"),
        ("ban", "Ban an account"),
        ("unban", "Lift a ban"),
    ):
        cmd = sub.add_parser(name, help=text)
        cmd.add_argument("id", type=int, help="Account id")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    store = AccountStore(get_settings().database_url)
    try:
        return run(args, store)
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
