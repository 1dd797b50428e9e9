"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts.

Pattern: Repository + Data Mapper. AccountStore is the repository;
_row_to_account is the mapper. Services and route code never touch SQL
directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(username) and UNIQUE(email) are enforced by the schema. Services
  check first for a friendly error, and translate the IntegrityError raised by
  a concurrent duplicate insert into the same error.

Atomicity: every mutation here is a single-row UPDATE, so a ban flip is atomic
on its own. No multi-statement transaction is needed anywhere in auth/.

Layer rule: no imports from api/ or forum/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Float, Integer, MetaData, String, Table, Text, create_engine, event, select, text
from sqlalchemy.engine import Engine

from auth.models import Account, Role

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_accounts = Table(
    "accounts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("role", String(16), nullable=False, server_default=Role.USER.value),
    Column("admin_approved", Boolean, nullable=False, server_default=text("0")),
    Column("banned", Boolean, nullable=False, server_default=text("0")),
    Column("monthly_income", Float),
    Column("savings", Float),
    Column("target_expenses", Float),
    Column("first_name", String(255)),
    Column("last_name", String(255)),
    Column("created_at", String(32), nullable=False),
)

# Columns update_account() may write. id and created_at are immutable.
_MUTABLE_FIELDS = frozenset(
    {
        "username",
        "email",
        "password_hash",
        "role",
        "admin_approved",
        "banned",
        "monthly_income",
        "savings",
        "target_expenses",
        "first_name",
        "last_name",
    }
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    """Build an engine with the SQLite tweaks every store in this project uses."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite") and ":memory:" not in db_url and "mode=memory" not in db_url:
        event.listen(engine, "connect", _set_wal_mode)
    return engine


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountStore:
    """Repository for Account entities.

    Usage:
        store = AccountStore("sqlite:///budgettracker.db")
        account_id = store.create_account(Account(username="alice", email="a@x", password_hash=h))
        account = store.get_by_username("alice")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def create_account(self, account: Account) -> int:
        """Insert a new account and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the username or email already
        exists. AccountService translates that into a ConflictError.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _accounts.insert().values(
                    username=account.username,
                    email=account.email,
                    password_hash=account.password_hash,
                    role=Role(account.role).value,
                    admin_approved=account.admin_approved,
                    banned=account.banned,
                    monthly_income=account.monthly_income,
                    savings=account.savings,
                    target_expenses=account.target_expenses,
                    first_name=account.first_name,
                    last_name=account.last_name,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_id(self, account_id: int) -> Account | None:
        """Look up an account by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def get_by_username(self, username: str) -> Account | None:
        """Look up an account by exact username (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.username == username)).fetchone()
        return _row_to_account(row) if row is not None else None

    def username_exists(self, username: str) -> bool:
        with self.engine.connect() as conn:
            row = conn.execute(select(_accounts.c.id).where(_accounts.c.username == username)).fetchone()
        return row is not None

    def email_exists(self, email: str) -> bool:
        with self.engine.connect() as conn:
            row = conn.execute(select(_accounts.c.id).where(_accounts.c.email == email)).fetchone()
        return row is not None

    def list_accounts(self) -> list[Account]:
        """Return all accounts ordered by id."""
        with self.engine.connect() as conn:
            rows = conn.execute(_accounts.select().order_by(_accounts.c.id)).fetchall()
        return [_row_to_account(r) for r in rows]

    def list_pending_admins(self) -> list[Account]:
        """Return accounts with role ADMIN that the owner has not approved yet."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _accounts.select()
                .where((_accounts.c.role == Role.ADMIN.value) & (_accounts.c.admin_approved == False))  # noqa: E712
                .order_by(_accounts.c.id)
            ).fetchall()
        return [_row_to_account(r) for r in rows]

    def update_account(self, account_id: int, **fields) -> bool:
        """Update mutable fields on an existing account in one statement.

        Accepted fields: see _MUTABLE_FIELDS. role may be passed as a Role.
        Unknown field names raise ValueError rather than being silently
        ignored.

        Returns True if a row was updated, False if account_id was not found.
        Raises sqlalchemy.exc.IntegrityError on a username/email collision.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown account fields: {unknown!r}")
        if "role" in fields:
            fields["role"] = Role(fields["role"]).value
        if not fields:
            return self.get_by_id(account_id) is not None
        with self.engine.connect() as conn:
            result = conn.execute(_accounts.update().where(_accounts.c.id == account_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def ping(self) -> bool:
        """Run a trivial query to verify the database is reachable."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            return False

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        username=row.username,
        email=row.email,
        password_hash=row.password_hash,
        role=Role(row.role),
        admin_approved=bool(row.admin_approved),
        banned=bool(row.banned),
        monthly_income=row.monthly_income,
        savings=row.savings,
        target_expenses=row.target_expenses,
        first_name=row.first_name,
        last_name=row.last_name,
        created_at=row.created_at,
    )
