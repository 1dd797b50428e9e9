"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Decisions over these
shapes live in auth/policy.py; stores and services do the work.

Layer rule: no imports from api/ or forum/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Stored account role.

    USER < ADMIN. OWNER is a distinguished super-role; owner-level authority
    is also granted to the account whose id matches Settings.owner_id.
    """

    USER = "USER"
    ADMIN = "ADMIN"
    OWNER = "OWNER"


class ApprovalState(str, Enum):
    """Derived position on the approval axis (role x admin_approved).

    Never stored. Computed by auth.policy.approval_state() so every gating
    decision reads the same state machine instead of re-deriving it from the
    two persisted columns.
    """

    MEMBER = "member"  # role USER, approval flag ignored
    PENDING_ADMIN = "pending_admin"  # role ADMIN, not yet approved by the owner
    APPROVED_ADMIN = "approved_admin"
    OWNER = "owner"


@dataclass
class Account:
    """A registered BudgetTracker account.

    username is the authentication key (token subject) and, like email, is
    globally unique. password_hash is opaque bcrypt output and is never
    compared in plaintext.

    admin_approved only means something while role is ADMIN. A persisted
    (ADMIN, admin_approved=False) row is a pending admin request: it blocks
    login but stays listable for the owner.

    banned is an independent axis, orthogonal to role and approval.

    The budget fields are profile pass-through data with no policy meaning.

    id is None before the record is written to the database.
    """

    username: str
    email: str
    password_hash: str
    role: Role = Role.USER
    admin_approved: bool = True
    banned: bool = False
    id: int | None = None
    monthly_income: float | None = None
    savings: float | None = None
    target_expenses: float | None = None
    first_name: str | None = None
    last_name: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class AuthenticatedIdentity:
    """Request-scoped snapshot of the caller, built fresh by the gate.

    Owned by a single request and never cached across requests. banned is
    always False here: the gate rejects banned accounts before one of these
    is ever constructed.
    """

    account_id: int
    username: str
    role: Role
    banned: bool = False
