"""
auth/errors.py -- Error taxonomy for the identity and access-control core.

Every failure the auth services raise is an AuthError subclass carrying a
machine-readable code and the HTTP status the API boundary translates it to.
api/main.py registers a single exception handler for AuthError, so services
never import fastapi and route handlers never build error bodies by hand.

Families:
  AuthenticationError  -- who are you? (bad token, unknown user, bad secret)
  AccountStateError    -- the account exists but may not act (banned, pending)
  AuthorizationError   -- the identity lacks the role or ownership required
  ConflictError        -- uniqueness violations on write
  NotFoundError        -- target row is absent
  ValidationError      -- semantically invalid update (400)

None of these are retried: every one is deterministic for the same input.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class. Subclasses override code, message and status_code."""

    code: str = "auth_error"
    message: str = "Authentication error."
    status_code: int = 400

    def __init__(self, message: str | None = None, detail: str | None = None) -> None:
        self.message = message or self.message
        self.detail = detail
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class AuthenticationError(AuthError):
    code = "unauthorized"
    message = "Authentication required."
    status_code = 401


class InvalidToken(AuthenticationError):
    """Bad signature, expired, or malformed token -- deliberately one kind."""

    code = "invalid_token"
    message = "Invalid or expired token."


class UserNotFound(AuthenticationError):
    code = "user_not_found"
    message = "User not found."


class InvalidCredential(AuthenticationError):
    code = "invalid_credential"
    message = "Invalid password."


# ---------------------------------------------------------------------------
# Account state
# ---------------------------------------------------------------------------


class AccountStateError(AuthError):
    code = "account_state"
    message = "Account may not sign in."
    status_code = 401


class AccountBanned(AccountStateError):
    code = "banned"
    message = "User is banned."


class AdminApprovalPending(AccountStateError):
    code = "admin_approval_pending"
    message = "Admin account is awaiting owner approval."


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


class AuthorizationError(AuthError):
    code = "forbidden"
    message = "Forbidden."
    status_code = 403


class Forbidden(AuthorizationError):
    pass


class OwnerOnly(AuthorizationError):
    code = "owner_only"
    message = "Only the owner can manage admins."


# ---------------------------------------------------------------------------
# Conflicts, lookups, validation
# ---------------------------------------------------------------------------


class ConflictError(AuthError):
    code = "conflict"
    message = "Conflict."
    status_code = 409


class DuplicateUsername(ConflictError):
    code = "duplicate_username"
    message = "Username is already taken."


class DuplicateEmail(ConflictError):
    code = "duplicate_email"
    message = "Email is already registered."


class NotFoundError(AuthError):
    code = "not_found"
    message = "Not found."
    status_code = 404


class ValidationError(AuthError):
    code = "bad_request"
    message = "Invalid request."
    status_code = 400
