"""
auth/tokens.py -- Password hashing and bearer token issue/validation.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       only the username (sub) and expiry (exp). Role, ban and approval state
       are deliberately NOT claims: the gate re-reads them from the store on
       every request, which is what lets a ban take effect on tokens that were
       issued before it.

       validate() raises a single InvalidToken for every failure mode (bad
       signature, expired, malformed, missing subject) so callers cannot tell
       "forged" from "stale".

  Passwords: bcrypt directly (no passlib wrapper). bcrypt's cost factor makes
       brute-forcing low-entropy secrets expensive. The stored hash is opaque
       to every other module: only hash_password() and verify_password()
       know its format.

Layer rule: no imports from api/ or forum/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from auth.errors import InvalidToken

logger = logging.getLogger("budgettracker.auth")

_ALGORITHM = "HS256"

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt only looks at the first 72 bytes. The API layer caps passwords at
    72 characters (pydantic Field) so inputs stay under that threshold.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


# ---------------------------------------------------------------------------
# JWT issue / validate
# ---------------------------------------------------------------------------


class TokenService:
    """Issues and validates stateless signed bearer tokens.

    Holds no per-request state, so one instance is shared by every request
    and may be called from any worker thread.

    Usage:
        tokens = TokenService(settings.secret_key, settings.token_expire_seconds)
        token = tokens.issue("alice")
        tokens.validate(token)  # -> "alice"
    """

    def __init__(self, secret_key: str, expire_seconds: int) -> None:
        self._secret_key = secret_key
        self.expire_seconds = expire_seconds

    def issue(self, username: str, issued_at: datetime | None = None) -> str:
        """Encode a signed JWT whose subject is username.

        Args:
            username:  Token subject -- the account's authentication key.
            issued_at: Issue time; defaults to now. Expiry is always
                       issued_at + expire_seconds.
        """
        now = issued_at or datetime.now(timezone.utc)
        payload = {
            "sub": username,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=self.expire_seconds)).timestamp()),
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def validate(self, token: str) -> str:
        """Verify signature and expiry and return the username claim.

        A token is expired from the second its exp is reached (exp <= now),
        one second stricter than jose's own exp check.

        Raises InvalidToken on any failure.
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[_ALGORITHM])
        except JWTError as exc:
            raise InvalidToken() from exc
        username = payload.get("sub")
        exp = payload.get("exp")
        if not isinstance(username, str) or not username or not isinstance(exp, (int, float)):
            raise InvalidToken()
        if exp <= datetime.now(timezone.utc).timestamp():
            raise InvalidToken()
        return username
