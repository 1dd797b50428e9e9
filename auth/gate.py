"""
auth/gate.py -- Per-request authentication gate.

Turns an Authorization header into a verified, live AuthenticatedIdentity,
or into "anonymous", or into a hard rejection.

Stages run in a fixed order. Each stage receives the pass built so far and
either returns it (continue), returns None (stop, request proceeds as
anonymous), or raises AccountBanned (stop, request is rejected):

  1. extract   -- "Authorization: Bearer <token>"; absent header -> anonymous
  2. validate  -- TokenService.validate; invalid/expired -> anonymous
  3. load      -- AccountStore.get_by_username(sub); unknown -> anonymous
  4. ban_check -- account.banned -> AccountBanned (the only hard rejection)
  5. establish -- build AuthenticatedIdentity from the freshly loaded row

Step 3 re-reads the account on EVERY request instead of trusting token
contents. Tokens are stateless and cannot be revoked; re-reading is what
makes a ban effective against tokens issued before it.

Invalid tokens degrade to anonymous instead of failing: downstream
authorization is the single place that decides what anonymous callers may do.

Layer rule: no imports from api/ or forum/. The Starlette middleware that
runs this gate lives in api/main.py.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from auth.errors import AccountBanned, InvalidToken
from auth.models import Account, AuthenticatedIdentity
from auth.store import AccountStore
from auth.tokens import TokenService

logger = logging.getLogger("budgettracker.gate")

_BEARER_PREFIX = "Bearer "


@dataclass
class GatePass:
    """Intermediate state handed from one gate stage to the next."""

    authorization: str | None
    token: str | None = None
    username: str | None = None
    account: Account | None = None
    identity: AuthenticatedIdentity | None = None


Stage = Callable[[GatePass], "GatePass | None"]


class AuthenticationGate:
    """Runs the ordered stage list for one request at a time.

    Holds no per-request state; a single instance serves every request.
    """

    def __init__(self, store: AccountStore, tokens: TokenService) -> None:
        self._store = store
        self._tokens = tokens
        self.stages: list[Stage] = [
            self.extract,
            self.validate,
            self.load,
            self.ban_check,
            self.establish,
        ]

    def authenticate(self, authorization: str | None) -> AuthenticatedIdentity | None:
        """Return the caller's identity, or None for anonymous.

        Raises AccountBanned when the token resolves to a banned account.
        """
        current: GatePass | None = GatePass(authorization=authorization)
        for stage in self.stages:
            current = stage(current)
            if current is None:
                return None
        return current.identity

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def extract(self, gate_pass: GatePass) -> GatePass | None:
        header = gate_pass.authorization or ""
        if not header.startswith(_BEARER_PREFIX):
            return None
        token = header[len(_BEARER_PREFIX) :].strip()
        if not token:
            return None
        gate_pass.token = token
        return gate_pass

    def validate(self, gate_pass: GatePass) -> GatePass | None:
        try:
            gate_pass.username = self._tokens.validate(gate_pass.token)
        except InvalidToken:
            return None
        return gate_pass

    def load(self, gate_pass: GatePass) -> GatePass | None:
        account = self._store.get_by_username(gate_pass.username)
        if account is None:
            return None
        gate_pass.account = account
        return gate_pass

    def ban_check(self, gate_pass: GatePass) -> GatePass:
        if gate_pass.account.banned:
            logger.warning("Rejected request from banned account %s", gate_pass.account.username)
            raise AccountBanned()
        return gate_pass

    def establish(self, gate_pass: GatePass) -> GatePass:
        account = gate_pass.account
        gate_pass.identity = AuthenticatedIdentity(
            account_id=account.id,
            username=account.username,
            role=account.role,
            banned=False,
        )
        return gate_pass
