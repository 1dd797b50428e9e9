"""
auth/ownership.py -- Resource ownership check for collaborators (forum).

The calling service loads the resource and its authoring account first; this
module makes no store calls. It only turns the can_mutate_resource() decision
into an allow/deny result the caller can act on.
"""

from __future__ import annotations

import logging

from auth.errors import AuthenticationError, Forbidden
from auth.models import Account, AuthenticatedIdentity
from auth.policy import can_mutate_resource

logger = logging.getLogger("budgettracker.auth")


def check_resource_ownership(actor: AuthenticatedIdentity | None, author: Account | None) -> bool:
    """Return True if actor may edit or delete a resource written by author."""
    return can_mutate_resource(actor, author)


def require_resource_ownership(
    actor: AuthenticatedIdentity | None,
    author: Account | None,
    resource: str = "resource",
) -> None:
    """Raise unless actor may mutate the resource.

    Anonymous -> AuthenticationError (401). Authenticated but neither author
    nor ADMIN -> Forbidden (403).
    """
    if actor is None:
        raise AuthenticationError()
    if not check_resource_ownership(actor, author):
        logger.info("Denied %s mutation by %s (not author, not admin)", resource, actor.username)
        raise Forbidden(f"Not authorized to modify this {resource}.")
