"""
Caller authentication dependencies.

The session token is read from `Authorization: Bearer <token>` or, for
browser requests, the `__session` cookie Clerk sets.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request

from slimcircle.dependencies import get_identity_provider
from slimcircle.errors import Forbidden, Unauthorized
from slimcircle.identity_provider import IdentityProvider, IdentityProviderError
from shared.types import ADMIN_ROLES, UserRole

logger = logging.getLogger(__name__)

SESSION_COOKIE = "__session"


@dataclass
class Caller:
    user_id: str
    role: Optional[UserRole] = None


def _session_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return request.cookies.get(SESSION_COOKIE) or None


def get_optional_user(
    request: Request,
    provider: IdentityProvider = Depends(get_identity_provider),
) -> Optional[Caller]:
    token = _session_token(request)
    if not token:
        return None
    claims = provider.verify_session(token)
    if claims is None:
        return None
    return Caller(user_id=claims.user_id, role=claims.role)


def get_current_user(caller: Optional[Caller] = Depends(get_optional_user)) -> Caller:
    if caller is None:
        raise Unauthorized()
    return caller


def is_admin(role: Optional[UserRole]) -> bool:
    return role in ADMIN_ROLES


def require_admin(
    caller: Caller = Depends(get_current_user),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> Caller:
    """Admits admins and super admins.

    Session tokens without a role claim fall back to the directory's public
    metadata for the user.
    """
    role = caller.role
    if role is None:
        try:
            role = provider.get_user(caller.user_id).role
        except IdentityProviderError:
            logger.exception("Could not look up role for %s", caller.user_id)
            raise Forbidden()
    if not is_admin(role):
        raise Forbidden()
    caller.role = role
    return caller
