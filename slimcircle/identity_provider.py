"""
Identity provider abstraction for Clerk and an in-memory test implementation.

The provider answers two kinds of questions: who is calling (session token
verification) and what the directory knows about a user (profile and role).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

import jwt
import requests
from dacite import Config, from_dict

from shared.types import ClerkUserData, UserRole, parse_role

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 15  # seconds
JWT_LEEWAY_SECONDS = 5


class IdentityProviderError(Exception):
    """Raised when the identity provider cannot answer a directory request."""


@dataclass
class SessionClaims:
    user_id: str
    # None when the session token carries no role claim.
    role: Optional[UserRole] = None


class IdentityProvider(Protocol):
    """Operations the API needs from the identity provider."""

    def verify_session(self, token: str) -> Optional[SessionClaims]:
        ...

    def get_user(self, user_id: str) -> ClerkUserData:
        ...

    def list_users(self, limit: int = 500) -> list[ClerkUserData]:
        ...

    def find_user_by_email(self, email: str) -> Optional[ClerkUserData]:
        ...

    def set_role(self, user_id: str, role: UserRole) -> None:
        ...


def to_clerk_user(data: dict) -> ClerkUserData:
    """Builds a ClerkUserData from a Clerk API or webhook user payload."""
    payload = dict(data)
    payload["email_addresses"] = payload.get("email_addresses") or []
    payload["public_metadata"] = payload.get("public_metadata") or {}
    return from_dict(
        data_class=ClerkUserData, data=payload, config=Config(check_types=False)
    )


def _role_from_claims(claims: dict) -> Optional[UserRole]:
    for key in ("publicMetadata", "public_metadata", "metadata"):
        metadata = claims.get(key)
        if isinstance(metadata, dict) and metadata.get("role"):
            return parse_role(metadata["role"])
    return None


@dataclass
class InMemoryIdentityProvider:
    """Test double for the identity provider. Tokens map directly to user ids."""

    users: Dict[str, ClerkUserData] = field(default_factory=dict)
    tokens: Dict[str, str] = field(default_factory=dict)

    def add_user(self, user: ClerkUserData, token: Optional[str] = None) -> None:
        self.users[user.id] = user
        if token:
            self.tokens[token] = user.id

    def verify_session(self, token: str) -> Optional[SessionClaims]:
        user_id = self.tokens.get(token)
        if not user_id:
            return None
        user = self.users.get(user_id)
        return SessionClaims(user_id=user_id, role=user.role if user else None)

    def get_user(self, user_id: str) -> ClerkUserData:
        user = self.users.get(user_id)
        if user is None:
            raise IdentityProviderError(f"User {user_id} not found")
        return user

    def list_users(self, limit: int = 500) -> list[ClerkUserData]:
        return list(self.users.values())[:limit]

    def find_user_by_email(self, email: str) -> Optional[ClerkUserData]:
        for user in self.users.values():
            if any(e.email_address == email for e in user.email_addresses):
                return user
        return None

    def set_role(self, user_id: str, role: UserRole) -> None:
        user = self.get_user(user_id)
        user.public_metadata = {**user.public_metadata, "role": role.value}

    def reset(self) -> None:
        self.users.clear()
        self.tokens.clear()


class ClerkIdentityProvider:
    """
    Clerk-backed implementation: session JWTs are verified against the
    instance JWKS, directory reads go through the Backend API.
    """

    def __init__(
        self,
        secret_key: str,
        api_url: str = "https://api.clerk.com/v1",
        jwks_url: Optional[str] = None,
    ):
        if not secret_key:
            raise ValueError("CLERK_SECRET_KEY is required for ClerkIdentityProvider")
        self.api_url = api_url.rstrip("/")
        self._session = requests.Session()
        self._session.headers.update({"Authorization": f"Bearer {secret_key}"})
        # The Backend API JWKS endpoint needs the secret key; a frontend
        # `.well-known/jwks.json` URL ignores the header.
        self._jwks_client = jwt.PyJWKClient(
            jwks_url or f"{self.api_url}/jwks",
            headers={"Authorization": f"Bearer {secret_key}"},
        )

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        try:
            response = self._session.request(
                method, f"{self.api_url}{path}", timeout=REQUEST_TIMEOUT, **kwargs
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise IdentityProviderError(f"Clerk {method} {path} failed: {e}") from e
        return response

    def verify_session(self, token: str) -> Optional[SessionClaims]:
        try:
            signing_key = self._jwks_client.get_signing_key_from_jwt(token)
            claims = jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                options={"require": ["sub", "exp"]},
                leeway=JWT_LEEWAY_SECONDS,
            )
        except jwt.PyJWTError as e:
            logger.info("Rejected session token: %s", e)
            return None
        return SessionClaims(user_id=claims["sub"], role=_role_from_claims(claims))

    def get_user(self, user_id: str) -> ClerkUserData:
        return to_clerk_user(self._request("GET", f"/users/{user_id}").json())

    def list_users(self, limit: int = 500) -> list[ClerkUserData]:
        response = self._request("GET", "/users", params={"limit": limit})
        return [to_clerk_user(user) for user in response.json()]

    def find_user_by_email(self, email: str) -> Optional[ClerkUserData]:
        response = self._request("GET", "/users", params={"email_address": email})
        users = response.json()
        return to_clerk_user(users[0]) if users else None

    def set_role(self, user_id: str, role: UserRole) -> None:
        # The metadata endpoint deep-merges, so other public keys survive.
        self._request(
            "PATCH",
            f"/users/{user_id}/metadata",
            json={"public_metadata": {"role": role.value}},
        )
